# blog_api/forms.py
"""
JSON ペイロードの検証フォーム。

Flask-WTF は JSON リクエストの本文をそのままフォームデータとして扱います。
API はトークン認証なので CSRF は無効にしています。

更新フォームは「送られたキーだけ検証する」(Sometimes) 方式です。
送られなかったキーは検証も更新もしません。
"""

from flask import request
from flask_wtf import FlaskForm
from werkzeug.exceptions import UnprocessableEntity
from wtforms import StringField, IntegerField
from wtforms.validators import DataRequired, InputRequired, Length, Email, AnyOf, ValidationError, StopValidation

from blog_api.extensions import db
from blog_api.models import User, Category, COMMENTABLE_MODELS

VALIDATION_MESSAGE = 'The given data was invalid.'


class Sometimes:
    """キーがペイロードに無ければ、以降の検証を止めます (エラーは付けません)。"""

    field_flags = {'optional': True}

    def __call__(self, form, field):
        if not field.raw_data:
            field.errors[:] = []
            raise StopValidation()


class Exists:
    """指定モデルに、その主キーのレコードが存在することを確認します。"""

    def __init__(self, model, message=None):
        self.model = model
        self.message = message

    def __call__(self, form, field):
        if field.data is None or db.session.get(self.model, field.data) is None:
            raise ValidationError(self.message or f'The selected {field.name} is invalid.')


def email_taken(email, exclude_user_id=None):
    """email を使っているユーザーが (exclude_user_id 以外に) 存在するか。"""
    query = User.query.filter(User.email == email)
    if exclude_user_id is not None:
        query = query.filter(User.id != exclude_user_id)
    return db.session.query(query.exists()).scalar()


class JsonStringField(StringField):
    """JSON の数値なども文字列として受け取ります。null は未入力扱い。"""

    def process_formdata(self, valuelist):
        if valuelist:
            value = valuelist[0]
            self.data = value if value is None or isinstance(value, str) else str(value)


class JsonIntegerField(IntegerField):
    """null など int() に渡せない値を「不正な整数」として扱います。"""

    def process_formdata(self, valuelist):
        if not valuelist:
            return
        try:
            self.data = int(valuelist[0])
        except (TypeError, ValueError):
            self.data = None
            raise ValueError(self.gettext("Not a valid integer value."))


class ApiForm(FlaskForm):
    class Meta:
        csrf = False

        def wrap_formdata(self, form, formdata):
            # JSON 本文はオブジェクトでなければフォームデータにできない
            if (not hasattr(formdata, 'getlist') and form.is_submitted()
                    and request.is_json and not isinstance(request.get_json(), dict)):
                raise UnprocessableEntity(VALIDATION_MESSAGE)
            return super().wrap_formdata(form, formdata)

    def present_data(self):
        """ペイロードに含まれていたフィールドだけを {name: data} で返します。"""
        return {name: field.data for name, field in self._fields.items() if field.raw_data}


# --- Users ---

class UserStoreForm(ApiForm):
    name = JsonStringField('name', validators=[DataRequired(), Length(max=255)])
    email = JsonStringField('email', validators=[DataRequired(), Email(), Length(max=255)])
    password = JsonStringField('password', validators=[DataRequired(), Length(min=8)])

    def validate_email(self, field):
        if email_taken(field.data):
            raise ValidationError('The email has already been taken.')


class UserUpdateForm(ApiForm):
    name = JsonStringField('name', validators=[Sometimes(), DataRequired(), Length(max=255)])
    email = JsonStringField('email', validators=[Sometimes(), DataRequired(), Email(), Length(max=255)])
    password = JsonStringField('password', validators=[Sometimes(), DataRequired(), Length(min=8)])

    def __init__(self, user_id, *args, **kwargs):
        """user_id: 一意性チェックから除外するユーザー (更新対象自身)。"""
        super().__init__(*args, **kwargs)
        self.user_id = user_id

    def validate_email(self, field):
        if email_taken(field.data, exclude_user_id=self.user_id):
            raise ValidationError('The email has already been taken.')


class LoginForm(ApiForm):
    email = JsonStringField('email', validators=[DataRequired(), Email()])
    password = JsonStringField('password', validators=[DataRequired()])


# --- Categories ---

class CategoryStoreForm(ApiForm):
    name = JsonStringField('name', validators=[DataRequired(), Length(max=255)])


class CategoryUpdateForm(ApiForm):
    name = JsonStringField('name', validators=[Sometimes(), DataRequired(), Length(max=255)])


# --- Posts ---

class PostStoreForm(ApiForm):
    title = JsonStringField('title', validators=[DataRequired(), Length(max=255)])
    content = JsonStringField('content', validators=[DataRequired()])
    user_id = JsonIntegerField('user_id', validators=[InputRequired(), Exists(User)])
    category_id = JsonIntegerField('category_id', validators=[InputRequired(), Exists(Category)])


class PostUpdateForm(ApiForm):
    title = JsonStringField('title', validators=[Sometimes(), DataRequired(), Length(max=255)])
    content = JsonStringField('content', validators=[Sometimes(), DataRequired()])
    user_id = JsonIntegerField('user_id', validators=[Sometimes(), InputRequired(), Exists(User)])
    category_id = JsonIntegerField('category_id', validators=[Sometimes(), InputRequired(), Exists(Category)])


# --- Comments ---

class CommentStoreForm(ApiForm):
    content = JsonStringField('content', validators=[DataRequired()])
    user_id = JsonIntegerField('user_id', validators=[InputRequired(), Exists(User)])
    commentable_type = JsonStringField('commentable_type', validators=[
        DataRequired(),
        AnyOf(list(COMMENTABLE_MODELS), message='The selected commentable type is invalid.'),
    ])
    commentable_id = JsonIntegerField('commentable_id', validators=[InputRequired()])

    def validate_commentable_id(self, field):
        model = COMMENTABLE_MODELS.get(self.commentable_type.data)
        if model is None:
            # commentable_type 側でエラーになる
            return
        if field.data is None or db.session.get(model, field.data) is None:
            raise ValidationError('The selected commentable id is invalid.')


class CommentUpdateForm(ApiForm):
    content = JsonStringField('content', validators=[Sometimes(), DataRequired()])
