# blog_api/models.py

import hmac
from datetime import datetime

import pytz
from flask_login import UserMixin
from sqlalchemy import delete
from sqlalchemy.orm import relationship
from werkzeug.security import generate_password_hash, check_password_hash

from blog_api.extensions import db
from blog_api.utils import generate_token_secret, hash_token


def utcnow():
    return datetime.now(pytz.utc)


class TimestampMixin:
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class CommentableMixin:
    """
    ポリモーフィックなコメントを持てるモデル。
    コメントは (commentable_type, commentable_id) で持ち主を指し、
    commentable_type には持ち主のテーブル名 ('posts', 'categories') が入ります。
    """

    @classmethod
    def commentable_type(cls):
        return cls.__tablename__

    def delete_comments(self):
        """このモデルに付いたコメントを一括削除します。削除件数を返します。"""
        result = db.session.execute(
            delete(Comment)
            .where(Comment.commentable_type == self.commentable_type(),
                   Comment.commentable_id == self.id)
            .execution_options(synchronize_session='fetch')
        )
        return result.rowcount


class User(UserMixin, TimestampMixin, db.Model):
    """
    APIのユーザー。投稿とコメントの作成者であり、アクセストークンを所有します。
    """
    __tablename__ = 'users'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)

    posts = relationship('Post', back_populates='user', cascade='all, delete-orphan', order_by='Post.id')
    comments = relationship('Comment', back_populates='user', cascade='all, delete-orphan', order_by='Comment.id')
    tokens = relationship('AccessToken', back_populates='user', cascade='all, delete-orphan')

    def __repr__(self):
        return f'<User {self.email}>'

    def set_password(self, password):
        """与えられたパスワードをハッシュ化して保存します。"""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        """与えられたパスワードが保存されたハッシュと一致するかを確認します。"""
        return check_password_hash(self.password_hash, password)


class Category(CommentableMixin, TimestampMixin, db.Model):
    """
    投稿を整理するためのカテゴリ。カテゴリ自体にもコメントを付けられます。
    カテゴリを削除すると、投稿の category_id は NULL になります。
    """
    __tablename__ = 'categories'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)

    posts = relationship('Post', back_populates='category', order_by='Post.id')
    comments = relationship(
        'Comment',
        primaryjoin="and_(Category.id == foreign(Comment.commentable_id), "
                    "Comment.commentable_type == 'categories')",
        viewonly=True,
        order_by='Comment.id',
    )

    def __repr__(self):
        return f'<Category {self.name}>'


class Post(CommentableMixin, TimestampMixin, db.Model):
    """
    ブログ投稿。作成者 (User) とカテゴリに属し、コメントを持ちます。
    """
    __tablename__ = 'posts'
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    content = db.Column(db.Text, nullable=False)

    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    category_id = db.Column(db.Integer, db.ForeignKey('categories.id'), nullable=True)

    user = relationship('User', back_populates='posts')
    category = relationship('Category', back_populates='posts')
    comments = relationship(
        'Comment',
        primaryjoin="and_(Post.id == foreign(Comment.commentable_id), "
                    "Comment.commentable_type == 'posts')",
        viewonly=True,
        order_by='Comment.id',
    )

    def __repr__(self):
        return f'<Post {self.title}>'


class Comment(TimestampMixin, db.Model):
    """
    ポリモーフィックなコメント。固定の外部キーではなく
    (commentable_type, commentable_id) の組で持ち主を指します。
    """
    __tablename__ = 'comments'
    id = db.Column(db.Integer, primary_key=True)
    content = db.Column(db.Text, nullable=False)

    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    commentable_type = db.Column(db.String(64), nullable=False, index=True)
    commentable_id = db.Column(db.Integer, nullable=False, index=True)

    user = relationship('User', back_populates='comments')

    @property
    def commentable(self):
        model = COMMENTABLE_MODELS.get(self.commentable_type)
        if model is None or self.commentable_id is None:
            return None
        return db.session.get(model, self.commentable_id)

    @commentable.setter
    def commentable(self, owner):
        self.commentable_type = owner.commentable_type()
        self.commentable_id = owner.id

    def __repr__(self):
        return f'<Comment {self.id} on {self.commentable_type}:{self.commentable_id}>'


# commentable_type → モデル
COMMENTABLE_MODELS = {
    Post.commentable_type(): Post,
    Category.commentable_type(): Category,
}


class AccessToken(db.Model):
    """
    ログイン時に発行する Bearer トークン。
    平文は "<id>|<secret>" の形で一度だけ返し、DBには secret の SHA-256 だけを保存します。
    """
    __tablename__ = 'personal_access_tokens'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    token = db.Column(db.String(64), unique=True, nullable=False)
    last_used_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    user = relationship('User', back_populates='tokens')

    @classmethod
    def issue(cls, user, name):
        """新しいトークンを作成し (token, 平文) を返します。コミットは呼び出し側で行います。"""
        secret = generate_token_secret()
        token = cls(user=user, name=name, token=hash_token(secret))
        db.session.add(token)
        db.session.flush()
        return token, f"{token.id}|{secret}"

    @classmethod
    def find(cls, plain_text):
        """平文トークンから AccessToken を探します。見つからなければ None。"""
        if not plain_text:
            return None
        if '|' not in plain_text:
            return cls.query.filter_by(token=hash_token(plain_text)).first()
        token_id, secret = plain_text.split('|', 1)
        if not token_id.isdigit():
            return None
        token = db.session.get(cls, int(token_id))
        if token is None or not hmac.compare_digest(token.token, hash_token(secret)):
            return None
        return token

    def __repr__(self):
        return f'<AccessToken {self.id} for user {self.user_id}>'
