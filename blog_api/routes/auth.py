# blog_api/routes/auth.py
"""
登録・ログイン・ログアウトと、Bearer トークンによるユーザー読み込み。

ログインに成功すると "<id>|<secret>" 形式のトークンを返します。
以降のリクエストは `Authorization: Bearer <token>` ヘッダーで認証します。
"""

from http import HTTPStatus

from flask import Blueprint, current_app, g
from flask_login import login_required, current_user

from blog_api.decorators import invalidates_cache
from blog_api.extensions import db, login_manager, api_response
from blog_api.forms import LoginForm
from blog_api.models import User, AccessToken, utcnow
from blog_api.routes import validation_failed, commit_or_error
from blog_api.routes.users import create_user

bp = Blueprint('auth', __name__, url_prefix='/api')


@login_manager.request_loader
def load_user_from_request(request):
    header = request.headers.get('Authorization', '')
    scheme, _, credentials = header.partition(' ')
    if scheme.lower() != 'bearer' or not credentials.strip():
        return None

    token = AccessToken.find(credentials.strip())
    if token is None:
        current_app.logger.debug("Bearer token rejected.")
        return None

    token.last_used_at = utcnow()
    db.session.commit()
    g.access_token = token
    return token.user


@login_manager.unauthorized_handler
def unauthorized():
    return api_response.send_error('Unauthenticated.', HTTPStatus.UNAUTHORIZED)


@bp.route('/register', methods=['POST'], endpoint='register')
@invalidates_cache('users')
def register():
    return create_user()


@bp.route('/login', methods=['POST'], endpoint='login')
def login():
    form = LoginForm()
    if not form.validate():
        return validation_failed(form)

    user = User.query.filter_by(email=form.email.data).first()
    if user is None or not user.check_password(form.password.data):
        current_app.logger.info(f"Failed login attempt for {form.email.data}.")
        return api_response.send_error('Unauthorized', HTTPStatus.UNAUTHORIZED)

    _, plain_text = AccessToken.issue(user, current_app.config['API_TOKEN_NAME'])
    error = commit_or_error('issuing an access token')
    if error is not None:
        return error

    current_app.logger.info(f"User {user.id} logged in.")
    return api_response.send_response({'token': plain_text}, 'Login successful', HTTPStatus.OK)


@bp.route('/logout', methods=['POST'], endpoint='logout')
@login_required
def logout():
    """現在のリクエストで使われたトークンを失効させます。"""
    token = g.get('access_token')
    if token is not None:
        db.session.delete(token)
        error = commit_or_error('revoking the access token')
        if error is not None:
            return error

    current_app.logger.info(f"User {current_user.id} logged out.")
    return api_response.send_response(None, 'Logged out successfully', HTTPStatus.OK)
