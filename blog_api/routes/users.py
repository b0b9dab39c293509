# blog_api/routes/users.py

import logging
from http import HTTPStatus

from flask import Blueprint, request, current_app
from flask_login import login_required
from sqlalchemy.orm import selectinload

from blog_api.decorators import invalidates_cache
from blog_api.extensions import db, query_builder, api_response
from blog_api.forms import UserStoreForm, UserUpdateForm
from blog_api.models import User
from blog_api.resources import user_resource, collection
from blog_api.routes import validation_failed, commit_or_error
from blog_api.services.query_builder import QueryRequest

logger = logging.getLogger(__name__)

ENTITY_TYPE = 'users'

users_bp = Blueprint('users', __name__, url_prefix='/api/users')


def create_user():
    """UserStoreForm を検証してユーザーを作成します (/api/users と /api/register で共用)。"""
    form = UserStoreForm()
    if not form.validate():
        return validation_failed(form)

    user = User(name=form.name.data, email=form.email.data)
    user.set_password(form.password.data)
    db.session.add(user)
    error = commit_or_error('creating the user')
    if error is not None:
        return error

    current_app.logger.info(f"User {user.id} ({user.email}) created.")
    return api_response.send_response(user_resource(user), 'User created successfully', HTTPStatus.CREATED)


@users_bp.route('', methods=['GET'])
@login_required
def index():
    query = db.select(User).options(selectinload(User.posts), selectinload(User.comments))
    page = query_builder.build(query, QueryRequest.from_args(request.args), ENTITY_TYPE)
    users = collection(page, user_resource)
    return api_response.send_response(
        users,
        'No users found' if users.is_empty() else 'Users retrieved successfully',
        HTTPStatus.OK,
    )


@users_bp.route('', methods=['POST'])
@login_required
@invalidates_cache(ENTITY_TYPE)
def store():
    return create_user()


@users_bp.route('/<int:user_id>', methods=['GET'])
@login_required
def show(user_id):
    user = db.session.get(User, user_id)
    if user is None:
        logger.debug(f"User {user_id} not found.")
        return api_response.send_error('User not found', HTTPStatus.NOT_FOUND)

    return api_response.send_response(user_resource(user, relations=True), 'User retrieved successfully', HTTPStatus.OK)


@users_bp.route('/<int:user_id>', methods=['PUT', 'PATCH'])
@login_required
@invalidates_cache(ENTITY_TYPE)
def update(user_id):
    user = db.session.get(User, user_id)
    if user is None:
        logger.debug(f"User {user_id} not found.")
        return api_response.send_error('User not found', HTTPStatus.NOT_FOUND)

    # メールアドレスの一意性チェックから更新対象自身を除外する
    form = UserUpdateForm(user_id=user.id)
    if not form.validate():
        return validation_failed(form)

    data = form.present_data()
    password = data.pop('password', None)
    for name, value in data.items():
        setattr(user, name, value)
    if password:
        user.set_password(password)
    error = commit_or_error(f'updating user {user_id}')
    if error is not None:
        return error

    current_app.logger.info(f"User {user.id} updated.")
    return api_response.send_response(user_resource(user), 'User updated successfully', HTTPStatus.OK)


@users_bp.route('/<int:user_id>', methods=['DELETE'])
@login_required
@invalidates_cache(ENTITY_TYPE, 'posts', 'comments')
def destroy(user_id):
    """ユーザーと、その投稿・コメント・トークンを削除します。投稿に付いた他人のコメントも削除されます。"""
    user = db.session.get(User, user_id)
    if user is None:
        logger.debug(f"User {user_id} not found.")
        return api_response.send_error('User not found', HTTPStatus.NOT_FOUND)

    for post in user.posts:
        post.delete_comments()
    db.session.delete(user)
    error = commit_or_error(f'deleting user {user_id}')
    if error is not None:
        return error

    current_app.logger.info(f"User {user_id} deleted.")
    return api_response.send_response(None, 'User deleted successfully', HTTPStatus.OK)
