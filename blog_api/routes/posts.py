# blog_api/routes/posts.py

import logging
from http import HTTPStatus
from urllib.parse import urlencode

from flask import Blueprint, request, current_app
from flask_login import login_required
from sqlalchemy.orm import selectinload

from blog_api.cache import fingerprint
from blog_api.decorators import invalidates_cache
from blog_api.extensions import db, query_builder, response_cache, api_response
from blog_api.forms import PostStoreForm, PostUpdateForm
from blog_api.models import Post
from blog_api.resources import post_resource, collection
from blog_api.routes import validation_failed, commit_or_error
from blog_api.services.query_builder import QueryRequest

logger = logging.getLogger(__name__)

ENTITY_TYPE = 'posts'
# 投稿一覧には user / category / comments が埋め込まれるので、そのどれが変わってもキャッシュを捨てる
LIST_CACHE_TAGS = ('posts', 'users', 'categories', 'comments')

posts_bp = Blueprint('posts', __name__, url_prefix='/api/posts')


def list_query():
    """投稿一覧のベースクエリ。埋め込む関連 (user, category, comments) はまとめて読み込みます。"""
    return db.select(Post).options(
        selectinload(Post.user),
        selectinload(Post.category),
        selectinload(Post.comments),
    )


@posts_bp.route('', methods=['GET'])
@login_required
def index():
    """
    投稿一覧 (フィルタ・ソート・グループ化・ページネーション対応)。
    結果は、パイプラインが実際に使うパラメータだけから作ったURL単位でキャッシュします。
    無視されるパラメータを変えても新しいキャッシュエントリは増えません。
    """
    query_request = QueryRequest.from_args(request.args)
    canonical_args = query_request.canonical_items(query_builder.registry.entry(ENTITY_TYPE))
    cache_key = fingerprint(ENTITY_TYPE, f"{request.base_url}?{urlencode(canonical_args)}")

    def build_payload():
        page = query_builder.build(list_query(), query_request, ENTITY_TYPE)
        posts = collection(page, post_resource, args=canonical_args)
        message = 'No posts found' if posts.is_empty() else 'Posts retrieved successfully'
        return api_response.envelope(posts, message, HTTPStatus.OK)

    payload = response_cache.remember(cache_key, LIST_CACHE_TAGS, build_payload)
    return api_response.send_payload(payload, HTTPStatus.OK)


@posts_bp.route('', methods=['POST'])
@login_required
@invalidates_cache(ENTITY_TYPE)
def store():
    form = PostStoreForm()
    if not form.validate():
        return validation_failed(form)

    post = Post(
        title=form.title.data,
        content=form.content.data,
        user_id=form.user_id.data,
        category_id=form.category_id.data,
    )
    db.session.add(post)
    error = commit_or_error('creating the post')
    if error is not None:
        return error

    current_app.logger.info(f"Post {post.id} created by user {post.user_id}.")
    return api_response.send_response(post_resource(post), 'Post created successfully', HTTPStatus.CREATED)


@posts_bp.route('/<int:post_id>', methods=['GET'])
@login_required
def show(post_id):
    post = db.session.get(Post, post_id)
    if post is None:
        logger.debug(f"Post {post_id} not found.")
        return api_response.send_error('Post not found', HTTPStatus.NOT_FOUND)

    return api_response.send_response(post_resource(post, relations=True), 'Post retrieved successfully', HTTPStatus.OK)


@posts_bp.route('/<int:post_id>', methods=['PUT', 'PATCH'])
@login_required
@invalidates_cache(ENTITY_TYPE)
def update(post_id):
    post = db.session.get(Post, post_id)
    if post is None:
        logger.debug(f"Post {post_id} not found.")
        return api_response.send_error('Post not found', HTTPStatus.NOT_FOUND)

    form = PostUpdateForm()
    if not form.validate():
        return validation_failed(form)

    for name, value in form.present_data().items():
        setattr(post, name, value)
    error = commit_or_error(f'updating post {post_id}')
    if error is not None:
        return error

    current_app.logger.info(f"Post {post.id} updated.")
    return api_response.send_response(post_resource(post), 'Post updated successfully', HTTPStatus.OK)


@posts_bp.route('/<int:post_id>', methods=['DELETE'])
@login_required
@invalidates_cache(ENTITY_TYPE, 'comments')
def destroy(post_id):
    post = db.session.get(Post, post_id)
    if post is None:
        logger.debug(f"Post {post_id} not found.")
        return api_response.send_error('Post not found', HTTPStatus.NOT_FOUND)

    post.delete_comments()
    db.session.delete(post)
    error = commit_or_error(f'deleting post {post_id}')
    if error is not None:
        return error

    current_app.logger.info(f"Post {post_id} deleted.")
    return api_response.send_response(None, 'Post deleted successfully', HTTPStatus.OK)
