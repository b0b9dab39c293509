# blog_api/routes/comments.py

import logging
from http import HTTPStatus

from flask import Blueprint, request, current_app
from flask_login import login_required
from sqlalchemy.orm import selectinload

from blog_api.decorators import invalidates_cache
from blog_api.extensions import db, query_builder, api_response
from blog_api.forms import CommentStoreForm, CommentUpdateForm
from blog_api.models import Comment
from blog_api.resources import comment_resource, collection
from blog_api.routes import validation_failed, commit_or_error
from blog_api.services.query_builder import QueryRequest

logger = logging.getLogger(__name__)

ENTITY_TYPE = 'comments'

comments_bp = Blueprint('comments', __name__, url_prefix='/api/comments')


@comments_bp.route('', methods=['GET'])
@login_required
def index():
    query = db.select(Comment).options(selectinload(Comment.user))
    page = query_builder.build(query, QueryRequest.from_args(request.args), ENTITY_TYPE)
    comments = collection(page, comment_resource)
    return api_response.send_response(
        comments,
        'No comments found' if comments.is_empty() else 'Comments retrieved successfully',
        HTTPStatus.OK,
    )


@comments_bp.route('', methods=['POST'])
@login_required
@invalidates_cache(ENTITY_TYPE)
def store():
    form = CommentStoreForm()
    if not form.validate():
        return validation_failed(form)

    comment = Comment(
        content=form.content.data,
        user_id=form.user_id.data,
        commentable_type=form.commentable_type.data,
        commentable_id=form.commentable_id.data,
    )
    db.session.add(comment)
    error = commit_or_error('creating the comment')
    if error is not None:
        return error

    current_app.logger.info(
        f"Comment {comment.id} created on {comment.commentable_type}:{comment.commentable_id}.")
    return api_response.send_response(comment_resource(comment), 'Comment created successfully', HTTPStatus.CREATED)


@comments_bp.route('/<int:comment_id>', methods=['GET'])
@login_required
def show(comment_id):
    comment = db.session.get(Comment, comment_id)
    if comment is None:
        logger.debug(f"Comment {comment_id} not found.")
        return api_response.send_error('Comment not found', HTTPStatus.NOT_FOUND)

    return api_response.send_response(
        comment_resource(comment, relations=True), 'Comment retrieved successfully', HTTPStatus.OK)


@comments_bp.route('/<int:comment_id>', methods=['PUT', 'PATCH'])
@login_required
@invalidates_cache(ENTITY_TYPE)
def update(comment_id):
    comment = db.session.get(Comment, comment_id)
    if comment is None:
        logger.debug(f"Comment {comment_id} not found.")
        return api_response.send_error('Comment not found', HTTPStatus.NOT_FOUND)

    form = CommentUpdateForm()
    if not form.validate():
        return validation_failed(form)

    for name, value in form.present_data().items():
        setattr(comment, name, value)
    error = commit_or_error(f'updating comment {comment_id}')
    if error is not None:
        return error

    current_app.logger.info(f"Comment {comment.id} updated.")
    return api_response.send_response(comment_resource(comment), 'Comment updated successfully', HTTPStatus.OK)


@comments_bp.route('/<int:comment_id>', methods=['DELETE'])
@login_required
@invalidates_cache(ENTITY_TYPE)
def destroy(comment_id):
    comment = db.session.get(Comment, comment_id)
    if comment is None:
        logger.debug(f"Comment {comment_id} not found.")
        return api_response.send_error('Comment not found', HTTPStatus.NOT_FOUND)

    db.session.delete(comment)
    error = commit_or_error(f'deleting comment {comment_id}')
    if error is not None:
        return error

    current_app.logger.info(f"Comment {comment_id} deleted.")
    return api_response.send_response(None, 'Comment deleted successfully', HTTPStatus.OK)
