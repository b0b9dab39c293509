# blog_api/routes/categories.py

import logging
from http import HTTPStatus

from flask import Blueprint, request, current_app
from flask_login import login_required

from blog_api.decorators import invalidates_cache
from blog_api.extensions import db, query_builder, api_response
from blog_api.forms import CategoryStoreForm, CategoryUpdateForm
from blog_api.models import Category
from blog_api.resources import category_resource, collection
from blog_api.routes import validation_failed, commit_or_error
from blog_api.services.query_builder import QueryRequest

logger = logging.getLogger(__name__)

ENTITY_TYPE = 'categories'

categories_bp = Blueprint('categories', __name__, url_prefix='/api/categories')


@categories_bp.route('', methods=['GET'])
@login_required
def index():
    query = db.select(Category)
    page = query_builder.build(query, QueryRequest.from_args(request.args), ENTITY_TYPE)
    categories = collection(page, category_resource)
    return api_response.send_response(
        categories,
        'No categories found' if categories.is_empty() else 'Categories retrieved successfully',
        HTTPStatus.OK,
    )


@categories_bp.route('', methods=['POST'])
@login_required
@invalidates_cache(ENTITY_TYPE)
def store():
    form = CategoryStoreForm()
    if not form.validate():
        return validation_failed(form)

    category = Category(name=form.name.data)
    db.session.add(category)
    error = commit_or_error('creating the category')
    if error is not None:
        return error

    current_app.logger.info(f"Category {category.id} created.")
    return api_response.send_response(category_resource(category), 'Category created successfully', HTTPStatus.CREATED)


@categories_bp.route('/<int:category_id>', methods=['GET'])
@login_required
def show(category_id):
    category = db.session.get(Category, category_id)
    if category is None:
        logger.debug(f"Category {category_id} not found.")
        return api_response.send_error('Category not found', HTTPStatus.NOT_FOUND)

    return api_response.send_response(
        category_resource(category, relations=True), 'Category retrieved successfully', HTTPStatus.OK)


@categories_bp.route('/<int:category_id>', methods=['PUT', 'PATCH'])
@login_required
@invalidates_cache(ENTITY_TYPE)
def update(category_id):
    category = db.session.get(Category, category_id)
    if category is None:
        logger.debug(f"Category {category_id} not found.")
        return api_response.send_error('Category not found', HTTPStatus.NOT_FOUND)

    form = CategoryUpdateForm()
    if not form.validate():
        return validation_failed(form)

    for name, value in form.present_data().items():
        setattr(category, name, value)
    error = commit_or_error(f'updating category {category_id}')
    if error is not None:
        return error

    current_app.logger.info(f"Category {category.id} updated.")
    return api_response.send_response(category_resource(category), 'Category updated successfully', HTTPStatus.OK)


@categories_bp.route('/<int:category_id>', methods=['DELETE'])
@login_required
@invalidates_cache(ENTITY_TYPE, 'posts', 'comments')
def destroy(category_id):
    """カテゴリを削除します。属していた投稿は残り、category_id が NULL になります。"""
    category = db.session.get(Category, category_id)
    if category is None:
        logger.debug(f"Category {category_id} not found.")
        return api_response.send_error('Category not found', HTTPStatus.NOT_FOUND)

    category.delete_comments()
    db.session.delete(category)
    error = commit_or_error(f'deleting category {category_id}')
    if error is not None:
        return error

    current_app.logger.info(f"Category {category_id} deleted.")
    return api_response.send_response(None, 'Category deleted successfully', HTTPStatus.OK)
