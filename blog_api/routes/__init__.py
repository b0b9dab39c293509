# blog_api/routes/__init__.py
"""各リソースのブループリントで共有するヘルパー。"""

from http import HTTPStatus

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from blog_api.extensions import db, api_response
from blog_api.forms import VALIDATION_MESSAGE


def validation_failed(form):
    """フォームの検証エラーを 422 のエラーエンベロープで返します。"""
    current_app.logger.debug(f"Validation failed: {form.errors}")
    return api_response.send_error(VALIDATION_MESSAGE, HTTPStatus.UNPROCESSABLE_ENTITY, errors=form.errors)


def commit_or_error(action):
    """
    セッションをコミットします。
    失敗した場合はロールバックしてログを残し、500 のエラーレスポンスを返します。成功時は None。
    """
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error while {action}: {e}", exc_info=True)
        return api_response.send_error(f'An error occurred while {action}.', HTTPStatus.INTERNAL_SERVER_ERROR)
    return None
