# blog_api/__init__.py

import os
import logging
from http import HTTPStatus
from logging.handlers import RotatingFileHandler

from flask import Flask, current_app
from werkzeug.exceptions import HTTPException

import config  # config モジュールをインポート

from blog_api.extensions import db, migrate, login_manager, limiter, query_builder, response_cache, api_response


def configure_logging(app):
    """app.logger にファイル (ローテーション) と標準出力のハンドラを設定します。"""
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    formatter = logging.Formatter('%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]')

    if app.config.get('LOG_TO_FILE'):
        os.makedirs(app.config['LOG_DIR'], exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(app.config['LOG_DIR'], app.config['LOG_FILE']), maxBytes=10240, backupCount=10)
        file_handler.setFormatter(formatter)
        file_handler.setLevel(level)
        app.logger.addHandler(file_handler)

    # stdout へのロギング設定 (Gunicorn などでコンソール出力を見るため)
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    stream_handler.setLevel(level)
    app.logger.addHandler(stream_handler)
    app.logger.setLevel(level)


def register_error_handlers(app):
    """全てのエラーをエラーエンベロープで返します。"""

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        return api_response.send_error(error.description or error.name, error.code)

    @app.errorhandler(404)
    def not_found_error(error):
        return api_response.send_error('Not found', HTTPStatus.NOT_FOUND)

    @app.errorhandler(429)
    def too_many_requests(error):
        return api_response.send_error('Too Many Attempts.', HTTPStatus.TOO_MANY_REQUESTS)

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        current_app.logger.error(f"Unhandled error: {error}", exc_info=True)
        return api_response.send_error('Server Error', HTTPStatus.INTERNAL_SERVER_ERROR)


# アプリケーションファクトリ関数
def create_app(config_class=config.Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    os.makedirs(app.instance_path, exist_ok=True)
    configure_logging(app)

    # 拡張機能の初期化
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    limiter.init_app(app)
    query_builder.init_app(app)
    response_cache.init_app(app)

    # モデルを読み込んでテーブル定義を登録する
    from blog_api import models  # noqa: F401

    # ブループリントをインポート
    from blog_api.routes.auth import bp as auth_bp
    from blog_api.routes.users import users_bp
    from blog_api.routes.posts import posts_bp
    from blog_api.routes.categories import categories_bp
    from blog_api.routes.comments import comments_bp

    # 認証が必要なリソースにはユーザー (またはIP) 単位のレート制限を掛ける
    api_rate_limit = limiter.limit(lambda: current_app.config['API_RATE_LIMIT'])
    for resource_bp in (users_bp, posts_bp, categories_bp, comments_bp):
        api_rate_limit(resource_bp)
        app.register_blueprint(resource_bp)
    app.register_blueprint(auth_bp)

    register_error_handlers(app)

    # CLI コマンドの登録
    from blog_api import cli
    app.cli.add_command(cli.seed)

    app.logger.info('Blog API startup')
    return app
