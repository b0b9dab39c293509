from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_limiter import Limiter

from blog_api.cache import ResponseCache
from blog_api.services.query_builder import QueryBuilder
from blog_api.services.api_response import ApiResponseService
from blog_api.utils import rate_limit_key

# 各拡張機能のインスタンスを生成
db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
limiter = Limiter(key_func=rate_limit_key)

# アプリ初期化時に設定 (QUERY_BUILDER など) を読み込むもの
query_builder = QueryBuilder()
response_cache = ResponseCache()

# ステートレスなので共有インスタンスで十分
api_response = ApiResponseService()
