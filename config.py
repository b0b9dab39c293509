# config.py
import os

# BASE_DIR はプロジェクトのルートディレクトリを指します
BASE_DIR = os.path.abspath(os.path.dirname(__file__))


class Config:
    # アプリケーションのセキュリティキー
    # 本番環境では必ず環境変数 SECRET_KEY を設定してください。
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-only-blog-api-secret'

    # データベースのURI設定
    # DATABASE_URL が無い場合は 'instance' フォルダ内の SQLite を使用します
    # (Flask-SQLAlchemy は相対パスの SQLite を instance フォルダ基準で解決します)
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///blog_api.db'
    # SQLAlchemyのイベントトラッキングを無効にします (リソース節約のため)
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    DEBUG = False
    TESTING = False

    # --- ロギング ---
    LOG_DIR = os.path.join(BASE_DIR, 'logs')
    LOG_FILE = 'blog_api.log'
    LOG_LEVEL = 'INFO'
    LOG_TO_FILE = True

    # --- クエリビルダーの許可リスト ---
    # エンティティ種別ごとに、絞り込み・並べ替え・グループ化できるフィールドを宣言します。
    # ここに無いフィールドは黙って無視されます (エラーにはしません)。
    QUERY_BUILDER = {
        'users': {
            'filters': ['id', 'name', 'email', 'created_at', 'updated_at'],
            'sorts': ['id', 'name', 'email', 'created_at', 'updated_at'],
            'group_by': ['id', 'name', 'email', 'created_at', 'updated_at'],
        },
        'comments': {
            'filters': ['id', 'content', 'user_id', 'commentable_id', 'commentable_type', 'created_at', 'updated_at'],
            'sorts': ['id', 'content', 'user_id', 'created_at', 'updated_at'],
            'group_by': ['id', 'content', 'user_id', 'commentable_id', 'commentable_type', 'created_at', 'updated_at'],
        },
        'categories': {
            'filters': ['id', 'name', 'created_at', 'updated_at'],
            'sorts': ['id', 'name', 'created_at', 'updated_at'],
            'group_by': ['id', 'name', 'created_at', 'updated_at'],
        },
        'posts': {
            'filters': ['id', 'category_id', 'user_id', 'title', 'created_at', 'updated_at'],
            'sorts': ['id', 'category_id', 'user_id', 'title', 'created_at', 'updated_at'],
            'group_by': ['id', 'category_id', 'user_id', 'title', 'created_at', 'updated_at'],
        },
    }

    # --- ページネーション ---
    API_DEFAULT_PER_PAGE = 10
    # None の場合は上限なし
    API_MAX_PER_PAGE = None

    # --- 認証 / レート制限 ---
    API_TOKEN_NAME = 'Personal Access Token'
    API_RATE_LIMIT = '60 per minute'
    RATELIMIT_ENABLED = True
    RATELIMIT_STORAGE_URI = 'memory://'

    # --- レスポンスキャッシュ ---
    RESPONSE_CACHE_ENABLED = True
    # 保持する一覧レスポンスの最大件数 (超えたら古いものから捨てる)
    RESPONSE_CACHE_MAX_ENTRIES = 1000


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    LOG_TO_FILE = False
    LOG_LEVEL = 'WARNING'
    RATELIMIT_ENABLED = False
