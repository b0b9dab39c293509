# tests/conftest.py
import sys
import os

# プロジェクトのルートディレクトリをPythonのパスに追加
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from blog_api import create_app
from blog_api.extensions import db, response_cache
from blog_api.models import User, Category, Post, Comment
from config import TestingConfig

import pytest


@pytest.fixture(scope='session')
def app():
    """テスト用Flaskアプリケーションのインスタンスを生成するフィクスチャ"""
    app = create_app(TestingConfig)
    yield app


@pytest.fixture(autouse=True)
def database(app):
    """各テスト関数ごとにテーブルを作り直し、キャッシュも空にする"""
    with app.app_context():
        db.create_all()
    yield
    with app.app_context():
        db.session.remove()
        db.drop_all()
        response_cache.flush()


@pytest.fixture(scope='function')
def client(app):
    """テストクライアントを生成するフィクスチャ"""
    return app.test_client()


@pytest.fixture(scope='function')
def runner(app):
    """CLIコマンドランナーを生成するフィクスチャ"""
    return app.test_cli_runner()


class Factory:
    """テストデータを直接DBに作成するヘルパー。作成したレコードの id を返します。"""

    def __init__(self, app):
        self.app = app
        self._counter = 0

    def _next(self):
        self._counter += 1
        return self._counter

    def user(self, name=None, email=None, password='password123'):
        n = self._next()
        with self.app.app_context():
            user = User(name=name or f'User {n}', email=email or f'user{n}@example.com')
            user.set_password(password)
            db.session.add(user)
            db.session.commit()
            return user.id

    def category(self, name=None):
        n = self._next()
        with self.app.app_context():
            category = Category(name=name or f'Category {n}')
            db.session.add(category)
            db.session.commit()
            return category.id

    def post(self, user_id=None, category_id=None, title=None, content='Some content'):
        n = self._next()
        user_id = user_id or self.user()
        with self.app.app_context():
            post = Post(title=title or f'Post {n}', content=content, user_id=user_id, category_id=category_id)
            db.session.add(post)
            db.session.commit()
            return post.id

    def comment(self, commentable_type, commentable_id, user_id=None, content='Nice one'):
        user_id = user_id or self.user()
        with self.app.app_context():
            comment = Comment(
                content=content,
                user_id=user_id,
                commentable_type=commentable_type,
                commentable_id=commentable_id,
            )
            db.session.add(comment)
            db.session.commit()
            return comment.id


@pytest.fixture(scope='function')
def factory(app):
    return Factory(app)


@pytest.fixture(scope='function')
def new_user_data():
    """テスト用のユーザーデータを辞書として作成するフィクスチャ (DBには追加しない)"""
    return {
        'name': 'Test User',
        'email': 'test@example.com',
        'password': 'password123',
    }


@pytest.fixture(scope='function')
def auth_headers(client, factory, new_user_data):
    """ログインして取得したトークンの Authorization ヘッダーを返すフィクスチャ"""
    factory.user(**new_user_data)
    response = client.post('/api/login', json={
        'email': new_user_data['email'],
        'password': new_user_data['password'],
    })
    assert response.status_code == 200
    token = response.get_json()['data']['token']
    return {'Authorization': f'Bearer {token}'}
