# tests/test_auth.py
from blog_api.extensions import db
from blog_api.models import User, AccessToken

# test_auth.py 内のすべてのテストは、conftest.py の app, client, factory, auth_headers フィクスチャを利用できる


def test_register_new_user(client, app):
    """新しいユーザーが正常に登録できるかテスト"""
    response = client.post('/api/register', json={
        'name': 'New User',
        'email': 'newuser@example.com',
        'password': 'password123',
    })

    assert response.status_code == 201
    body = response.get_json()
    assert body['success'] is True
    assert body['message'] == 'User created successfully'
    assert body['data']['email'] == 'newuser@example.com'
    assert 'password_hash' not in body['data']

    # データベースにユーザーが追加されたことを確認
    with app.app_context():
        user = User.query.filter_by(email='newuser@example.com').first()
        assert user is not None
        assert user.check_password('password123')


def test_register_duplicate_email(client, app, factory):
    """重複メールアドレスでの登録が拒否されるかテスト"""
    factory.user(email='taken@example.com')
    response = client.post('/api/register', json={
        'name': 'Another',
        'email': 'taken@example.com',
        'password': 'password123',
    })

    assert response.status_code == 422
    body = response.get_json()
    assert body['success'] is False
    assert body['message'] == 'The given data was invalid.'
    assert 'email' in body['errors']

    # データベースに新しいユーザーが追加されていないことを確認
    with app.app_context():
        assert User.query.filter_by(email='taken@example.com').count() == 1


def test_register_requires_fields(client):
    response = client.post('/api/register', json={'email': 'not-an-email'})

    assert response.status_code == 422
    errors = response.get_json()['errors']
    assert set(errors) == {'name', 'email', 'password'}


def test_login_returns_token(client, app, factory):
    """正しい認証情報でトークンが発行されるかテスト"""
    user_id = factory.user(email='login@example.com', password='secret-pass')
    response = client.post('/api/login', json={'email': 'login@example.com', 'password': 'secret-pass'})

    assert response.status_code == 200
    body = response.get_json()
    assert body['message'] == 'Login successful'
    token_id, _, secret = body['data']['token'].partition('|')
    assert token_id.isdigit() and secret

    # 平文ではなくハッシュだけが保存されている
    with app.app_context():
        token = db.session.get(AccessToken, int(token_id))
        assert token.user_id == user_id
        assert token.token != secret


def test_login_invalid_password(client, factory):
    """不正なパスワードでログインが拒否されるかテスト"""
    factory.user(email='login@example.com', password='secret-pass')
    response = client.post('/api/login', json={'email': 'login@example.com', 'password': 'wrong-pass'})

    assert response.status_code == 401
    assert response.get_json() == {'status': 401, 'success': False, 'message': 'Unauthorized', 'data': None}


def test_protected_route_requires_token(client):
    response = client.get('/api/posts')

    assert response.status_code == 401
    assert response.get_json()['message'] == 'Unauthenticated.'


def test_invalid_token_is_rejected(client, auth_headers):
    response = client.get('/api/posts', headers={'Authorization': 'Bearer 1|not-the-secret'})

    assert response.status_code == 401


def test_logout_revokes_token(client, auth_headers):
    """ログアウトしたトークンは使えなくなるかテスト"""
    response = client.post('/api/logout', headers=auth_headers)
    assert response.status_code == 200
    assert response.get_json()['message'] == 'Logged out successfully'

    response = client.get('/api/posts', headers=auth_headers)
    assert response.status_code == 401


def test_token_updates_last_used_at(client, app, auth_headers):
    client.get('/api/users', headers=auth_headers)

    with app.app_context():
        token = AccessToken.query.first()
        assert token.last_used_at is not None
