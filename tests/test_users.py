# tests/test_users.py
from blog_api.extensions import db
from blog_api.models import User, Post, Comment


def test_index_users(client, factory, auth_headers):
    factory.user(name='Zed')

    response = client.get('/api/users?sort_by=name&sort_order=desc', headers=auth_headers)

    body = response.get_json()
    assert body['message'] == 'Users retrieved successfully'
    assert [u['name'] for u in body['data']] == ['Zed', 'Test User']
    assert all('password_hash' not in u for u in body['data'])


def test_index_filter_by_email(client, factory, auth_headers):
    factory.user(email='findme@example.com')

    response = client.get('/api/users?email=findme@example.com', headers=auth_headers)

    assert [u['email'] for u in response.get_json()['data']] == ['findme@example.com']


def test_store_user(client, auth_headers):
    response = client.post('/api/users', headers=auth_headers, json={
        'name': 'Created',
        'email': 'created@example.com',
        'password': 'password123',
    })

    assert response.status_code == 201
    assert response.get_json()['message'] == 'User created successfully'


def test_store_user_short_password(client, auth_headers):
    response = client.post('/api/users', headers=auth_headers, json={
        'name': 'Created',
        'email': 'created@example.com',
        'password': 'short',
    })

    assert response.status_code == 422
    assert 'password' in response.get_json()['errors']


def test_show_user_with_posts(client, factory, auth_headers):
    user_id = factory.user(name='Writer')
    factory.post(user_id=user_id, title='Mine')

    response = client.get(f'/api/users/{user_id}', headers=auth_headers)

    data = response.get_json()['data']
    assert data['name'] == 'Writer'
    assert [p['title'] for p in data['posts']] == ['Mine']


def test_show_missing_user(client, auth_headers):
    response = client.get('/api/users/999', headers=auth_headers)

    assert response.status_code == 404
    assert response.get_json()['message'] == 'User not found'


def test_update_user_keeps_own_email(client, app, factory, auth_headers):
    """自分自身のメールアドレスは一意性チェックに引っかからない"""
    user_id = factory.user(email='same@example.com')

    response = client.put(f'/api/users/{user_id}', headers=auth_headers, json={
        'name': 'Renamed',
        'email': 'same@example.com',
    })

    assert response.status_code == 200
    with app.app_context():
        assert db.session.get(User, user_id).name == 'Renamed'


def test_update_user_email_taken_by_other(client, factory, auth_headers):
    factory.user(email='other@example.com')
    user_id = factory.user(email='mine@example.com')

    response = client.patch(f'/api/users/{user_id}', headers=auth_headers, json={'email': 'other@example.com'})

    assert response.status_code == 422
    assert response.get_json()['errors']['email'] == ['The email has already been taken.']


def test_update_user_password(client, app, factory, auth_headers):
    user_id = factory.user(password='password123')

    response = client.patch(f'/api/users/{user_id}', headers=auth_headers, json={'password': 'new-password'})

    assert response.status_code == 200
    with app.app_context():
        assert db.session.get(User, user_id).check_password('new-password')


def test_destroy_user_removes_posts_and_comments(client, app, factory, auth_headers):
    user_id = factory.user()
    post_id = factory.post(user_id=user_id)
    factory.comment('posts', post_id)
    factory.comment('categories', factory.category(), user_id=user_id)

    response = client.delete(f'/api/users/{user_id}', headers=auth_headers)

    assert response.status_code == 200
    assert response.get_json()['message'] == 'User deleted successfully'
    with app.app_context():
        assert db.session.get(User, user_id) is None
        assert db.session.get(Post, post_id) is None
        assert Comment.query.count() == 0


def test_password_is_only_set_through_set_password(app, factory):
    """パスワードはハッシュでのみ保持し、平文やハッシュを返す属性は持たない"""
    user_id = factory.user(password='password123')

    with app.app_context():
        user = db.session.get(User, user_id)
        assert not hasattr(user, 'password')
        assert user.password_hash != 'password123'
        assert user.check_password('password123')
