# tests/test_errors.py


def test_unknown_route_returns_envelope(client):
    response = client.get('/api/nothing-here')

    assert response.status_code == 404
    assert response.get_json() == {'status': 404, 'success': False, 'message': 'Not found', 'data': None}


def test_method_not_allowed_returns_envelope(client):
    response = client.get('/api/login')

    assert response.status_code == 405
    body = response.get_json()
    assert body['status'] == 405
    assert body['success'] is False


def test_unknown_query_params_are_not_errors(client, factory, auth_headers):
    factory.category()

    response = client.get('/api/categories?sort_by=secret&group_by[]=secret&flavour=vanilla', headers=auth_headers)

    assert response.status_code == 200
    assert response.get_json()['meta']['total'] == 1


def test_json_array_body_is_rejected(client, auth_headers):
    """JSON 本文がオブジェクトでなければ 422 を返す"""
    response = client.post('/api/posts', headers=auth_headers, json=[1, 2])

    assert response.status_code == 422
    assert response.get_json() == {
        'status': 422, 'success': False, 'message': 'The given data was invalid.', 'data': None,
    }


def test_json_string_body_is_rejected_on_update(client, factory, auth_headers):
    category_id = factory.category()

    response = client.put(f'/api/categories/{category_id}', headers=auth_headers, json='abc')

    assert response.status_code == 422


def test_json_scalar_body_is_rejected_on_login(client):
    response = client.post('/api/login', json=42)

    assert response.status_code == 422
