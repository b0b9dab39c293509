# tests/test_api_response.py
from http import HTTPStatus
from urllib.parse import urlparse, parse_qs

from werkzeug.datastructures import MultiDict

from blog_api.services.api_response import ApiResponseService, ResourceCollection
from blog_api.services.query_builder import PageResult

service = ApiResponseService()


def make_collection(items, total, page=1, per_page=2, args=None):
    result = PageResult(items=tuple(items), total=total, per_page=per_page, page=page)
    return ResourceCollection.from_page(result, lambda n: {'id': n}, path='http://localhost/api/posts', args=args)


def test_envelope_for_plain_data():
    body = service.envelope({'id': 1}, 'Post retrieved successfully')

    assert body == {
        'status': 200,
        'success': True,
        'message': 'Post retrieved successfully',
        'data': {'id': 1},
    }


def test_envelope_is_pure():
    """同じ入力からは常に同じエンベロープが作られる"""
    first = service.envelope([1, 2], 'ok', HTTPStatus.CREATED)
    second = service.envelope([1, 2], 'ok', HTTPStatus.CREATED)

    assert first == second
    assert first['status'] == 201


def test_envelope_for_collection_has_meta_and_links():
    collection = make_collection([3, 4], total=5, page=2)
    body = service.envelope(collection, 'Posts retrieved successfully')

    assert body['data'] == [{'id': 3}, {'id': 4}]
    assert body['meta'] == {
        'current_page': 2,
        'from': 3,
        'last_page': 3,
        'path': 'http://localhost/api/posts',
        'per_page': 2,
        'to': 4,
        'total': 5,
    }
    assert set(body['links']) == {'first', 'last', 'prev', 'next'}
    assert body['success'] is True


def test_collection_links_keep_other_query_params():
    args = MultiDict([('title', 'x'), ('group_by[]', 'title'), ('group_by[]', 'id'), ('page', '2')])
    collection = make_collection([3, 4], total=6, page=2, args=args)

    next_url = urlparse(collection.links['next'])
    query = parse_qs(next_url.query)
    assert query['page'] == ['3']
    assert query['title'] == ['x']
    assert query['group_by[]'] == ['title', 'id']
    assert parse_qs(urlparse(collection.links['prev']).query)['page'] == ['1']


def test_collection_links_on_single_page():
    collection = make_collection([1], total=1)

    assert collection.links['prev'] is None
    assert collection.links['next'] is None
    assert collection.links['first'] == collection.links['last']


def test_empty_collection():
    collection = make_collection([], total=0)

    assert collection.is_empty()
    assert collection.meta['from'] is None
    assert collection.meta['to'] is None
    assert collection.meta['last_page'] == 1


def test_error_envelope():
    assert service.error_envelope('Post not found') == {
        'status': 404,
        'success': False,
        'message': 'Post not found',
        'data': None,
    }


def test_error_envelope_with_validation_errors():
    body = service.error_envelope('The given data was invalid.', 422, {'title': ['This field is required.']})

    assert body['status'] == 422
    assert body['errors'] == {'title': ['This field is required.']}


def test_send_response_sets_status_code(app):
    with app.test_request_context():
        response = service.send_response(None, 'Created', HTTPStatus.CREATED)
        assert response.status_code == 201
        assert response.get_json()['status'] == 201

        response = service.send_error('Gone', HTTPStatus.GONE)
        assert response.status_code == 410
        assert response.get_json()['success'] is False
