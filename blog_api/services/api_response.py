# blog_api/services/api_response.py
"""
全てのレスポンスを同じ形のエンベロープに包みます。

    成功: {"status": 200, "success": true,  "message": "...", "data": ...}
    失敗: {"status": 404, "success": false, "message": "...", "data": null}

ステータスコードは HTTP ステータスとしても、本文の "status" としても返します。
"""

from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Callable, Dict, List, Mapping, Optional
from urllib.parse import urlencode

from flask import jsonify


@dataclass(frozen=True)
class ResourceCollection:
    """ページネーション情報付きのシリアライズ済みコレクション。"""

    items: List[Dict[str, Any]] = field(default_factory=list)
    meta: Dict[str, Any] = field(default_factory=dict)
    links: Dict[str, Optional[str]] = field(default_factory=dict)

    @classmethod
    def from_page(cls, page, serializer: Callable[[Any], Dict[str, Any]], path: str,
                  args=None) -> 'ResourceCollection':
        """
        PageResult から作ります。links は path と元のクエリ文字列 (page だけ差し替え) から組み立てます。
        args は MultiDict、dict、(key, value) のリストのいずれか。
        """
        if hasattr(args, 'getlist'):
            pairs = args.items(multi=True)
        elif isinstance(args, Mapping):
            pairs = args.items()
        else:
            pairs = args or ()
        query = [(key, value) for key, value in pairs if key != 'page']

        def page_url(number):
            return f"{path}?{urlencode(query + [('page', number)])}"

        return cls(
            items=[serializer(item) for item in page.items],
            meta={
                'current_page': page.page,
                'from': page.first_item,
                'last_page': page.last_page,
                'path': path,
                'per_page': page.per_page,
                'to': page.last_item,
                'total': page.total,
            },
            links={
                'first': page_url(1),
                'last': page_url(page.last_page),
                'prev': page_url(page.page - 1) if page.has_prev else None,
                'next': page_url(page.page + 1) if page.has_next else None,
            },
        )

    def is_empty(self) -> bool:
        return not self.items


class ApiResponseService:
    """ステートレスなレスポンス整形サービス。"""

    def envelope(self, result, message, code=HTTPStatus.OK) -> Dict[str, Any]:
        """(result, message, code) からエンベロープ辞書を作る純粋関数。"""
        code = int(code)
        if isinstance(result, ResourceCollection):
            return {
                'data': result.items,
                'links': result.links,
                'meta': result.meta,
                'status': code,
                'success': True,
                'message': message,
            }
        return {
            'status': code,
            'success': True,
            'message': message,
            'data': result,
        }

    def error_envelope(self, error, code=HTTPStatus.NOT_FOUND, errors=None) -> Dict[str, Any]:
        body = {
            'status': int(code),
            'success': False,
            'message': error,
            'data': None,
        }
        if errors:
            body['errors'] = errors
        return body

    def send_response(self, result, message, code=HTTPStatus.OK):
        response = jsonify(self.envelope(result, message, code))
        response.status_code = int(code)
        return response

    def send_error(self, error, code=HTTPStatus.NOT_FOUND, errors=None):
        response = jsonify(self.error_envelope(error, code, errors))
        response.status_code = int(code)
        return response

    def send_payload(self, payload, code=HTTPStatus.OK):
        """envelope() 済みの辞書 (キャッシュから取り出したもの等) をそのまま返します。"""
        response = jsonify(payload)
        response.status_code = int(code)
        return response
