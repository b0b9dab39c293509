# blog_api/decorators.py

from functools import wraps
import logging

from blog_api.extensions import response_cache

logger = logging.getLogger(__name__)


def invalidates_cache(*tags):
    """
    書き込み系のビューに付けるデコレータ。
    レスポンスが成功 (ステータス < 400) の場合だけ、指定タグのキャッシュを破棄します。
    :param tags: 破棄するキャッシュタグ (例: 'posts', 'comments')
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            response = f(*args, **kwargs)
            if response.status_code < 400:
                removed = response_cache.invalidate(*tags)
                logger.debug(f"{f.__name__}: cache tags {tags} invalidated ({removed} entries)")
            return response
        return decorated_function
    return decorator
