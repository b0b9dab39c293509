# blog_api/utils.py

import hashlib
import secrets

from flask_limiter.util import get_remote_address
from flask_login import current_user


def rate_limit_key():
    """ログイン済みならユーザーID、そうでなければクライアントIPでレート制限します。"""
    if current_user and current_user.is_authenticated:
        return f"user:{current_user.id}"
    return get_remote_address()


def parse_positive_int(value, default):
    """正の整数に変換できなければ default を返します。"""
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number >= 1 else default


def generate_token_secret():
    return secrets.token_hex(20)


def hash_token(secret):
    """トークン文字列の SHA-256 ハッシュ (DBにはこれだけを保存します)。"""
    return hashlib.sha256(secret.encode('utf-8')).hexdigest()


def isoformat(value):
    return value.isoformat() if value is not None else None


def format_short_timestamp(value):
    """日.月.年 時:分 形式 (例: 5.3.2024 09:07)。ゼロ埋めは時刻のみ。"""
    if value is None:
        return None
    return f"{value.day}.{value.month}.{value.year} {value:%H:%M}"
