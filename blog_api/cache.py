# blog_api/cache.py
"""
レスポンスキャッシュ。

一覧レスポンスをリクエストURLのフィンガープリントで保存し、
エンティティ種別のタグ単位で無効化します。
書き込みが発生したエンティティのタグだけを破棄するので、
キャッシュ全体を捨てる必要はありません。
"""

import hashlib
import logging
import threading
import time
from collections import OrderedDict, defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Optional, Set

from flask import current_app

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """キャッシュされた値とそのタグ。"""

    key: str
    value: Any
    tags: frozenset = field(default_factory=frozenset)
    created_at: float = field(default_factory=time.time)


class TaggedCache:
    """
    スレッドセーフなタグ付きインメモリキャッシュ。
    max_entries を超えると、最も長く使われていないエントリから追い出します (LRU)。
    """

    def __init__(self, max_entries: Optional[int] = None):
        self.max_entries = max_entries
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._tag_index: Dict[str, Set[str]] = defaultdict(set)
        self._lock = threading.RLock()
        self._stats = {'hits': 0, 'misses': 0, 'invalidations': 0, 'evictions': 0}

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._stats['misses'] += 1
                return None
            self._entries.move_to_end(key)
            self._stats['hits'] += 1
            return entry.value

    def set(self, key: str, value: Any, tags: Iterable[str] = ()) -> None:
        with self._lock:
            if key in self._entries:
                self._evict(key)
            entry = CacheEntry(key=key, value=value, tags=frozenset(tags))
            self._entries[key] = entry
            for tag in entry.tags:
                self._tag_index[tag].add(key)
            while self.max_entries and len(self._entries) > self.max_entries:
                self._evict(next(iter(self._entries)))
                self._stats['evictions'] += 1

    def remember(self, key: str, tags: Iterable[str], compute: Callable[[], Any]) -> Any:
        """キャッシュにあればそれを返し、無ければ compute() の結果を保存して返します。"""
        value = self.get(key)
        if value is not None:
            return value
        value = compute()
        self.set(key, value, tags)
        return value

    def invalidate(self, *tags: str) -> int:
        """指定タグの付いたエントリを全て削除し、削除件数を返します。"""
        removed = 0
        with self._lock:
            for tag in tags:
                for key in list(self._tag_index.pop(tag, ())):
                    if key in self._entries:
                        self._evict(key)
                        removed += 1
            self._stats['invalidations'] += 1
        return removed

    def flush(self) -> None:
        with self._lock:
            self._entries.clear()
            self._tag_index.clear()

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._stats, size=len(self._entries))

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _evict(self, key: str) -> None:
        entry = self._entries.pop(key)
        for tag in entry.tags:
            keys = self._tag_index.get(tag)
            if keys is not None:
                keys.discard(key)
                if not keys:
                    del self._tag_index[tag]


def fingerprint(namespace: str, url: str) -> str:
    """URL から名前空間付きのキャッシュキーを作ります。"""
    return f"{namespace}_{hashlib.sha256(url.encode('utf-8')).hexdigest()}"


class ResponseCache:
    """
    TaggedCache をアプリケーションごとに保持する Flask 拡張。
    RESPONSE_CACHE_ENABLED が False の場合、remember は毎回計算し、何も保存しません。
    """

    def __init__(self, app=None):
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        app.config.setdefault('RESPONSE_CACHE_ENABLED', True)
        app.config.setdefault('RESPONSE_CACHE_MAX_ENTRIES', 1000)
        app.extensions['response_cache'] = TaggedCache(max_entries=app.config['RESPONSE_CACHE_MAX_ENTRIES'])

    @property
    def store(self) -> TaggedCache:
        return current_app.extensions['response_cache']

    def remember(self, key, tags, compute):
        if not current_app.config['RESPONSE_CACHE_ENABLED']:
            return compute()
        return self.store.remember(key, tags, compute)

    def invalidate(self, *tags):
        removed = self.store.invalidate(*tags)
        if removed:
            logger.debug("Response cache invalidated %d entries for tags %s", removed, tags)
        return removed

    def flush(self):
        self.store.flush()
