# blog_api/services/query_builder.py
"""
汎用クエリビルダー。

HTTP のクエリパラメータを、エンティティ種別ごとの許可リストに従って
WHERE / ORDER BY / GROUP BY / ページネーションへ変換します。

許可リストに無いフィールドは常に黙って無視されます。
クライアントにエラーは返しません。

パイプラインの順序は固定です (filter → sort → group → paginate)。
順序を入れ替えた呼び出しはガードしていません。
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, List, Mapping, Optional, Tuple

import sqlalchemy as sa
from flask import current_app

from blog_api.utils import parse_positive_int

logger = logging.getLogger(__name__)

DEFAULT_SORT_BY = 'id'
DEFAULT_SORT_ORDER = 'asc'
DEFAULT_PER_PAGE = 10
# フィルタ以外にパイプラインが読むパラメータ
PIPELINE_PARAMS = ('page', 'per_page', 'sort_by', 'sort_order')


@dataclass(frozen=True)
class AllowListEntry:
    """1つのエンティティ種別に対する許可リスト。設定の順序を保持します。"""

    filterable: Tuple[str, ...] = ()
    sortable: Tuple[str, ...] = ()
    groupable: Tuple[str, ...] = ()


EMPTY_ENTRY = AllowListEntry()


class AllowListRegistry:
    """
    エンティティ種別 → AllowListEntry の読み取り専用レジストリ。
    起動時に一度だけ構築され、その後は変更されません。
    """

    def __init__(self, entries: Optional[Mapping[str, AllowListEntry]] = None):
        self._entries = dict(entries or {})

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Mapping[str, Iterable[str]]]) -> 'AllowListRegistry':
        """config.QUERY_BUILDER 形式の辞書からレジストリを作ります。"""
        entries = {}
        for entity_type, options in (mapping or {}).items():
            entries[entity_type] = AllowListEntry(
                filterable=tuple(options.get('filters', ())),
                sortable=tuple(options.get('sorts', ())),
                groupable=tuple(options.get('group_by', ())),
            )
        return cls(entries)

    def entry(self, entity_type: str) -> AllowListEntry:
        return self._entries.get(entity_type, EMPTY_ENTRY)

    def allowed_filters(self, entity_type: str) -> frozenset:
        return frozenset(self.entry(entity_type).filterable)

    def allowed_sorts(self, entity_type: str) -> frozenset:
        return frozenset(self.entry(entity_type).sortable)

    def allowed_group_by(self, entity_type: str) -> frozenset:
        return frozenset(self.entry(entity_type).groupable)

    def entity_types(self):
        return tuple(self._entries)

    def __contains__(self, entity_type):
        return entity_type in self._entries


@dataclass(frozen=True)
class QueryRequest:
    """1リクエスト分のクエリパラメータ。"""

    params: Mapping[str, Any] = field(default_factory=dict)
    group_by: Tuple[str, ...] = ()

    @classmethod
    def from_args(cls, args) -> 'QueryRequest':
        """
        request.args (MultiDict) または普通の dict から作成します。
        group_by は `group_by[]=a&group_by[]=b` と `group_by=a&group_by=b` の両方を受け付けます。
        dict の場合、group_by はリスト/タプルの時だけ有効です。
        """
        if hasattr(args, 'getlist'):
            params = {key: args.get(key) for key in args.keys()}
            group_by = args.getlist('group_by[]') or args.getlist('group_by')
        else:
            params = {key: value for key, value in args.items() if not isinstance(value, (list, tuple))}
            raw = args.get('group_by[]', args.get('group_by'))
            group_by = raw if isinstance(raw, (list, tuple)) else ()
        return cls(params=params, group_by=tuple(str(name) for name in group_by))

    def has(self, name: str) -> bool:
        return name in self.params

    def canonical_items(self, entry: AllowListEntry) -> List[Tuple[str, Any]]:
        """
        entry で実際に使われるパラメータだけを、キー順の (key, value) リストで返します。
        無視されるパラメータを取り除くので、キャッシュキーやページリンクに使えます。
        """
        names = sorted(set(entry.filterable) | set(PIPELINE_PARAMS))
        items = [(name, self.params[name]) for name in names if self.has(name)]
        seen = set()
        for name in self.group_by:
            if name in entry.groupable and name not in seen:
                seen.add(name)
                items.append(('group_by[]', name))
        return items

    @property
    def sort_by(self):
        return self.params.get('sort_by', DEFAULT_SORT_BY)

    @property
    def sort_order(self):
        order = self.params.get('sort_order', DEFAULT_SORT_ORDER)
        return str(order).lower() if order is not None else DEFAULT_SORT_ORDER

    @property
    def page(self):
        return self.params.get('page')

    @property
    def per_page(self):
        return self.params.get('per_page')


@dataclass(frozen=True)
class PageResult:
    """ページネーションの結果。作成後は変更しません。"""

    items: Tuple[Any, ...]
    total: int
    per_page: int
    page: int

    @property
    def last_page(self) -> int:
        if self.total == 0 or self.per_page < 1:
            return 1
        return int(math.ceil(self.total / float(self.per_page)))

    @property
    def first_item(self) -> Optional[int]:
        if not self.items:
            return None
        return (self.page - 1) * self.per_page + 1

    @property
    def last_item(self) -> Optional[int]:
        if not self.items:
            return None
        return self.first_item + len(self.items) - 1

    @property
    def has_next(self) -> bool:
        return self.page < self.last_page

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    def is_empty(self) -> bool:
        return not self.items

    def __iter__(self):
        return iter(self.items)

    def __len__(self):
        return len(self.items)


class _Unmatchable(Exception):
    """フィルタ値をカラムの型に変換できなかった場合。"""


def _coerce(attribute, value):
    if value is None or value == '':
        return None
    try:
        python_type = attribute.type.python_type
    except NotImplementedError:
        return value
    try:
        if python_type is str:
            return str(value)
        if python_type is bool:
            return str(value).lower() in ('1', 'true', 'yes', 'on')
        if python_type is datetime:
            return value if isinstance(value, datetime) else datetime.fromisoformat(str(value))
        return python_type(value)
    except (TypeError, ValueError) as e:
        raise _Unmatchable(str(e))


class QueryBuilder:
    """
    フィルタ・ソート・グループ化・ページネーションを適用する Flask 拡張。

    AbstractQuery には SQLAlchemy の Select を使います。
    各 apply_* は Select を受け取り、新しい Select を返します (実行はしません)。
    """

    def __init__(self, app=None, registry: Optional[AllowListRegistry] = None):
        self._registry = registry
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        app.config.setdefault('QUERY_BUILDER', {})
        app.config.setdefault('API_DEFAULT_PER_PAGE', DEFAULT_PER_PAGE)
        app.config.setdefault('API_MAX_PER_PAGE', None)
        registry = AllowListRegistry.from_mapping(app.config['QUERY_BUILDER'])
        app.extensions['query_builder'] = registry
        app.logger.debug(f"Query builder allow-lists loaded for: {', '.join(registry.entity_types())}")

    @property
    def registry(self) -> AllowListRegistry:
        if self._registry is not None:
            return self._registry
        return current_app.extensions['query_builder']

    # --- 内部ヘルパー ---

    @staticmethod
    def _entity(query):
        descriptions = query.column_descriptions
        if not descriptions:
            return None
        return descriptions[0].get('entity')

    def _attribute(self, query, name, entity_type):
        """許可リストの名前をモデルのカラム属性に解決します。モデルに無ければ None。"""
        entity = self._entity(query)
        if entity is None:
            logger.warning(f"Query for '{entity_type}' has no mapped entity; '{name}' skipped.")
            return None
        mapper = sa.inspect(entity)
        if name not in mapper.column_attrs:
            logger.warning(f"Allow-listed field '{name}' is not a column of {entity.__name__} ('{entity_type}'); skipped.")
            return None
        return getattr(entity, name)

    # --- パイプライン ---

    def apply_filters(self, query, request: QueryRequest, entity_type: str):
        """許可されたフィールドのうち、リクエストに存在するものへ等価条件を追加します (AND 結合)。"""
        for name in self.registry.entry(entity_type).filterable:
            if not request.has(name):
                continue
            attribute = self._attribute(query, name, entity_type)
            if attribute is None:
                continue
            try:
                value = _coerce(attribute, request.params[name])
            except _Unmatchable:
                # カラムの型にならない値とは何も一致しない
                query = query.where(sa.false())
                continue
            if value is None:
                query = query.where(attribute.is_(None))
            else:
                query = query.where(attribute == value)
            logger.debug(f"[{entity_type}] filter {name} = {value!r}")
        return query

    def apply_sorting(self, query, request: QueryRequest, entity_type: str):
        """sort_by が許可リストにあれば ORDER BY を1つだけ追加します。無ければ何もしません。"""
        sort_by = request.sort_by
        if sort_by not in self.registry.allowed_sorts(entity_type):
            return query
        attribute = self._attribute(query, sort_by, entity_type)
        if attribute is None:
            return query
        if request.sort_order == 'desc':
            clause = attribute.desc()
        else:
            clause = attribute.asc()
        logger.debug(f"[{entity_type}] order by {sort_by} {request.sort_order}")
        return query.order_by(clause)

    def apply_grouping(self, query, request: QueryRequest, entity_type: str):
        """
        group_by をリクエストの順序のまま許可リストと突き合わせます。
        残ったフィールドが無ければ GROUP BY は追加しません。
        """
        allowed = self.registry.allowed_group_by(entity_type)
        columns = []
        seen = set()
        for name in request.group_by:
            if name not in allowed or name in seen:
                continue
            seen.add(name)
            attribute = self._attribute(query, name, entity_type)
            if attribute is not None:
                columns.append(attribute)
        if not columns:
            return query
        logger.debug(f"[{entity_type}] group by {', '.join(c.key for c in columns)}")
        return query.group_by(*columns)

    def apply_pagination(self, query, request: QueryRequest) -> PageResult:
        """ページの切り出しと総件数の計算を Flask-SQLAlchemy に委譲します。"""
        config = current_app.config
        per_page = parse_positive_int(request.per_page, config['API_DEFAULT_PER_PAGE'])
        page = parse_positive_int(request.page, 1)
        db = current_app.extensions['sqlalchemy']
        pagination = db.paginate(
            query,
            page=page,
            per_page=per_page,
            max_per_page=config['API_MAX_PER_PAGE'],
            error_out=False,
            count=True,
        )
        return PageResult(
            items=tuple(pagination.items),
            total=pagination.total or 0,
            per_page=pagination.per_page,
            page=pagination.page,
        )

    def build(self, query, request: QueryRequest, entity_type: str) -> PageResult:
        """filter → sort → group → paginate の順で全て適用します。"""
        query = self.apply_filters(query, request, entity_type)
        query = self.apply_sorting(query, request, entity_type)
        query = self.apply_grouping(query, request, entity_type)
        return self.apply_pagination(query, request)
