"""Page/limit and query-parameter helpers shared by the list endpoints."""
from __future__ import annotations

import math
from decimal import Decimal, InvalidOperation
from typing import Optional, Tuple

from core.exceptions import InvalidParameter


def _int(value, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def page_params(params, default_limit: int = 20, max_limit: int = 100) -> Tuple[int, int]:
    page = max(1, _int(params.get('page'), 1))
    limit = min(max_limit, max(1, _int(params.get('limit'), default_limit)))
    return page, limit


def paginate(qs, page: int, limit: int):
    """Return ``(items, total)`` for the requested page of ``qs``."""
    total = qs.count()
    start = (page - 1) * limit
    return list(qs[start:start + limit]), total


def page_meta(page: int, limit: int, total: int) -> dict:
    return {'page': page, 'limit': limit, 'total': total, 'pages': math.ceil(total / limit) if limit else 0}


def catalog_meta(page: int, limit: int, total: int) -> dict:
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        'currentPage': page,
        'totalPages': total_pages,
        'totalCount': total,
        'hasNextPage': page < total_pages,
        'hasPrevPage': page > 1,
        'limit': limit,
    }


def content_meta(page: int, limit: int, total: int) -> dict:
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        'page': page,
        'limit': limit,
        'total': total,
        'totalPages': total_pages,
        'hasNextPage': page < total_pages,
        'hasPrevPage': page > 1,
    }


def truthy(value) -> bool:
    return str(value).lower() in {'1', 'true', 'yes'}


def id_param(params, name: str) -> Optional[int]:
    """Positive integer query parameter, ``None`` when absent; 400 otherwise."""
    raw = params.get(name)
    if raw in (None, '', 'all'):
        return None
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise InvalidParameter(f'{name} must be an integer')
    if value < 1:
        raise InvalidParameter(f'{name} must be positive')
    return value


def decimal_param(params, name: str) -> Optional[Decimal]:
    raw = params.get(name)
    if raw in (None, ''):
        return None
    try:
        value = Decimal(str(raw))
    except InvalidOperation:
        raise InvalidParameter(f'{name} must be a number')
    if not value.is_finite():
        raise InvalidParameter(f'{name} must be a number')
    return value
