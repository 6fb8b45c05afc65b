import math


def safe_str(value):
    """Return string representation of value, or empty string for None."""
    return "" if value is None else str(value)


def parse_bool(value, default=False):
    """Interpret query-string style booleans ('true', '1', 'yes')."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return safe_str(value).strip().lower() in ('1', 'true', 'yes', 'on')


def page_params(query_params, default_limit=10, max_limit=100):
    """Read ``page``/``limit`` from the query string, clamped to sane values."""
    try:
        page = int(query_params.get('page', 1))
    except (TypeError, ValueError):
        page = 1
    try:
        limit = int(query_params.get('limit', default_limit))
    except (TypeError, ValueError):
        limit = default_limit
    return max(page, 1), min(max(limit, 1), max_limit)


def paginate(queryset, page, limit):
    """Slice a queryset and return ``(items, total, total_pages)``."""
    total = queryset.count()
    offset = (page - 1) * limit
    items = queryset[offset:offset + limit]
    total_pages = math.ceil(total / limit) if limit else 0
    return items, total, total_pages
