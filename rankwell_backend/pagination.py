"""
Page / limit pagination for function-based list views.
"""
import math

from rest_framework.exceptions import ValidationError

MAX_LIMIT = 100


def _positive_int(value, name, default):
    if value in (None, ''):
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError({name: ['Must be a positive integer.']})
    if number < 1:
        raise ValidationError({name: ['Must be a positive integer.']})
    return number


def paginate(request, queryset, default_limit=10, max_limit=MAX_LIMIT):
    """
    Slice `queryset` by the `page` and `limit` query params.

    Returns (items, meta). `limit` above `max_limit` is a validation error.
    """
    page = _positive_int(request.query_params.get('page'), 'page', 1)
    limit = _positive_int(request.query_params.get('limit'), 'limit', default_limit)
    if limit > max_limit:
        raise ValidationError({'limit': [f'Ensure this value is less than or equal to {max_limit}.']})

    total = queryset.count()
    offset = (page - 1) * limit
    items = list(queryset[offset:offset + limit])
    meta = {
        'total': total,
        'page': page,
        'limit': limit,
        'total_pages': max(1, math.ceil(total / limit)),
        'has_more': offset + len(items) < total,
    }
    return items, meta
