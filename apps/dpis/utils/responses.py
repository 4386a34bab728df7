"""Uniform JSON envelope for every API response.

    { "success": bool, "data": ..., "message": str | None,
      "meta": {page, size, totalElements, totalPages, isFirst, isLast} | None,
      "error": {code, message, details, status} | None }

Pages are 1-based throughout the API.
"""
import math

from flask import jsonify, request

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def api_response(data=None, message: str = None, status: int = 200, meta: dict = None):
    """Success envelope as a ``(response, status)`` tuple."""
    return jsonify({
        'success': True,
        'data': data,
        'message': message,
        'meta': meta,
        'error': None,
    }), status


def error_envelope(code: str, message: str, status: int, details=None):
    """Error envelope as a ``(response, status)`` tuple."""
    return jsonify({
        'success': False,
        'data': None,
        'message': message,
        'meta': None,
        'error': {
            'code': code,
            'message': message,
            'details': details,
            'status': status,
        },
    }), status


def page_meta(page: int, size: int, total: int) -> dict:
    total_pages = math.ceil(total / size) if size else 0
    return {
        'page': page,
        'size': size,
        'totalElements': total,
        'totalPages': total_pages,
        'isFirst': page == 1,
        'isLast': page >= total_pages,
    }


def paging_params(default_size: int = DEFAULT_PAGE_SIZE) -> tuple:
    """Read and validate ``page``/``size`` query parameters."""
    from apps.dpis.utils.validators import ValidationError

    try:
        page = int(request.args.get('page', 1))
        size = int(request.args.get('size', default_size))
    except (TypeError, ValueError):
        raise ValidationError('page', 'Page and size must be integers')
    if page < 1:
        raise ValidationError('page', 'Page must be at least 1')
    if size < 1:
        raise ValidationError('size', 'Size must be at least 1')
    return page, min(size, MAX_PAGE_SIZE)


def paginate(query, page: int, size: int, page_error=None):
    """Run a paged query and return ``(items, meta)``.

    ``page_error`` is raised when the requested page lies beyond the last one.
    """
    total = query.order_by(None).count()
    meta = page_meta(page, size, total)
    if meta['totalPages'] and page > meta['totalPages'] and page_error is not None:
        raise page_error
    items = query.offset((page - 1) * size).limit(size).all()
    return items, meta
