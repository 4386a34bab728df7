"""Utility functions for the API.

Only model-free helpers are re-exported here; models import
``apps.dpis.utils.time`` and would otherwise import themselves.
"""

from .validators import (
    validate_email,
    validate_phone,
    validate_ward_fields,
    password_problem,
    sanitize_string,
    json_body,
    ValidationError,
)

from .responses import (
    api_response,
    error_envelope,
    page_meta,
    paginate,
    paging_params,
)

from .security import (
    APIError,
    CodedError,
    safe_error_response,
    api_error_response,
)

__all__ = [
    'validate_email',
    'validate_phone',
    'validate_ward_fields',
    'password_problem',
    'sanitize_string',
    'json_body',
    'ValidationError',
    'api_response',
    'error_envelope',
    'page_meta',
    'paginate',
    'paging_params',
    'APIError',
    'CodedError',
    'safe_error_response',
    'api_error_response',
]
