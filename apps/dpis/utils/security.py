"""Security utilities for the DPIS API.

This module provides:
- The base API error and standardized error responses (safe for production)
- MIME type validation for file uploads
"""
import logging
from typing import Optional, Dict, Any, Set
from flask import current_app

from apps.dpis.utils.responses import error_envelope


# =============================================================================
# Standardized Error Responses
# =============================================================================

class APIError(Exception):
    """Base exception for API errors with safe error messages."""

    def __init__(self, message: str, code: str = None, status_code: int = 500, details: Any = None):
        super().__init__(message)
        self.message = message
        self.code = code or 'ERROR'
        self.status_code = status_code
        self.details = details


class CodedError(APIError):
    """API error whose code, default message and status come from a table.

    Subclasses define ``CODES`` as ``{NAME: (code, default_message, status)}``
    and are raised by name, e.g. ``AuthError('USER_NOT_FOUND')``.
    """

    CODES: Dict[str, tuple] = {}

    def __init__(self, error: str, message: str = None, details: Any = None):
        code, default_message, status_code = self.CODES[error]
        super().__init__(message or default_message, code, status_code, details)
        self.error = error


def safe_error_response(
    message: str,
    exception: Optional[Exception] = None,
    status_code: int = 500,
    code: str = None,
    log_level: str = 'error',
    details: Any = None,
) -> tuple:
    """
    Create a standardized, safe error response.

    In production:
    - Only shows the safe message and structured details
    - Logs the full error server-side
    - Never exposes stack traces or internal details

    In debug mode:
    - Includes exception details for easier debugging

    Returns:
        Tuple of (response, status_code)
    """
    logger = current_app.logger if current_app else logging.getLogger(__name__)
    log_message = f"{message}"
    if exception:
        log_message += f": {type(exception).__name__}: {exception}"

    log_func = getattr(logger, log_level, logger.error)
    log_func(log_message)

    if details is None and current_app and current_app.config.get('DEBUG') and exception:
        details = {'exception': str(exception), 'exceptionType': type(exception).__name__}

    return error_envelope(code or 'ERROR', message, status_code, details)


def api_error_response(error: APIError) -> tuple:
    """Render a raised APIError as an error envelope."""
    level = 'error' if error.status_code >= 500 else 'warning'
    if error.status_code == 404:
        level = 'info'
    return safe_error_response(
        error.message,
        status_code=error.status_code,
        code=error.code,
        log_level=level,
        details=error.details,
    )


def error_404(message: str = "Not found", exception: Exception = None, code: str = None):
    """Not found error."""
    return safe_error_response(message, exception, 404, code or 'NOT_FOUND', 'info')


def error_405(message: str = "Method not allowed", exception: Exception = None, code: str = None):
    return safe_error_response(message, exception, 405, code or 'METHOD_NOT_ALLOWED', 'info')


def error_409(message: str = "Conflict", exception: Exception = None, code: str = None):
    """Conflict error (e.g., duplicate resource)."""
    return safe_error_response(message, exception, 409, code or 'CONFLICT', 'warning')


def error_429(message: str = "Too many requests", exception: Exception = None, code: str = None):
    """Rate limit exceeded."""
    return safe_error_response(message, exception, 429, code or 'RATE_LIMITED', 'warning')


def error_500(message: str = "Internal server error", exception: Exception = None, code: str = None):
    """Internal server error."""
    return safe_error_response(message, exception, 500, code or 'INTERNAL_SERVER_ERROR', 'error')


# =============================================================================
# MIME Type Validation
# =============================================================================

# Mapping of allowed extensions to their expected MIME types
MIME_TYPE_MAP: Dict[str, Set[str]] = {
    'jpg': {'image/jpeg', 'image/pjpeg', 'image/jpg'},
    'jpeg': {'image/jpeg', 'image/pjpeg', 'image/jpg'},
    'png': {'image/png', 'image/x-png'},
    'pdf': {'application/pdf'},
}

ALLOWED_IMAGE_MIMES = {
    'image/jpeg',
    'image/jpg',
    'image/pjpeg',
    'image/png',
    'image/x-png',
}

ALLOWED_DOCUMENT_MIMES = ALLOWED_IMAGE_MIMES | {'application/pdf'}


def validate_file_mime_type(
    file,
    allowed_mimes: Set[str] = None,
    extension: str = None
) -> str:
    """
    Validate file content type using magic bytes.

    Reads the file's magic bytes to determine its true type when python-magic
    is installed, otherwise trusts the expected type for the extension.

    Args:
        file: File-like object with read() and seek() methods
        allowed_mimes: Set of allowed MIME types (optional)
        extension: Expected extension to validate against (optional, with or without leading dot)

    Returns:
        Detected MIME type

    Raises:
        ValidationError: If MIME type is not allowed or doesn't match extension
    """
    from apps.dpis.utils.validators import ValidationError

    normalized_ext = None
    if extension:
        normalized_ext = extension.lower().strip().lstrip('.')

    fallback_from_extension = False
    try:
        import magic

        file.seek(0)
        header = file.read(2048)
        file.seek(0)
        detected_mime = magic.from_buffer(header, mime=True)

    except ImportError:
        current_app.logger.warning(
            "python-magic not installed - MIME validation limited to file extensions"
        )
        fallback_from_extension = True
        if normalized_ext:
            detected_mime = sorted(MIME_TYPE_MAP.get(normalized_ext, {'application/octet-stream'}))[0]
        else:
            detected_mime = 'application/octet-stream'

    except Exception as e:
        current_app.logger.error(f"MIME detection error: {e}")
        fallback_from_extension = True
        detected_mime = 'application/octet-stream'

    # If magic could not identify the content, fall back to the expected MIME from extension
    if detected_mime in ('application/octet-stream', 'binary/octet-stream', 'application/x-empty', 'inode/x-empty', None):
        if normalized_ext:
            expected_mimes = MIME_TYPE_MAP.get(normalized_ext, set())
            if expected_mimes:
                detected_mime = sorted(expected_mimes)[0]
                fallback_from_extension = True

    if allowed_mimes and detected_mime not in allowed_mimes:
        expected_mimes = MIME_TYPE_MAP.get(normalized_ext, set()) if normalized_ext else set()
        if not (fallback_from_extension and expected_mimes & allowed_mimes):
            raise ValidationError(
                'file',
                f'File type not allowed. Detected: {detected_mime}. '
                f'Allowed: {", ".join(sorted(allowed_mimes))}'
            )

    if normalized_ext:
        expected_mimes = MIME_TYPE_MAP.get(normalized_ext, set())
        if expected_mimes and detected_mime not in expected_mimes:
            raise ValidationError(
                'file',
                f'File content does not match extension .{normalized_ext}. '
                f'Detected: {detected_mime}'
            )

    return detected_mime
