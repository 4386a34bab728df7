"""Input validation helpers shared by the route modules."""
import re
from typing import Optional

from flask import request

from apps.dpis.utils.security import APIError

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')
PHONE_PATTERN = re.compile(r'^\+?[0-9]{7,15}$')
PASSWORD_SPECIAL_CHARS = '@#$%^&+='

MIN_WARD_NUMBER = 1
MAX_WARD_NUMBER = 33


class ValidationError(APIError):
    """Request validation failure; ``details`` maps the field to its message."""

    def __init__(self, field: str, message: str = None):
        if message is None:
            field, message = None, field
        super().__init__(
            message,
            code='VALIDATION_ERROR',
            status_code=400,
            details={field: message} if field else None,
        )
        self.field = field

    def __str__(self):
        return self.message


def json_body() -> dict:
    """Return the request JSON object, rejecting malformed bodies."""
    data = request.get_json(silent=True)
    if data is None:
        if request.get_data(cache=True):
            raise APIError('Malformed JSON request', 'INVALID_FORMAT', 400)
        return {}
    if not isinstance(data, dict):
        raise APIError('Request body must be a JSON object', 'INVALID_FORMAT', 400)
    return data


def normalize_email(value) -> str:
    """Lower-cased lookup key for an email field; non-strings give ''."""
    if not isinstance(value, str):
        return ''
    return value.strip().lower()


def validate_email(email: str) -> str:
    """Normalize and validate an email address."""
    if email is not None and not isinstance(email, str):
        raise ValidationError('email', 'Invalid email format')
    value = (email or '').strip().lower()
    if not value:
        raise ValidationError('email', 'Email is required')
    if len(value) > 255 or not EMAIL_PATTERN.match(value):
        raise ValidationError('email', 'Invalid email format')
    return value


def validate_phone(phone: Optional[str]) -> Optional[str]:
    if phone in (None, ''):
        return None
    value = re.sub(r'[\s-]', '', str(phone))
    if not PHONE_PATTERN.match(value):
        raise ValidationError('phoneNumber', 'Invalid phone number')
    return value


def password_problem(password: Optional[str]) -> Optional[str]:
    """Return why ``password`` is too weak, or None when it is acceptable."""
    if not isinstance(password, str) or len(password) < 8:
        return 'Password must be at least 8 characters long'
    if not re.search(r'[0-9]', password):
        return 'Password must contain at least one digit'
    if not re.search(r'[a-z]', password):
        return 'Password must contain at least one lowercase letter'
    if not re.search(r'[A-Z]', password):
        return 'Password must contain at least one uppercase letter'
    if not any(ch in PASSWORD_SPECIAL_CHARS for ch in password):
        return f'Password must contain at least one special character ({PASSWORD_SPECIAL_CHARS})'
    return None


def validate_ward_fields(is_ward_level_user, ward_number):
    """Return normalized ``(is_ward_level_user, ward_number)``.

    A ward-level user must name a ward in 1..33; other users carry no ward.
    """
    is_ward = parse_bool(is_ward_level_user) or False
    if not is_ward:
        return False, None
    if ward_number in (None, ''):
        raise ValidationError('wardNumber', 'Ward number is required for ward level users')
    try:
        ward = int(ward_number)
    except (TypeError, ValueError):
        raise ValidationError('wardNumber', 'Ward number must be an integer')
    if not MIN_WARD_NUMBER <= ward <= MAX_WARD_NUMBER:
        raise ValidationError(
            'wardNumber',
            f'Ward number must be between {MIN_WARD_NUMBER} and {MAX_WARD_NUMBER}'
        )
    return True, ward


def parse_bool(value) -> Optional[bool]:
    if value is None or value == '':
        return None
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ('true', '1', 'yes'):
        return True
    if text in ('false', '0', 'no'):
        return False
    raise ValidationError(f'Invalid boolean value: {value}')


def parse_int(value, field: str) -> Optional[int]:
    if value is None or value == '':
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(field, f'{field} must be an integer')


def parse_csv(value) -> list:
    if not value:
        return []
    return [part.strip() for part in str(value).split(',') if part.strip()]


def sanitize_string(value, max_length: int = 255) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    return text[:max_length]


def like_pattern(term: str) -> str:
    """``%term%`` for ILIKE with ``%``, ``_`` and ``\\`` escaped by backslash."""
    escaped = term.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')
    return f'%{escaped}%'
