"""Rate limit decorators used by the authentication blueprints."""
from flask import request

from apps.dpis import limiter


def limit(limit_string):
    """Apply rate limit if limiter is available."""
    def decorator(f):
        if limiter:
            return limiter.limit(limit_string)(f)
        return f
    return decorator


def limit_with_key(limit_value, key_func):
    """Apply rate limit with custom key function if limiter is available."""
    def decorator(f):
        if limiter:
            return limiter.limit(limit_value, key_func=key_func)(f)
        return f
    return decorator


def password_reset_email_key() -> str:
    """Rate limit key based on normalized email for password reset requests."""
    data = request.get_json(silent=True) or {}
    email = data.get('email') if isinstance(data, dict) else None
    email = (email or '').strip().lower() if isinstance(email, str) else ''
    if email:
        return f"pwd-reset-email:{email}"
    return request.remote_addr or 'unknown'
