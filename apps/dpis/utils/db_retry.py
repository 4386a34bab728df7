"""
Database connection retry for read-only endpoints.

Reference-data reads (provinces, districts, municipalities, wards) are safe
to repeat, so transient connection failures are retried with backoff before
answering 503.
"""
import time
import functools

from flask import current_app
from sqlalchemy.exc import OperationalError, InterfaceError, TimeoutError as SQLTimeoutError

from apps.dpis import db
from apps.dpis.utils.responses import error_envelope


# Exceptions that indicate a connection issue (should retry)
RETRIABLE_EXCEPTIONS = (
    OperationalError,
    InterfaceError,
    SQLTimeoutError,
    ConnectionError,
    TimeoutError,
)


def with_db_retry(max_retries=2, initial_delay=0.5, backoff_factor=2.0):
    """
    Decorator that retries a read-only route on connection failures.

    Usage:
        @with_db_retry(max_retries=2)
        def list_provinces():
            ...
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            last_exception = None
            delay = initial_delay

            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except RETRIABLE_EXCEPTIONS as e:
                    last_exception = e
                    db.session.rollback()

                    if attempt < max_retries:
                        current_app.logger.warning(
                            f"Database connection failed (attempt {attempt + 1}/{max_retries + 1}): {str(e)[:100]}. "
                            f"Retrying in {delay:.1f}s..."
                        )
                        time.sleep(delay)
                        delay *= backoff_factor
                        db.session.remove()
                    else:
                        current_app.logger.error(
                            f"Database connection failed after {max_retries + 1} attempts: {str(e)}"
                        )

            details = None
            if current_app.debug:
                details = {'exception': str(last_exception)[:200]}
            return error_envelope(
                'SERVICE_UNAVAILABLE',
                'Database connection temporarily unavailable',
                503,
                details,
            )

        return wrapper
    return decorator
