"""Staff authentication and permission decorators."""
from functools import wraps

from flask import g
from flask_jwt_extended import get_jwt, get_jwt_identity, verify_jwt_in_request

from apps.dpis.models.permission import PermissionType
from apps.dpis.models.user import User
from apps.dpis.utils.errors import AuthError


def get_current_user():
    """Return the user named by the current staff token, or None."""
    if get_jwt().get('token_use') != 'user':
        return None
    email = get_jwt_identity()
    if not email:
        return None
    return User.query.filter_by(email=email).first()


def _load_active_user():
    verify_jwt_in_request()
    user = get_current_user()
    if not user or user.is_deleted:
        raise AuthError('UNAUTHENTICATED')
    g.current_user = user
    return user


def user_required(fn):
    """Require a valid staff access token for an existing, undeleted user."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        _load_active_user()
        return fn(*args, **kwargs)
    return wrapper


def permission_required(*permissions: PermissionType):
    """Require every listed permission, honouring the permission hierarchy."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = _load_active_user()
            missing = [p for p in permissions if not user.has_permission(p)]
            if missing:
                raise AuthError(
                    'INSUFFICIENT_PERMISSIONS',
                    details={'required': [p.authority for p in missing]},
                )
            return fn(*args, **kwargs)
        return wrapper
    return decorator
