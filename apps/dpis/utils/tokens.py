"""Staff JWT issuance and validation on top of Flask-JWT-Extended.

Access tokens carry the user's email as subject plus ``email``,
``permissions`` and ``token_use`` claims. Refresh tokens are marked
``type=refresh`` by Flask-JWT-Extended itself.
"""
from flask import current_app
from flask_jwt_extended import create_access_token, create_refresh_token, decode_token
from jwt.exceptions import PyJWTError
from flask_jwt_extended.exceptions import JWTExtendedException

from apps.dpis.models.token_blacklist import TokenBlacklist
from apps.dpis.utils.time import from_timestamp

TOKEN_USE = 'user'


def permission_claims(user) -> list:
    return sorted(p.authority for p in user.effective_permissions())


def generate_token(user) -> str:
    return create_access_token(
        identity=user.email,
        additional_claims={
            'email': user.email,
            'permissions': permission_claims(user),
            'token_use': TOKEN_USE,
        },
    )


def generate_refresh_token(user) -> str:
    return create_refresh_token(
        identity=user.email,
        additional_claims={'token_use': TOKEN_USE},
    )


def access_expires_in() -> int:
    """Access token lifetime in seconds."""
    return int(current_app.config['JWT_ACCESS_TOKEN_EXPIRES'].total_seconds())


def decode_valid_token(token: str, expected_type: str = None):
    """Decode ``token`` and return its claims, or None when it is unusable.

    A token is usable when its signature verifies, it has not expired,
    it was issued for staff, and its ``jti`` is not blacklisted.
    """
    if not token:
        return None
    try:
        claims = decode_token(token)
    except (PyJWTError, JWTExtendedException) as exc:
        current_app.logger.warning("Token validation failed: %s", type(exc).__name__)
        return None
    if claims.get('token_use') != TOKEN_USE:
        return None
    if expected_type and claims.get('type') != expected_type:
        return None
    if TokenBlacklist.is_token_revoked(claims.get('jti')):
        return None
    return claims


def validate_token(token: str) -> bool:
    return decode_valid_token(token) is not None


def extract_email(token: str):
    claims = decode_valid_token(token)
    return claims.get('sub') if claims else None


def invalidate_claims(claims: dict) -> None:
    """Blacklist a decoded token until its natural expiry."""
    TokenBlacklist.add_token_to_blacklist(
        jti=claims.get('jti'),
        token_type=claims.get('type', 'access'),
        subject=claims.get('sub'),
        expires_at=from_timestamp(claims['exp']),
        token_use=TOKEN_USE,
    )


def invalidate_token(token: str) -> bool:
    claims = decode_valid_token(token)
    if not claims:
        return False
    invalidate_claims(claims)
    return True


def auth_payload(user) -> dict:
    """Login/refresh response body for a staff user."""
    return {
        'token': generate_token(user),
        'refreshToken': generate_refresh_token(user),
        'userId': user.id,
        'email': user.email,
        'permissions': permission_claims(user),
        'roles': sorted(r.authority for r in user.role_types),
        'expiresIn': access_expires_in(),
        'isWardLevelUser': user.is_ward_level_user,
        'wardNumber': user.ward_number,
    }
