"""Citizen portal tokens.

Citizen tokens are signed with ``CITIZEN_JWT_SECRET_KEY`` using PyJWT
directly, so a staff token never verifies as a citizen token and vice
versa. Revocation shares the ``token_blacklist`` table with staff tokens.
"""
import uuid
from datetime import datetime, timedelta, timezone
from functools import wraps

import jwt
from flask import current_app, g, request

from apps.dpis.models.token_blacklist import TokenBlacklist
from apps.dpis.utils.errors import CitizenAuthError
from apps.dpis.utils.time import from_timestamp

TOKEN_USE = 'citizen'
ALGORITHM = 'HS256'


def _secret() -> str:
    return current_app.config['CITIZEN_JWT_SECRET_KEY']


def _encode(citizen, token_type: str, hours: int) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        'sub': citizen.email or citizen.id,
        'citizenId': citizen.id,
        'email': citizen.email,
        'token_use': TOKEN_USE,
        'type': token_type,
        'jti': str(uuid.uuid4()),
        'iat': now,
        'exp': now + timedelta(hours=hours),
    }
    return jwt.encode(payload, _secret(), algorithm=ALGORITHM)


def generate_token(citizen) -> str:
    return _encode(citizen, 'access', int(current_app.config.get('CITIZEN_JWT_EXPIRATION_HOURS', 24)))


def generate_refresh_token(citizen) -> str:
    return _encode(citizen, 'refresh', int(current_app.config.get('CITIZEN_JWT_REFRESH_EXPIRATION_HOURS', 168)))


def access_expires_in() -> int:
    return int(current_app.config.get('CITIZEN_JWT_EXPIRATION_HOURS', 24)) * 3600


def decode_valid_token(token: str, expected_type: str = 'access'):
    """Return the claims of a usable citizen token, or None."""
    if not token:
        return None
    try:
        claims = jwt.decode(
            token,
            _secret(),
            algorithms=[ALGORITHM],
            options={'require': ['exp', 'jti', 'sub']},
        )
    except jwt.PyJWTError as exc:
        current_app.logger.warning("Citizen token validation failed: %s", type(exc).__name__)
        return None
    if claims.get('token_use') != TOKEN_USE or not claims.get('citizenId'):
        return None
    if expected_type and claims.get('type') != expected_type:
        return None
    if TokenBlacklist.is_token_revoked(claims.get('jti')):
        return None
    return claims


def validate_token(token: str) -> bool:
    return decode_valid_token(token) is not None


def invalidate_claims(claims: dict) -> None:
    TokenBlacklist.add_token_to_blacklist(
        jti=claims.get('jti'),
        token_type=claims.get('type', 'access'),
        subject=claims.get('citizenId'),
        expires_at=from_timestamp(claims['exp']),
        token_use=TOKEN_USE,
    )


def bearer_token():
    auth_header = request.headers.get('Authorization') or ''
    if not auth_header.lower().startswith('bearer '):
        return None
    return auth_header.split(' ', 1)[1].strip() or None


def citizen_jwt_required(fn):
    """Require a valid citizen access token; sets ``g.citizen_id``."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        token = bearer_token()
        if not token:
            raise CitizenAuthError('UNAUTHENTICATED')
        claims = decode_valid_token(token)
        if not claims:
            raise CitizenAuthError('INVALID_TOKEN')
        g.citizen_id = claims['citizenId']
        g.citizen_claims = claims
        return fn(*args, **kwargs)
    return wrapper


def auth_payload(citizen) -> dict:
    return {
        'token': generate_token(citizen),
        'refreshToken': generate_refresh_token(citizen),
        'citizenId': citizen.id,
        'email': citizen.email,
        'expiresIn': access_expires_in(),
        'state': citizen.state,
    }
