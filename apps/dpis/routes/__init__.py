"""API Routes - Import all blueprints here."""

from .auth import auth_bp
from .users import users_bp
from .citizen_auth import citizen_auth_bp
from .citizen_profile import citizen_profile_bp
from .citizens import citizens_bp
from .provinces import provinces_bp
from .districts import districts_bp
from .municipalities import municipalities_bp
from .wards import wards_bp

__all__ = [
    'auth_bp',
    'users_bp',
    'citizen_auth_bp',
    'citizen_profile_bp',
    'citizens_bp',
    'provinces_bp',
    'districts_bp',
    'municipalities_bp',
    'wards_bp',
]
