"""
DPIS - Database Models
Import all models here for Flask-Migrate to detect them
"""
from apps.dpis import db

from .permission import PermissionType, RoleType, Role, RolePermission
from .user import User, UserPermission
from .token_blacklist import TokenBlacklist
from .password_reset_otp import PasswordResetOtp
from .province import Province
from .district import District
from .municipality import Municipality, MunicipalityType
from .ward import Ward
from .citizen import Citizen, CitizenState

__all__ = [
    'PermissionType',
    'RoleType',
    'Role',
    'RolePermission',
    'User',
    'UserPermission',
    'TokenBlacklist',
    'PasswordResetOtp',
    'Province',
    'District',
    'Municipality',
    'MunicipalityType',
    'Ward',
    'Citizen',
    'CitizenState',
]
