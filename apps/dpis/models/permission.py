"""Permission and role types, and the role tables.

Permissions form a small hierarchy: a master permission such as
``MANAGE_USERS`` implies every narrower user permission, and
``SYSTEM_ADMIN`` implies every master permission.
"""
from enum import Enum

from apps.dpis import db
from apps.dpis.utils.time import utc_now


class PermissionType(str, Enum):
    # User management
    MANAGE_USERS = 'MANAGE_USERS'
    VIEW_USER = 'VIEW_USER'
    CREATE_USER = 'CREATE_USER'
    APPROVE_USER = 'APPROVE_USER'
    EDIT_USER = 'EDIT_USER'
    DELETE_USER = 'DELETE_USER'
    RESET_USER_PASSWORD = 'RESET_USER_PASSWORD'
    MANAGE_USER_ROLES = 'MANAGE_USER_ROLES'

    # Citizen management
    MANAGE_CITIZENS = 'MANAGE_CITIZENS'
    VIEW_CITIZEN = 'VIEW_CITIZEN'
    CREATE_CITIZEN = 'CREATE_CITIZEN'
    EDIT_CITIZEN = 'EDIT_CITIZEN'
    DELETE_CITIZEN = 'DELETE_CITIZEN'
    APPROVE_CITIZEN = 'APPROVE_CITIZEN'

    # Profile management
    MANAGE_PROFILE = 'MANAGE_PROFILE'

    # Cooperatives
    MANAGE_COOPERATIVES = 'MANAGE_COOPERATIVES'
    VIEW_COOPERATIVE = 'VIEW_COOPERATIVE'
    CREATE_COOPERATIVE = 'CREATE_COOPERATIVE'
    EDIT_COOPERATIVE = 'EDIT_COOPERATIVE'
    DELETE_COOPERATIVE = 'DELETE_COOPERATIVE'
    APPROVE_COOPERATIVE = 'APPROVE_COOPERATIVE'

    SYSTEM_ADMIN = 'SYSTEM_ADMIN'

    @property
    def authority(self) -> str:
        return f'PERMISSION_{self.value}'

    @property
    def domain(self) -> str:
        if self in USER_PERMISSIONS:
            return 'User Management'
        if self in CITIZEN_PERMISSIONS:
            return 'Citizen Management'
        if self in COOPERATIVE_PERMISSIONS:
            return 'Cooperative Management'
        if self is PermissionType.MANAGE_PROFILE:
            return 'Profile Management'
        return 'System Administration'

    def included_permissions(self) -> set:
        """Every permission this one grants, itself included (transitive)."""
        seen = {self}
        pending = [self]
        while pending:
            current = pending.pop()
            for child in _DIRECT_INCLUDES.get(current, ()):
                if child not in seen:
                    seen.add(child)
                    pending.append(child)
        return seen

    def implies(self, required: 'PermissionType') -> bool:
        return required in self.included_permissions()

    @classmethod
    def parse(cls, value) -> 'PermissionType':
        """Accept ``VIEW_USER`` or ``PERMISSION_VIEW_USER``; raise ValueError otherwise."""
        if isinstance(value, cls):
            return value
        name = str(value or '').strip().upper()
        if name.startswith('PERMISSION_'):
            name = name[len('PERMISSION_'):]
        return cls(name)


USER_PERMISSIONS = frozenset({
    PermissionType.MANAGE_USERS,
    PermissionType.VIEW_USER,
    PermissionType.CREATE_USER,
    PermissionType.APPROVE_USER,
    PermissionType.EDIT_USER,
    PermissionType.DELETE_USER,
    PermissionType.RESET_USER_PASSWORD,
    PermissionType.MANAGE_USER_ROLES,
})

CITIZEN_PERMISSIONS = frozenset({
    PermissionType.MANAGE_CITIZENS,
    PermissionType.VIEW_CITIZEN,
    PermissionType.CREATE_CITIZEN,
    PermissionType.EDIT_CITIZEN,
    PermissionType.DELETE_CITIZEN,
    PermissionType.APPROVE_CITIZEN,
})

COOPERATIVE_PERMISSIONS = frozenset({
    PermissionType.MANAGE_COOPERATIVES,
    PermissionType.VIEW_COOPERATIVE,
    PermissionType.CREATE_COOPERATIVE,
    PermissionType.EDIT_COOPERATIVE,
    PermissionType.DELETE_COOPERATIVE,
    PermissionType.APPROVE_COOPERATIVE,
})

_DIRECT_INCLUDES = {
    PermissionType.MANAGE_USERS: USER_PERMISSIONS,
    PermissionType.MANAGE_USER_ROLES: {PermissionType.VIEW_USER},
    PermissionType.MANAGE_CITIZENS: CITIZEN_PERMISSIONS,
    PermissionType.MANAGE_PROFILE: COOPERATIVE_PERMISSIONS,
    PermissionType.MANAGE_COOPERATIVES: COOPERATIVE_PERMISSIONS,
    PermissionType.SYSTEM_ADMIN: {
        PermissionType.MANAGE_USERS,
        PermissionType.MANAGE_CITIZENS,
        PermissionType.MANAGE_PROFILE,
        PermissionType.MANAGE_COOPERATIVES,
    },
}


def permission_implied(held, required: PermissionType) -> bool:
    """True when any of the ``held`` permissions implies ``required``."""
    return any(p.implies(required) for p in held)


class RoleType(str, Enum):
    SYSTEM_ADMINISTRATOR = 'SYSTEM_ADMINISTRATOR'
    LAND_RECORDS_OFFICER = 'LAND_RECORDS_OFFICER'
    LAND_SURVEYOR = 'LAND_SURVEYOR'
    LAND_OWNER = 'LAND_OWNER'
    PUBLIC_USER = 'PUBLIC_USER'

    @property
    def authority(self) -> str:
        return f'ROLE_{self.value}'

    @classmethod
    def parse(cls, value) -> 'RoleType':
        name = str(value or '').strip().upper()
        if name.startswith('ROLE_'):
            name = name[len('ROLE_'):]
        return cls(name)


# Permissions each role row is seeded with when first created
DEFAULT_ROLE_PERMISSIONS = {
    RoleType.SYSTEM_ADMINISTRATOR: {PermissionType.SYSTEM_ADMIN},
    RoleType.LAND_RECORDS_OFFICER: {PermissionType.VIEW_CITIZEN, PermissionType.EDIT_CITIZEN},
    RoleType.LAND_SURVEYOR: {PermissionType.VIEW_CITIZEN},
    RoleType.LAND_OWNER: set(),
    RoleType.PUBLIC_USER: set(),
}


user_roles = db.Table(
    'user_roles',
    db.Column('user_id', db.String(36), db.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
    db.Column('role_type', db.String(50), db.ForeignKey('roles.type', ondelete='CASCADE'), primary_key=True),
)


class RolePermission(db.Model):
    __tablename__ = 'role_permissions'

    role_type = db.Column(db.String(50), db.ForeignKey('roles.type', ondelete='CASCADE'), primary_key=True)
    permission = db.Column(db.String(50), primary_key=True)


class Role(db.Model):
    __tablename__ = 'roles'

    type = db.Column(db.String(50), primary_key=True)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    role_permissions = db.relationship(
        'RolePermission', cascade='all, delete-orphan', lazy='selectin'
    )

    def __repr__(self):
        return f'<Role {self.type}>'

    @property
    def role_type(self) -> RoleType:
        return RoleType(self.type)

    @property
    def permissions(self) -> set:
        return {PermissionType(rp.permission) for rp in self.role_permissions}

    def add_permission(self, permission: PermissionType) -> None:
        if permission not in self.permissions:
            self.role_permissions.append(RolePermission(permission=permission.value))

    @classmethod
    def ensure_all(cls) -> dict:
        """Create any missing role rows with their default permissions."""
        existing = {role.type: role for role in cls.query.all()}
        for role_type, permissions in DEFAULT_ROLE_PERMISSIONS.items():
            if role_type.value in existing:
                continue
            role = cls(type=role_type.value)
            for permission in permissions:
                role.add_permission(permission)
            db.session.add(role)
            existing[role_type.value] = role
        return existing

    def to_dict(self):
        return {
            'type': self.type,
            'authority': self.role_type.authority,
            'permissions': sorted(p.value for p in self.permissions),
        }
