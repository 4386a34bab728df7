"""Staff user model with direct permissions, roles, approval and soft delete."""
import uuid

from apps.dpis import db
from apps.dpis.models.permission import (
    PermissionType,
    Role,
    RoleType,
    permission_implied,
    user_roles,
)
from apps.dpis.utils.time import utc_now


class UserPermission(db.Model):
    __tablename__ = 'user_permissions'

    user_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True)
    permission = db.Column(db.String(50), primary_key=True)


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    phone_number = db.Column(db.String(20), nullable=True)

    # Ward scoping
    is_ward_level_user = db.Column(db.Boolean, default=False, nullable=False)
    ward_number = db.Column(db.Integer, nullable=True)

    # Approval
    is_approved = db.Column(db.Boolean, default=False, nullable=False)
    approved_by = db.Column(db.String(36), nullable=True)
    approved_at = db.Column(db.DateTime, nullable=True)

    # Soft delete
    is_deleted = db.Column(db.Boolean, default=False, nullable=False)
    deleted_by = db.Column(db.String(36), nullable=True)
    deleted_at = db.Column(db.DateTime, nullable=True)

    # Audit
    created_by = db.Column(db.String(36), nullable=True)
    updated_by = db.Column(db.String(36), nullable=True)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    user_permissions = db.relationship(
        'UserPermission', cascade='all, delete-orphan', lazy='selectin'
    )
    roles = db.relationship('Role', secondary=user_roles, lazy='selectin')

    def __repr__(self):
        return f'<User {self.email}>'

    # Permissions -----------------------------------------------------------

    @property
    def permissions(self) -> set:
        """Directly granted permissions."""
        return {PermissionType(up.permission) for up in self.user_permissions}

    def effective_permissions(self) -> set:
        """Direct permissions plus those inherited from roles."""
        result = set(self.permissions)
        for role in self.roles:
            result |= role.permissions
        return result

    def has_permission(self, required: PermissionType) -> bool:
        return permission_implied(self.effective_permissions(), required)

    def add_permission(self, permission: PermissionType) -> bool:
        if permission in self.permissions:
            return False
        self.user_permissions.append(UserPermission(permission=permission.value))
        return True

    def remove_permission(self, permission: PermissionType) -> bool:
        for up in list(self.user_permissions):
            if up.permission == permission.value:
                self.user_permissions.remove(up)
                return True
        return False

    def set_permissions(self, desired) -> None:
        """Replace direct permissions, touching only rows that change."""
        desired = set(desired)
        for permission in self.permissions - desired:
            self.remove_permission(permission)
        for permission in desired - self.permissions:
            self.add_permission(permission)

    # Roles -----------------------------------------------------------------

    @property
    def role_types(self) -> set:
        return {RoleType(role.type) for role in self.roles}

    def add_role(self, role: Role) -> bool:
        if role in self.roles:
            return False
        self.roles.append(role)
        return True

    def remove_role(self, role: Role) -> bool:
        if role not in self.roles:
            return False
        self.roles.remove(role)
        return True

    def set_roles(self, desired_roles) -> None:
        desired = {role.type: role for role in desired_roles}
        for role in list(self.roles):
            if role.type not in desired:
                self.roles.remove(role)
        for role_type, role in desired.items():
            if role_type not in {r.type for r in self.roles}:
                self.roles.append(role)

    # State -----------------------------------------------------------------

    def approve(self, approved_by: str = None) -> None:
        self.is_approved = True
        self.approved_by = approved_by
        self.approved_at = utc_now()

    def soft_delete(self, deleted_by: str = None) -> None:
        self.is_deleted = True
        self.deleted_by = deleted_by
        self.deleted_at = utc_now()
        self.is_approved = False

    def restore(self) -> None:
        self.is_deleted = False
        self.deleted_by = None
        self.deleted_at = None

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'phoneNumber': self.phone_number,
            'isWardLevelUser': self.is_ward_level_user,
            'wardNumber': self.ward_number,
            'isApproved': self.is_approved,
            'approvedBy': self.approved_by,
            'approvedAt': self.approved_at.isoformat() if self.approved_at else None,
            'isDeleted': self.is_deleted,
            'deletedAt': self.deleted_at.isoformat() if self.deleted_at else None,
            'permissions': sorted(p.value for p in self.permissions),
            'roles': sorted(r.value for r in self.role_types),
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }
