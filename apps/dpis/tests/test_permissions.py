"""Permission hierarchy and role grants."""
import pytest

from apps.dpis import db
from apps.dpis.models.permission import PermissionType, Role, RoleType
from apps.dpis.models.user import User


def test_system_admin_implies_every_permission():
    for permission in PermissionType:
        assert PermissionType.SYSTEM_ADMIN.implies(permission)


def test_manage_users_covers_user_permissions_only():
    assert PermissionType.MANAGE_USERS.implies(PermissionType.DELETE_USER)
    assert PermissionType.MANAGE_USERS.implies(PermissionType.MANAGE_USER_ROLES)
    assert not PermissionType.MANAGE_USERS.implies(PermissionType.VIEW_CITIZEN)
    assert not PermissionType.MANAGE_USERS.implies(PermissionType.SYSTEM_ADMIN)


def test_manage_user_roles_grants_view_user():
    assert PermissionType.MANAGE_USER_ROLES.implies(PermissionType.VIEW_USER)
    assert not PermissionType.MANAGE_USER_ROLES.implies(PermissionType.EDIT_USER)


def test_narrow_permission_implies_only_itself():
    assert PermissionType.VIEW_CITIZEN.included_permissions() == {PermissionType.VIEW_CITIZEN}


@pytest.mark.parametrize('value', ['VIEW_USER', 'permission_view_user', ' PERMISSION_VIEW_USER '])
def test_parse_accepts_bare_and_prefixed_names(value):
    assert PermissionType.parse(value) is PermissionType.VIEW_USER


def test_parse_rejects_unknown_name():
    with pytest.raises(ValueError):
        PermissionType.parse('FLY')


def test_authorities_and_domains():
    assert PermissionType.EDIT_CITIZEN.authority == 'PERMISSION_EDIT_CITIZEN'
    assert RoleType.LAND_SURVEYOR.authority == 'ROLE_LAND_SURVEYOR'
    assert PermissionType.EDIT_CITIZEN.domain == 'Citizen Management'
    assert PermissionType.SYSTEM_ADMIN.domain == 'System Administration'


def test_user_inherits_permissions_from_roles(app):
    with app.app_context():
        roles = Role.ensure_all()
        user = User(email='officer@example.com', password_hash='x')
        user.add_role(roles[RoleType.LAND_RECORDS_OFFICER.value])
        db.session.add(user)
        db.session.commit()

        assert user.permissions == set()
        assert user.has_permission(PermissionType.EDIT_CITIZEN)
        assert not user.has_permission(PermissionType.DELETE_CITIZEN)


def test_set_permissions_only_touches_changes(app):
    with app.app_context():
        user = User(email='p@example.com', password_hash='x')
        user.add_permission(PermissionType.VIEW_USER)
        user.add_permission(PermissionType.EDIT_USER)
        db.session.add(user)
        db.session.commit()

        user.set_permissions({PermissionType.VIEW_USER, PermissionType.VIEW_CITIZEN})
        db.session.commit()

        assert user.permissions == {PermissionType.VIEW_USER, PermissionType.VIEW_CITIZEN}
        assert user.add_permission(PermissionType.VIEW_USER) is False


def test_ensure_all_is_idempotent(app):
    with app.app_context():
        Role.ensure_all()
        db.session.commit()
        Role.ensure_all()
        db.session.commit()
        assert Role.query.count() == len(RoleType)
        admin_role = db.session.get(Role, RoleType.SYSTEM_ADMINISTRATOR.value)
        assert admin_role.permissions == {PermissionType.SYSTEM_ADMIN}
