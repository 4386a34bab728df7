"""
DPIS - User Management Routes
Administrative create/search/update/approve/delete of staff users, plus
direct permission and role assignment.
"""
from flask import Blueprint, current_app, g, request
from sqlalchemy import func

from apps.dpis import db
from apps.dpis.models.permission import PermissionType, Role, RoleType
from apps.dpis.models.user import User, UserPermission
from apps.dpis.utils.auth import permission_required
from apps.dpis.utils.email_sender import send_best_effort, send_user_approved_email
from apps.dpis.utils.errors import AuthError
from apps.dpis.utils.passwords import hash_password
from apps.dpis.utils.responses import api_response, paginate, paging_params
from apps.dpis.utils.time import parse_iso_date, parse_upper_date_bound
from apps.dpis.utils.validators import (
    ValidationError,
    json_body,
    like_pattern,
    parse_bool,
    parse_csv,
    parse_int,
    password_problem,
    validate_email,
    validate_phone,
    validate_ward_fields,
)

users_bp = Blueprint('users', __name__, url_prefix='/api/v1/users')

SORT_COLUMNS = {
    'createdAt': User.created_at,
    'email': User.email,
    'wardNumber': User.ward_number,
    'approvedAt': User.approved_at,
    'updatedAt': User.updated_at,
}

ALLOWED_COLUMNS = {
    'email',
    'phoneNumber',
    'isWardLevelUser',
    'wardNumber',
    'isApproved',
    'approvedBy',
    'approvedAt',
    'isDeleted',
    'deletedAt',
    'permissions',
    'roles',
    'createdAt',
    'updatedAt',
}


def _get_user(user_id: str) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise AuthError('USER_NOT_FOUND', f'User not found with id: {user_id}')
    return user


def _get_live_user(user_id: str) -> User:
    user = _get_user(user_id)
    if user.is_deleted:
        raise AuthError('USER_ALREADY_DELETED')
    return user


def _flag_map(value, field: str) -> dict:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValidationError(field, f'{field} must be an object of name to boolean')
    return {name: bool(flag) for name, flag in value.items()}


def _parse_permissions(flags: dict) -> dict:
    parsed = {}
    for name, flag in flags.items():
        try:
            parsed[PermissionType.parse(name)] = flag
        except ValueError:
            raise AuthError('PERMISSION_NOT_FOUND', f'Permission not found: {name}')
    return parsed


def _parse_roles(flags: dict) -> dict:
    roles = Role.ensure_all()
    parsed = {}
    for name, flag in flags.items():
        try:
            role_type = RoleType.parse(name)
        except ValueError:
            raise AuthError('PERMISSION_NOT_FOUND', f'Role not found: {name}')
        parsed[roles[role_type.value]] = flag
    return parsed


def _apply_permission_flags(user: User, flags: dict) -> None:
    for permission, grant in flags.items():
        if grant:
            user.add_permission(permission)
        else:
            user.remove_permission(permission)


def _apply_role_flags(user: User, flags: dict) -> None:
    for role, grant in flags.items():
        if grant:
            user.add_role(role)
        else:
            user.remove_role(role)


@users_bp.route('', methods=['POST'])
@permission_required(PermissionType.CREATE_USER)
def create_user():
    """Create (or reactivate a soft-deleted) user, approved by the acting admin."""
    admin = g.current_user
    data = json_body()

    email = validate_email(data.get('email'))
    password = data.get('password')
    problem = password_problem(password)
    if problem:
        raise AuthError('INVALID_PASSWORD', problem)
    is_ward, ward_number = validate_ward_fields(data.get('isWardLevelUser'), data.get('wardNumber'))
    phone = validate_phone(data.get('phoneNumber'))
    permissions = _parse_permissions(_flag_map(data.get('permissions'), 'permissions'))
    roles = _parse_roles(_flag_map(data.get('roles'), 'roles'))

    user = User.query.filter_by(email=email).first()
    if user and not user.is_deleted:
        raise AuthError('USER_ALREADY_EXISTS', f'User with email {email} already exists')

    if user:
        user.restore()
        user.updated_by = admin.id
        current_app.logger.info("Reactivating deleted user user_id=%s", user.id)
    else:
        user = User(email=email, created_by=admin.id)
        db.session.add(user)

    user.password_hash = hash_password(password)
    user.phone_number = phone
    user.is_ward_level_user = is_ward
    user.ward_number = ward_number
    user.set_permissions(p for p, grant in permissions.items() if grant)
    user.set_roles(r for r, grant in roles.items() if grant)
    db.session.flush()
    user.approve(approved_by=admin.id)

    db.session.commit()
    current_app.logger.info("User created user_id=%s by=%s", user.id, admin.id)
    return api_response(user.to_dict(), 'User created successfully', 201)


@users_bp.route('/search', methods=['GET'])
@permission_required(PermissionType.VIEW_USER)
def search_users():
    args = request.args
    page, size = paging_params()
    query = User.query

    if not parse_bool(args.get('includeDeleted')):
        query = query.filter(User.is_deleted.is_(False))

    email = (args.get('email') or '').strip()
    if email:
        query = query.filter(func.lower(User.email) == email.lower())

    term = (args.get('searchTerm') or '').strip()
    if term:
        query = query.filter(User.email.ilike(like_pattern(term), escape='\\'))

    is_approved = parse_bool(args.get('isApproved'))
    if is_approved is not None:
        query = query.filter(User.is_approved.is_(is_approved))

    is_ward = parse_bool(args.get('isWardLevelUser'))
    if is_ward is not None:
        query = query.filter(User.is_ward_level_user.is_(is_ward))

    ward_number = parse_int(args.get('wardNumber'), 'wardNumber')
    if ward_number is not None:
        query = query.filter(User.ward_number == ward_number)

    created_after = parse_iso_date(args.get('createdAfter'), 'createdAfter')
    if created_after:
        query = query.filter(User.created_at >= created_after)
    created_before = parse_upper_date_bound(args.get('createdBefore'), 'createdBefore')
    if created_before:
        query = query.filter(User.created_at <= created_before)

    for name in parse_csv(args.get('permissions')):
        try:
            permission = PermissionType.parse(name)
        except ValueError:
            raise ValidationError('permissions', f'Unknown permission: {name}')
        query = query.filter(User.user_permissions.any(UserPermission.permission == permission.value))

    role_names = []
    for name in parse_csv(args.get('roles')):
        try:
            role_names.append(RoleType.parse(name).value)
        except ValueError:
            raise ValidationError('roles', f'Unknown role: {name}')
    if role_names:
        query = query.filter(User.roles.any(Role.type.in_(role_names)))

    sort_by = args.get('sortBy') or 'createdAt'
    if sort_by not in SORT_COLUMNS:
        raise ValidationError('sortBy', f"sortBy must be one of: {', '.join(SORT_COLUMNS)}")
    direction = (args.get('sortDirection') or 'DESC').upper()
    if direction not in ('ASC', 'DESC'):
        raise ValidationError('sortDirection', 'sortDirection must be ASC or DESC')
    column = SORT_COLUMNS[sort_by]
    query = query.order_by(column.asc() if direction == 'ASC' else column.desc(), User.id)

    columns = parse_csv(args.get('columns'))
    unknown = [c for c in columns if c not in ALLOWED_COLUMNS]
    if unknown:
        raise ValidationError('columns', f"Unknown columns: {', '.join(unknown)}")

    users, meta = paginate(query, page, size, AuthError('PAGE_DOES_NOT_EXIST'))
    results = []
    for user in users:
        data = user.to_dict()
        if columns:
            data = {key: data[key] for key in ['id', *columns]}
        results.append(data)
    return api_response(results, meta=meta)


@users_bp.route('/<user_id>', methods=['GET'])
@permission_required(PermissionType.VIEW_USER)
def get_user(user_id):
    return api_response(_get_user(user_id).to_dict())


@users_bp.route('/<user_id>', methods=['PUT'])
@permission_required(PermissionType.EDIT_USER)
def update_user(user_id):
    user = _get_live_user(user_id)
    data = json_body()

    if 'email' in data:
        email = validate_email(data.get('email'))
        if email != user.email:
            if User.query.filter(User.email == email, User.id != user.id).first():
                raise AuthError('USER_ALREADY_EXISTS', f'User with email {email} already exists')
            user.email = email

    if 'phoneNumber' in data:
        user.phone_number = validate_phone(data.get('phoneNumber'))

    if 'isWardLevelUser' in data or 'wardNumber' in data:
        is_ward = data.get('isWardLevelUser', user.is_ward_level_user)
        ward_number = data.get('wardNumber', user.ward_number)
        user.is_ward_level_user, user.ward_number = validate_ward_fields(is_ward, ward_number)

    user.updated_by = g.current_user.id
    db.session.commit()
    return api_response(user.to_dict(), 'User updated successfully')


@users_bp.route('/<user_id>/approve', methods=['POST'])
@permission_required(PermissionType.APPROVE_USER)
def approve_user(user_id):
    user = _get_live_user(user_id)
    if user.is_approved:
        raise AuthError('USER_ALREADY_APPROVED')

    user.approve(approved_by=g.current_user.id)
    db.session.commit()
    current_app.logger.info("User approved user_id=%s by=%s", user.id, g.current_user.id)

    send_best_effort(send_user_approved_email, user.email)
    return api_response(user.to_dict(), 'User approved successfully')


@users_bp.route('/<user_id>', methods=['DELETE'])
@permission_required(PermissionType.DELETE_USER)
def delete_user(user_id):
    user = _get_live_user(user_id)
    if user.id == g.current_user.id:
        raise AuthError('INVALID_USER_STATE', 'You cannot delete your own account')

    user.soft_delete(deleted_by=g.current_user.id)
    db.session.commit()
    current_app.logger.info("User deleted user_id=%s by=%s", user.id, g.current_user.id)
    return api_response(None, 'User deleted successfully')


@users_bp.route('/<user_id>/permissions', methods=['PUT'])
@permission_required(PermissionType.EDIT_USER)
def update_permissions(user_id):
    user = _get_live_user(user_id)
    data = json_body()
    flags = _parse_permissions(_flag_map(data.get('permissions'), 'permissions'))

    _apply_permission_flags(user, flags)
    user.updated_by = g.current_user.id
    db.session.commit()
    current_app.logger.info("Permissions updated user_id=%s by=%s", user.id, g.current_user.id)
    return api_response(user.to_dict(), 'User permissions updated successfully')


@users_bp.route('/<user_id>/roles', methods=['PUT'])
@permission_required(PermissionType.EDIT_USER)
def update_roles(user_id):
    user = _get_live_user(user_id)
    data = json_body()
    flags = _parse_roles(_flag_map(data.get('roles'), 'roles'))

    _apply_role_flags(user, flags)
    user.updated_by = g.current_user.id
    db.session.commit()
    current_app.logger.info("Roles updated user_id=%s by=%s", user.id, g.current_user.id)
    return api_response(user.to_dict(), 'User roles updated successfully')


@users_bp.route('/<user_id>/reset-password', methods=['POST'])
@permission_required(PermissionType.RESET_USER_PASSWORD)
def reset_user_password(user_id):
    user = _get_live_user(user_id)
    data = json_body()

    new_password = data.get('newPassword')
    problem = password_problem(new_password)
    if problem:
        raise AuthError('INVALID_PASSWORD', problem)

    user.password_hash = hash_password(new_password)
    user.updated_by = g.current_user.id
    db.session.commit()
    current_app.logger.info("Password reset by administrator user_id=%s by=%s", user.id, g.current_user.id)
    return api_response(None, 'Password reset successfully')
