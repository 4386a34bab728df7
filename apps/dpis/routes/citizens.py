"""
DPIS - Citizen Management Routes
Staff-side citizen records: create, update, approve, review state and search.
"""
from flask import Blueprint, current_app, g, request
from sqlalchemy import func

from apps.dpis import db
from apps.dpis.models.citizen import Citizen, CitizenState, REQUIRING_ACTION_STATES, can_transition
from apps.dpis.models.permission import PermissionType
from apps.dpis.routes.citizen_profile import send_citizen_document
from apps.dpis.utils.auth import permission_required
from apps.dpis.utils.citizen_fields import apply_fields, check_citizenship_data, require_fields
from apps.dpis.utils.email_sender import send_best_effort, send_citizen_approved_email
from apps.dpis.utils.errors import AuthError, CitizenAuthError, CitizenError
from apps.dpis.utils.passwords import hash_password
from apps.dpis.utils.responses import api_response, paginate, paging_params
from apps.dpis.utils.time import parse_iso_date, parse_upper_date_bound
from apps.dpis.utils.validators import (
    ValidationError,
    json_body,
    like_pattern,
    parse_bool,
    parse_int,
    password_problem,
    sanitize_string,
)

citizens_bp = Blueprint('citizens', __name__, url_prefix='/api/v1/citizens')

SORT_COLUMNS = {
    'createdAt': Citizen.created_at,
    'name': Citizen.name,
    'stateUpdatedAt': Citizen.state_updated_at,
    'citizenshipNumber': Citizen.citizenship_number,
}

APPROVAL_NOTE = 'Approved by administrator'


def _get_citizen(citizen_id: str) -> Citizen:
    citizen = db.session.get(Citizen, citizen_id)
    if not citizen:
        raise CitizenError('CITIZEN_NOT_FOUND', f'Citizen not found with id: {citizen_id}')
    return citizen


def _get_live_citizen(citizen_id: str) -> Citizen:
    citizen = _get_citizen(citizen_id)
    if citizen.is_deleted:
        raise CitizenError('CITIZEN_ALREADY_DELETED')
    return citizen


def _parse_state(value) -> CitizenState:
    try:
        return CitizenState(str(value or '').strip().upper())
    except ValueError:
        raise ValidationError(
            'state',
            f"State must be one of: {', '.join(s.value for s in CitizenState)}",
        )


def _notify_approved(citizen: Citizen) -> None:
    if citizen.email:
        send_best_effort(send_citizen_approved_email, citizen.email, citizen.name)


def _paged_by_state(query):
    page, size = paging_params()
    query = query.filter(Citizen.is_deleted.is_(False)).order_by(
        Citizen.state_updated_at.desc(), Citizen.created_at.desc()
    )
    citizens, meta = paginate(query, page, size, AuthError('PAGE_DOES_NOT_EXIST'))
    return api_response([c.to_dict() for c in citizens], meta=meta)


@citizens_bp.route('', methods=['POST'])
@permission_required(PermissionType.CREATE_CITIZEN)
def create_citizen():
    staff = g.current_user
    data = json_body()
    require_fields(data, ('name',))

    password = data.get('password')
    if password:
        problem = password_problem(password)
        if problem:
            raise CitizenAuthError('INVALID_PASSWORD', problem)

    citizen = Citizen(created_by=staff.id)
    apply_fields(citizen, data)
    check_citizenship_data(citizen)
    if password:
        citizen.password_hash = hash_password(password)

    if parse_bool(data.get('isApproved')):
        citizen.approve(approved_by=staff.id, note=APPROVAL_NOTE)
    else:
        citizen.update_state(CitizenState.PENDING_REGISTRATION, updated_by=staff.id)

    db.session.add(citizen)
    db.session.commit()
    current_app.logger.info("Citizen created citizen_id=%s by=%s", citizen.id, staff.id)

    if citizen.is_approved:
        _notify_approved(citizen)
    return api_response(citizen.to_dict(), 'Citizen created successfully', 201)


@citizens_bp.route('/search', methods=['GET'])
@permission_required(PermissionType.VIEW_CITIZEN)
def search_citizens():
    args = request.args
    page, size = paging_params()
    query = Citizen.query

    if not parse_bool(args.get('includeDeleted')):
        query = query.filter(Citizen.is_deleted.is_(False))

    name = sanitize_string(args.get('name'))
    if name:
        query = query.filter(Citizen.name.ilike(like_pattern(name), escape='\\'))

    citizenship_number = sanitize_string(args.get('citizenshipNumber'))
    if citizenship_number:
        query = query.filter(Citizen.citizenship_number == citizenship_number)

    email = sanitize_string(args.get('email'))
    if email:
        query = query.filter(func.lower(Citizen.email) == email.lower())

    phone = sanitize_string(args.get('phoneNumber'))
    if phone:
        query = query.filter(Citizen.phone_number == phone)

    if args.get('state'):
        query = query.filter(Citizen.state == _parse_state(args.get('state')).value)

    is_approved = parse_bool(args.get('isApproved'))
    if is_approved is not None:
        query = query.filter(Citizen.is_approved.is_(is_approved))

    created_after = parse_iso_date(args.get('createdAfter'), 'createdAfter')
    if created_after:
        query = query.filter(Citizen.created_at >= created_after)
    created_before = parse_upper_date_bound(args.get('createdBefore'), 'createdBefore')
    if created_before:
        query = query.filter(Citizen.created_at <= created_before)

    ward_number = parse_int(args.get('wardNumber'), 'wardNumber')
    if ward_number is not None:
        query = query.filter(Citizen.permanent_ward_number == ward_number)

    municipality_code = sanitize_string(args.get('municipalityCode'))
    if municipality_code:
        query = query.filter(Citizen.permanent_municipality_code == municipality_code)

    sort_by = args.get('sortBy') or 'createdAt'
    if sort_by not in SORT_COLUMNS:
        raise ValidationError('sortBy', f"sortBy must be one of: {', '.join(SORT_COLUMNS)}")
    direction = (args.get('sortDirection') or 'DESC').upper()
    if direction not in ('ASC', 'DESC'):
        raise ValidationError('sortDirection', 'sortDirection must be ASC or DESC')
    column = SORT_COLUMNS[sort_by]
    query = query.order_by(column.asc() if direction == 'ASC' else column.desc(), Citizen.id)

    citizens, meta = paginate(query, page, size, AuthError('PAGE_DOES_NOT_EXIST'))
    return api_response([c.to_dict() for c in citizens], meta=meta)


@citizens_bp.route('/requiring-action', methods=['GET'])
@permission_required(PermissionType.VIEW_CITIZEN)
def citizens_requiring_action():
    return _paged_by_state(Citizen.query.filter(Citizen.state.in_(REQUIRING_ACTION_STATES)))


@citizens_bp.route('/state/<state>', methods=['GET'])
@permission_required(PermissionType.VIEW_CITIZEN)
def citizens_by_state(state):
    return _paged_by_state(Citizen.query.filter(Citizen.state == _parse_state(state).value))


@citizens_bp.route('/<citizen_id>', methods=['GET'])
@permission_required(PermissionType.VIEW_CITIZEN)
def get_citizen(citizen_id):
    return api_response(_get_citizen(citizen_id).to_dict())


@citizens_bp.route('/<citizen_id>', methods=['PUT'])
@permission_required(PermissionType.EDIT_CITIZEN)
def update_citizen(citizen_id):
    citizen = _get_live_citizen(citizen_id)
    data = json_body()

    apply_fields(citizen, data)
    check_citizenship_data(citizen)
    citizen.updated_by = g.current_user.id
    db.session.commit()
    return api_response(citizen.to_dict(), 'Citizen updated successfully')


@citizens_bp.route('/<citizen_id>/approve', methods=['POST'])
@permission_required(PermissionType.APPROVE_CITIZEN)
def approve_citizen(citizen_id):
    citizen = _get_live_citizen(citizen_id)
    if citizen.is_approved:
        raise CitizenError('CITIZEN_ALREADY_APPROVED')

    citizen.approve(approved_by=g.current_user.id, note=APPROVAL_NOTE)
    db.session.commit()
    current_app.logger.info("Citizen approved citizen_id=%s by=%s", citizen.id, g.current_user.id)

    _notify_approved(citizen)
    return api_response(citizen.to_dict(), 'Citizen approved successfully')


@citizens_bp.route('/<citizen_id>', methods=['DELETE'])
@permission_required(PermissionType.DELETE_CITIZEN)
def delete_citizen(citizen_id):
    citizen = _get_live_citizen(citizen_id)
    citizen.soft_delete(deleted_by=g.current_user.id)
    db.session.commit()
    current_app.logger.info("Citizen deleted citizen_id=%s by=%s", citizen.id, g.current_user.id)
    return api_response(None, 'Citizen deleted successfully')


@citizens_bp.route('/<citizen_id>/state', methods=['PUT'])
@permission_required(PermissionType.APPROVE_CITIZEN)
def update_citizen_state(citizen_id):
    citizen = _get_live_citizen(citizen_id)
    data = json_body()
    new_state = _parse_state(data.get('state'))

    if not can_transition(citizen.citizen_state, new_state):
        raise CitizenError(
            'INVALID_STATE_TRANSITION',
            f'Cannot change state from {citizen.state} to {new_state.value}',
        )

    was_approved = citizen.is_approved
    citizen.update_state(new_state, sanitize_string(data.get('note'), 2000), g.current_user.id)
    db.session.commit()
    current_app.logger.info(
        "Citizen state changed citizen_id=%s state=%s by=%s", citizen.id, new_state.value, g.current_user.id
    )

    if citizen.is_approved and not was_approved:
        _notify_approved(citizen)
    return api_response(citizen.to_dict(), 'Citizen state updated successfully')


@citizens_bp.route('/<citizen_id>/documents/<kind>', methods=['GET'])
@permission_required(PermissionType.VIEW_CITIZEN)
def get_citizen_document(citizen_id, kind):
    return send_citizen_document(_get_citizen(citizen_id), kind)
