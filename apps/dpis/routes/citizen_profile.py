"""
DPIS - Citizen Profile Routes
Self-registration and self-service profile management for citizens,
including photo and citizenship document uploads.
"""
from flask import Blueprint, current_app, g, request, send_file, url_for

from apps.dpis import db
from apps.dpis.models.citizen import Citizen, CitizenState
from apps.dpis.utils.citizen_fields import apply_fields, ensure_unique, require_fields
from apps.dpis.utils.citizen_tokens import citizen_jwt_required
from apps.dpis.utils.email_sender import send_best_effort, send_citizen_registration_email
from apps.dpis.utils.errors import CitizenAuthError, CitizenError
from apps.dpis.utils.passwords import hash_password
from apps.dpis.utils.rate_limit import limit
from apps.dpis.utils.responses import api_response
from apps.dpis.utils.security import ALLOWED_DOCUMENT_MIMES, ALLOWED_IMAGE_MIMES
from apps.dpis.utils.storage_handler import (
    ALLOWED_DOCUMENT_EXTENSIONS,
    ALLOWED_IMAGE_EXTENSIONS,
    FileTooLargeError,
    InvalidFileTypeError,
    StorageError,
    file_path,
    get_file_url,
    save_file,
)
from apps.dpis.utils.validators import json_body, password_problem, sanitize_string, validate_email

citizen_profile_bp = Blueprint('citizen_profile', __name__, url_prefix='/api/v1/citizen-profile')

REGISTER_FIELDS = (
    'name',
    'nameDevnagari',
    'phoneNumber',
    'citizenshipIssuedDate',
    'citizenshipIssuedOffice',
    'fatherName',
    'grandfatherName',
    'spouseName',
    'permanentAddress',
    'temporaryAddress',
)

SELF_EDITABLE_FIELDS = (
    'email',
    'phoneNumber',
    'nameDevnagari',
    'permanentAddress',
    'temporaryAddress',
)

# kind -> (model attribute, storage folder, extensions, mime types, size config key)
UPLOADS = {
    'photo': (
        'photo_key',
        'citizens/profiles/photos',
        ALLOWED_IMAGE_EXTENSIONS,
        ALLOWED_IMAGE_MIMES,
        'CITIZEN_PHOTO_MAX_MB',
    ),
    'citizenship-front': (
        'citizenship_front_key',
        'citizens/documents/citizenship-front',
        ALLOWED_DOCUMENT_EXTENSIONS,
        ALLOWED_DOCUMENT_MIMES,
        'CITIZEN_DOCUMENT_MAX_MB',
    ),
    'citizenship-back': (
        'citizenship_back_key',
        'citizens/documents/citizenship-back',
        ALLOWED_DOCUMENT_EXTENSIONS,
        ALLOWED_DOCUMENT_MIMES,
        'CITIZEN_DOCUMENT_MAX_MB',
    ),
}

DOCUMENT_KINDS = ('citizenship-front', 'citizenship-back')


def _current_citizen() -> Citizen:
    citizen = db.session.get(Citizen, g.citizen_id)
    if not citizen or citizen.is_deleted:
        raise CitizenError('CITIZEN_NOT_FOUND')
    return citizen


def store_citizen_upload(citizen: Citizen, kind: str, file) -> dict:
    """Validate and store an upload for ``citizen``; returns ``{key, url}``."""
    attribute, folder, extensions, mimes, size_key = UPLOADS[kind]
    if file is None or not file.filename:
        raise CitizenError('INVALID_DOCUMENT_FORMAT', 'A file is required')

    max_size_mb = int(current_app.config.get(size_key, 10))
    try:
        key = save_file(file, folder, citizen.id, extensions, max_size_mb, mimes)
    except FileTooLargeError as e:
        raise CitizenError('DOCUMENT_TOO_LARGE', str(e))
    except InvalidFileTypeError as e:
        raise CitizenError('INVALID_DOCUMENT_FORMAT', str(e))
    except StorageError as e:
        current_app.logger.error("Citizen upload failed citizen_id=%s kind=%s: %s", citizen.id, kind, e)
        raise CitizenError('DOCUMENT_UPLOAD_FAILED')

    setattr(citizen, attribute, key)
    db.session.commit()
    current_app.logger.info("Citizen upload stored citizen_id=%s kind=%s", citizen.id, kind)
    return {'key': key, 'url': upload_url(citizen, kind)}


def upload_url(citizen: Citizen, kind: str) -> str:
    key = getattr(citizen, UPLOADS[kind][0])
    if kind == 'photo':
        return get_file_url(key)
    return url_for('citizen_profile.get_my_document', kind=kind, _external=True)


def send_citizen_document(citizen: Citizen, kind: str):
    if kind not in DOCUMENT_KINDS:
        raise CitizenError('INVALID_DOCUMENT_FORMAT', f'Unknown document type: {kind}')
    key = getattr(citizen, UPLOADS[kind][0])
    if not key:
        raise CitizenError('CITIZEN_NOT_FOUND', 'Document has not been uploaded')
    path = file_path(key)
    if not path.is_file():
        raise CitizenError('CITIZEN_NOT_FOUND', 'Document file is missing')
    return send_file(path)


@citizen_profile_bp.route('/register', methods=['POST'])
@limit("5 per hour")  # Prevent spam registrations
def register():
    """Self-register a citizen. The profile starts in PENDING_REGISTRATION."""
    data = json_body()
    require_fields(data, ('name', 'email', 'password', 'citizenshipNumber'))

    email = validate_email(data.get('email'))
    citizenship_number = sanitize_string(data.get('citizenshipNumber'), 50)
    ensure_unique(citizenship_number=citizenship_number, email=email)

    problem = password_problem(data.get('password'))
    if problem:
        raise CitizenAuthError('INVALID_PASSWORD', problem)

    citizen = Citizen(
        email=email,
        citizenship_number=citizenship_number,
        password_hash=hash_password(data['password']),
        is_approved=False,
    )
    apply_fields(citizen, data, REGISTER_FIELDS)
    citizen.update_state(CitizenState.PENDING_REGISTRATION, 'Registered by citizen')
    db.session.add(citizen)
    db.session.commit()
    current_app.logger.info("Citizen registered citizen_id=%s", citizen.id)

    send_best_effort(send_citizen_registration_email, citizen.email, citizen.name)
    return api_response(citizen.to_dict(), 'Citizen registered successfully', 201)


@citizen_profile_bp.route('/me', methods=['GET'])
@citizen_jwt_required
def get_me():
    return api_response(_current_citizen().to_dict())


@citizen_profile_bp.route('/me', methods=['PUT'])
@citizen_jwt_required
def update_me():
    citizen = _current_citizen()
    data = json_body()
    if 'email' in data:
        # Portal login and password reset go through the email
        validate_email(data.get('email'))
    apply_fields(citizen, data, SELF_EDITABLE_FIELDS)
    citizen.updated_by = citizen.id
    db.session.commit()
    return api_response(citizen.to_dict(), 'Profile updated successfully')


@citizen_profile_bp.route('/me/photo', methods=['POST'])
@citizen_jwt_required
def upload_photo():
    data = store_citizen_upload(_current_citizen(), 'photo', request.files.get('file'))
    return api_response(data, 'Photo uploaded successfully')


@citizen_profile_bp.route('/me/citizenship-front', methods=['POST'])
@citizen_jwt_required
def upload_citizenship_front():
    data = store_citizen_upload(_current_citizen(), 'citizenship-front', request.files.get('file'))
    return api_response(data, 'Citizenship front uploaded successfully')


@citizen_profile_bp.route('/me/citizenship-back', methods=['POST'])
@citizen_jwt_required
def upload_citizenship_back():
    data = store_citizen_upload(_current_citizen(), 'citizenship-back', request.files.get('file'))
    return api_response(data, 'Citizenship back uploaded successfully')


@citizen_profile_bp.route('/me/documents/<kind>', methods=['GET'])
@citizen_jwt_required
def get_my_document(kind):
    return send_citizen_document(_current_citizen(), kind)
