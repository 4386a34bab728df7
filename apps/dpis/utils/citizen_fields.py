"""Request-to-model mapping for citizen records.

Shared by the self-service profile and the staff management routes.
"""
from datetime import datetime

from apps.dpis.models.citizen import Citizen
from apps.dpis.utils.address import address_from_payload
from apps.dpis.utils.errors import CitizenError
from apps.dpis.utils.time import parse_iso_date
from apps.dpis.utils.validators import sanitize_string, validate_email, validate_phone

# camelCase request key -> column, for plain text fields
TEXT_FIELDS = {
    'name': 'name',
    'nameDevnagari': 'name_devnagari',
    'fatherName': 'father_name',
    'grandfatherName': 'grandfather_name',
    'spouseName': 'spouse_name',
    'citizenshipIssuedOffice': 'citizenship_issued_office',
}


def require_fields(data: dict, fields) -> None:
    missing = [f for f in fields if data.get(f) in (None, '')]
    if missing:
        raise CitizenError(
            'MISSING_REQUIRED_DATA',
            f"Missing required fields: {', '.join(missing)}",
            details={f: 'This field is required' for f in missing},
        )


def ensure_unique(citizenship_number=None, email=None, exclude_id=None) -> None:
    """Raise when another citizen already holds the citizenship number or email."""
    if citizenship_number:
        query = Citizen.query.filter(Citizen.citizenship_number == citizenship_number)
        if exclude_id:
            query = query.filter(Citizen.id != exclude_id)
        if query.first():
            raise CitizenError('DUPLICATE_CITIZENSHIP_NUMBER')
    if email:
        query = Citizen.query.filter(Citizen.email == email)
        if exclude_id:
            query = query.filter(Citizen.id != exclude_id)
        if query.first():
            raise CitizenError('DUPLICATE_EMAIL')


def parse_issued_date(value):
    parsed = parse_iso_date(value, 'citizenshipIssuedDate')
    if isinstance(parsed, datetime):
        return parsed.date()
    return parsed


def apply_fields(citizen: Citizen, data: dict, allowed=None) -> None:
    """Copy present request fields onto ``citizen``.

    ``allowed`` limits which request keys are honoured; uniqueness of email
    and citizenship number is checked against other citizens.
    """
    def wanted(key):
        return key in data and (allowed is None or key in allowed)

    for key, column in TEXT_FIELDS.items():
        if wanted(key):
            value = sanitize_string(data.get(key))
            if key == 'name' and not value:
                raise CitizenError('MISSING_REQUIRED_DATA', 'Name is required', details={'name': 'This field is required'})
            setattr(citizen, column, value)

    if wanted('email'):
        email = validate_email(data['email']) if data.get('email') else None
        if email != citizen.email:
            ensure_unique(email=email, exclude_id=citizen.id)
            citizen.email = email

    if wanted('phoneNumber'):
        citizen.phone_number = validate_phone(data.get('phoneNumber'))

    if wanted('citizenshipNumber'):
        number = sanitize_string(data.get('citizenshipNumber'), 50)
        if number != citizen.citizenship_number:
            ensure_unique(citizenship_number=number, exclude_id=citizen.id)
            citizen.citizenship_number = number

    if wanted('citizenshipIssuedDate'):
        citizen.citizenship_issued_date = parse_issued_date(data.get('citizenshipIssuedDate'))

    for kind in ('permanent', 'temporary'):
        key = f'{kind}Address'
        if wanted(key):
            citizen.set_address(kind, address_from_payload(data.get(key)) or {})


def check_citizenship_data(citizen: Citizen) -> None:
    """A citizenship number needs both its issue date and issuing office."""
    if citizen.citizenship_number and not (
        citizen.citizenship_issued_date and citizen.citizenship_issued_office
    ):
        raise CitizenError(
            'INVALID_CITIZENSHIP_DATA',
            'Citizenship number requires both issued date and issued office',
        )
