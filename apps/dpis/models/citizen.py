"""Citizen model.

A citizen registers themselves (or is registered by staff), moves through
an account review state, and may hold a password for the citizen portal.
"""
import uuid
from enum import Enum

from apps.dpis import db
from apps.dpis.utils.time import utc_now


class CitizenState(str, Enum):
    PENDING_REGISTRATION = 'PENDING_REGISTRATION'
    UNDER_REVIEW = 'UNDER_REVIEW'
    ACTION_REQUIRED = 'ACTION_REQUIRED'
    REJECTED = 'REJECTED'
    APPROVED = 'APPROVED'


# States that may not move back to PENDING_REGISTRATION
_INVALID_TRANSITIONS = {
    CitizenState.APPROVED: {CitizenState.PENDING_REGISTRATION},
    CitizenState.REJECTED: {CitizenState.PENDING_REGISTRATION},
}

REQUIRING_ACTION_STATES = (CitizenState.UNDER_REVIEW.value, CitizenState.ACTION_REQUIRED.value)

ADDRESS_FIELDS = ('province_code', 'district_code', 'municipality_code', 'ward_number', 'street_address')


def can_transition(current: CitizenState, new: CitizenState) -> bool:
    return new not in _INVALID_TRANSITIONS.get(current, set())


class Citizen(db.Model):
    __tablename__ = 'citizens'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    name = db.Column(db.String(255), nullable=False)
    name_devnagari = db.Column(db.String(255), nullable=True)
    email = db.Column(db.String(255), unique=True, nullable=True, index=True)
    phone_number = db.Column(db.String(20), nullable=True)
    password_hash = db.Column(db.String(255), nullable=True)

    # Citizenship certificate
    citizenship_number = db.Column(db.String(50), unique=True, nullable=True, index=True)
    citizenship_issued_date = db.Column(db.Date, nullable=True)
    citizenship_issued_office = db.Column(db.String(255), nullable=True)

    # Permanent address
    permanent_province_code = db.Column(db.String(36), nullable=True)
    permanent_district_code = db.Column(db.String(36), nullable=True)
    permanent_municipality_code = db.Column(db.String(36), nullable=True)
    permanent_ward_number = db.Column(db.Integer, nullable=True)
    permanent_street_address = db.Column(db.String(255), nullable=True)

    # Temporary address
    temporary_province_code = db.Column(db.String(36), nullable=True)
    temporary_district_code = db.Column(db.String(36), nullable=True)
    temporary_municipality_code = db.Column(db.String(36), nullable=True)
    temporary_ward_number = db.Column(db.Integer, nullable=True)
    temporary_street_address = db.Column(db.String(255), nullable=True)

    # Family
    father_name = db.Column(db.String(255), nullable=True)
    grandfather_name = db.Column(db.String(255), nullable=True)
    spouse_name = db.Column(db.String(255), nullable=True)

    # Stored document keys
    photo_key = db.Column(db.String(255), nullable=True)
    citizenship_front_key = db.Column(db.String(255), nullable=True)
    citizenship_back_key = db.Column(db.String(255), nullable=True)

    # Review state
    state = db.Column(db.String(30), nullable=False, default=CitizenState.PENDING_REGISTRATION.value, index=True)
    state_note = db.Column(db.Text, nullable=True)
    state_updated_at = db.Column(db.DateTime, nullable=True)
    state_updated_by = db.Column(db.String(36), nullable=True)

    # Approval
    is_approved = db.Column(db.Boolean, default=False, nullable=False)
    approved_by = db.Column(db.String(36), nullable=True)
    approved_at = db.Column(db.DateTime, nullable=True)

    # Soft delete
    is_deleted = db.Column(db.Boolean, default=False, nullable=False)
    deleted_by = db.Column(db.String(36), nullable=True)
    deleted_at = db.Column(db.DateTime, nullable=True)

    created_by = db.Column(db.String(36), nullable=True)
    updated_by = db.Column(db.String(36), nullable=True)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    def __repr__(self):
        return f'<Citizen {self.id} {self.name}>'

    @property
    def citizen_state(self) -> CitizenState:
        return CitizenState(self.state)

    def update_state(self, new_state: CitizenState, note: str = None, updated_by: str = None) -> None:
        self.state = new_state.value
        self.state_note = note
        self.state_updated_at = utc_now()
        self.state_updated_by = updated_by
        if new_state is CitizenState.APPROVED:
            if not self.is_approved:
                self.is_approved = True
                self.approved_by = updated_by
                self.approved_at = self.state_updated_at
        else:
            self.is_approved = False

    def approve(self, approved_by: str = None, note: str = None) -> None:
        self.update_state(CitizenState.APPROVED, note, approved_by)

    def soft_delete(self, deleted_by: str = None) -> None:
        self.is_deleted = True
        self.deleted_by = deleted_by
        self.deleted_at = utc_now()

    def set_address(self, kind: str, address: dict) -> None:
        """Assign a ``permanent`` or ``temporary`` address from a normalized dict."""
        for field in ADDRESS_FIELDS:
            setattr(self, f'{kind}_{field}', address.get(field))

    def address_dict(self, kind: str):
        values = {field: getattr(self, f'{kind}_{field}') for field in ADDRESS_FIELDS}
        if all(v is None for v in values.values()):
            return None
        return {
            'provinceCode': values['province_code'],
            'districtCode': values['district_code'],
            'municipalityCode': values['municipality_code'],
            'wardNumber': values['ward_number'],
            'streetAddress': values['street_address'],
        }

    def to_dict(self):
        from apps.dpis.utils.storage_handler import get_file_url

        return {
            'id': self.id,
            'name': self.name,
            'nameDevnagari': self.name_devnagari,
            'email': self.email,
            'phoneNumber': self.phone_number,
            'citizenshipNumber': self.citizenship_number,
            'citizenshipIssuedDate': self.citizenship_issued_date.isoformat() if self.citizenship_issued_date else None,
            'citizenshipIssuedOffice': self.citizenship_issued_office,
            'permanentAddress': self.address_dict('permanent'),
            'temporaryAddress': self.address_dict('temporary'),
            'fatherName': self.father_name,
            'grandfatherName': self.grandfather_name,
            'spouseName': self.spouse_name,
            'photoUrl': get_file_url(self.photo_key) if self.photo_key else None,
            'citizenshipFrontKey': self.citizenship_front_key,
            'citizenshipBackKey': self.citizenship_back_key,
            'state': self.state,
            'stateNote': self.state_note,
            'stateUpdatedAt': self.state_updated_at.isoformat() if self.state_updated_at else None,
            'isApproved': self.is_approved,
            'approvedBy': self.approved_by,
            'approvedAt': self.approved_at.isoformat() if self.approved_at else None,
            'isDeleted': self.is_deleted,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }
