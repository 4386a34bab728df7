"""Municipality routes."""
from flask import Blueprint, request

from apps.dpis import db
from apps.dpis.models.municipality import Municipality, MunicipalityType
from apps.dpis.models.ward import Ward
from apps.dpis.utils.db_retry import with_db_retry
from apps.dpis.utils.errors import LocationError
from apps.dpis.utils.responses import api_response, paginate, paging_params
from apps.dpis.utils.validators import ValidationError, sanitize_string

municipalities_bp = Blueprint('municipalities', __name__, url_prefix='/api/v1/municipalities')


def _get_municipality(code: str) -> Municipality:
    municipality = db.session.get(Municipality, code)
    if not municipality:
        raise LocationError('MUNICIPALITY_NOT_FOUND', f'Municipality not found with code: {code}')
    return municipality


@municipalities_bp.route('', methods=['GET'])
@with_db_retry()
def list_municipalities():
    """List municipalities, optionally filtered by name, type and district."""
    page, size = paging_params()
    query = Municipality.query

    name = sanitize_string(request.args.get('name'))
    if name:
        query = query.filter(Municipality.name.ilike(f'%{name}%'))

    type_value = sanitize_string(request.args.get('type'))
    if type_value:
        try:
            municipality_type = MunicipalityType(type_value.upper())
        except ValueError:
            raise ValidationError(
                'type',
                f"Type must be one of: {', '.join(t.value for t in MunicipalityType)}",
            )
        query = query.filter(Municipality.type == municipality_type.value)

    district_code = sanitize_string(request.args.get('districtCode'))
    if district_code:
        query = query.filter(Municipality.district_code == district_code)

    query = query.order_by(Municipality.name, Municipality.code)
    municipalities, meta = paginate(query, page, size)
    return api_response([m.to_dict() for m in municipalities], meta=meta)


@municipalities_bp.route('/<code>', methods=['GET'])
@with_db_retry()
def get_municipality(code):
    return api_response(_get_municipality(code).to_dict())


@municipalities_bp.route('/<code>/wards', methods=['GET'])
@with_db_retry()
def list_municipality_wards(code):
    municipality = _get_municipality(code)
    wards = municipality.wards.order_by(Ward.ward_number).all()
    return api_response([w.to_dict() for w in wards])
