"""Ward routes.

Reads are public; creating and editing wards requires SYSTEM_ADMIN.
"""
from flask import Blueprint, current_app, request

from apps.dpis import db
from apps.dpis.models.municipality import Municipality
from apps.dpis.models.permission import PermissionType
from apps.dpis.models.ward import Ward
from apps.dpis.utils.auth import permission_required
from apps.dpis.utils.db_retry import with_db_retry
from apps.dpis.utils.errors import LocationError
from apps.dpis.utils.responses import api_response, paginate, paging_params
from apps.dpis.utils.validators import ValidationError, json_body, like_pattern, parse_int, sanitize_string

wards_bp = Blueprint('wards', __name__, url_prefix='/api/v1/wards')

# camelCase request key -> column, for the optional ward attributes
WARD_FIELDS = {
    'area': 'area',
    'population': 'population',
    'latitude': 'latitude',
    'longitude': 'longitude',
    'officeLocation': 'office_location',
    'officeLocationNepali': 'office_location_nepali',
}


def _get_ward(municipality_code: str, ward_number: int) -> Ward:
    ward = Ward.get(municipality_code, ward_number)
    if not ward:
        raise LocationError(
            'WARD_NOT_FOUND',
            f'Ward {ward_number} not found in municipality {municipality_code}',
        )
    return ward


def _number(value, field):
    if value in (None, ''):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise LocationError('INVALID_LOCATION_DATA', f'{field} must be a number', details={field: 'Must be a number'})
    if field in ('area', 'population') and number < 0:
        raise LocationError('INVALID_LOCATION_DATA', f'{field} cannot be negative', details={field: 'Cannot be negative'})
    return int(number) if field == 'population' else number


def _apply_ward_fields(ward: Ward, data: dict) -> None:
    for key, column in WARD_FIELDS.items():
        if key not in data:
            continue
        if key.startswith('officeLocation'):
            setattr(ward, column, sanitize_string(data.get(key)))
        else:
            setattr(ward, column, _number(data.get(key), key))


@wards_bp.route('/search', methods=['GET'])
@with_db_retry()
def search_wards():
    args = request.args
    page, size = paging_params()
    query = Ward.query

    municipality_code = sanitize_string(args.get('municipalityCode'))
    if municipality_code:
        query = query.filter(Ward.municipality_code == municipality_code)

    min_population = parse_int(args.get('minPopulation'), 'minPopulation')
    if min_population is not None:
        query = query.filter(Ward.population >= min_population)
    max_population = parse_int(args.get('maxPopulation'), 'maxPopulation')
    if max_population is not None:
        query = query.filter(Ward.population <= max_population)

    term = sanitize_string(args.get('searchTerm'))
    if term:
        pattern = like_pattern(term)
        query = query.filter(
            Ward.office_location.ilike(pattern, escape='\\') | Ward.office_location_nepali.ilike(pattern, escape='\\')
        )

    query = query.order_by(Ward.ward_number, Ward.municipality_code)
    wards, meta = paginate(query, page, size)
    return api_response([w.to_dict() for w in wards], meta=meta)


@wards_bp.route('/<municipality_code>/<int:ward_number>', methods=['GET'])
@with_db_retry()
def get_ward(municipality_code, ward_number):
    return api_response(_get_ward(municipality_code, ward_number).to_dict())


@wards_bp.route('', methods=['POST'])
@permission_required(PermissionType.SYSTEM_ADMIN)
def create_ward():
    data = json_body()

    municipality_code = sanitize_string(data.get('municipalityCode'))
    ward_number = parse_int(data.get('wardNumber'), 'wardNumber')
    if not municipality_code or ward_number is None:
        raise ValidationError('wardNumber', 'municipalityCode and wardNumber are required')

    municipality = db.session.get(Municipality, municipality_code)
    if not municipality:
        raise LocationError('MUNICIPALITY_NOT_FOUND', f'Municipality not found with code: {municipality_code}')

    upper = municipality.total_wards
    if ward_number < 1 or (upper and ward_number > upper):
        raise LocationError(
            'INVALID_WARD_COUNT',
            f'Ward number must be between 1 and {upper}' if upper else 'Ward number must be at least 1',
        )

    if Ward.get(municipality.code, ward_number):
        raise LocationError(
            'DUPLICATE_WARD_NUMBER',
            f'Ward {ward_number} already exists in municipality {municipality.code}',
        )

    ward = Ward(ward_number=ward_number, municipality_code=municipality.code)
    _apply_ward_fields(ward, data)
    db.session.add(ward)
    db.session.commit()
    current_app.logger.info("Ward created %s-%s", municipality.code, ward_number)
    return api_response(ward.to_dict(), 'Ward created successfully', 201)


@wards_bp.route('/<municipality_code>/<int:ward_number>', methods=['PUT'])
@permission_required(PermissionType.SYSTEM_ADMIN)
def update_ward(municipality_code, ward_number):
    ward = _get_ward(municipality_code, ward_number)
    _apply_ward_fields(ward, json_body())
    db.session.commit()
    current_app.logger.info("Ward updated %s-%s", municipality_code, ward_number)
    return api_response(ward.to_dict(), 'Ward updated successfully')
