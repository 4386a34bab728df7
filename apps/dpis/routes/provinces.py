"""Province routes.

Provinces are read-only reference data seeded by scripts/seed_locations.py.
"""
from flask import Blueprint, request

from apps.dpis import db
from apps.dpis.models.district import District
from apps.dpis.models.province import Province
from apps.dpis.utils.db_retry import with_db_retry
from apps.dpis.utils.errors import LocationError
from apps.dpis.utils.responses import api_response
from apps.dpis.utils.validators import parse_bool

provinces_bp = Blueprint('provinces', __name__, url_prefix='/api/v1/provinces')


def _get_province(code: str) -> Province:
    province = db.session.get(Province, code)
    if not province:
        raise LocationError('PROVINCE_NOT_FOUND', f'Province not found with code: {code}')
    return province


@provinces_bp.route('', methods=['GET'])
@with_db_retry()
def list_provinces():
    provinces = Province.query.order_by(Province.code).all()
    return api_response([p.to_dict() for p in provinces])


@provinces_bp.route('/<code>', methods=['GET'])
@with_db_retry()
def get_province(code):
    include_districts = parse_bool(request.args.get('includeDistricts')) or False
    return api_response(_get_province(code).to_dict(include_districts=include_districts))


@provinces_bp.route('/<code>/districts', methods=['GET'])
@with_db_retry()
def list_province_districts(code):
    province = _get_province(code)
    districts = province.districts.order_by(District.name).all()
    return api_response([d.to_dict() for d in districts])
