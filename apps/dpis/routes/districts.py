"""District routes."""
from flask import Blueprint

from apps.dpis import db
from apps.dpis.models.district import District
from apps.dpis.models.municipality import Municipality
from apps.dpis.utils.db_retry import with_db_retry
from apps.dpis.utils.errors import LocationError
from apps.dpis.utils.responses import api_response

districts_bp = Blueprint('districts', __name__, url_prefix='/api/v1/districts')


def _get_district(code: str) -> District:
    district = db.session.get(District, code)
    if not district:
        raise LocationError('DISTRICT_NOT_FOUND', f'District not found with code: {code}')
    return district


@districts_bp.route('/<code>', methods=['GET'])
@with_db_retry()
def get_district(code):
    return api_response(_get_district(code).to_dict(include_province=True))


@districts_bp.route('/<code>/municipalities', methods=['GET'])
@with_db_retry()
def list_district_municipalities(code):
    district = _get_district(code)
    municipalities = district.municipalities.order_by(Municipality.name).all()
    return api_response([m.to_dict() for m in municipalities])
