"""Address validation against the location hierarchy."""
from typing import Optional

from apps.dpis import db
from apps.dpis.models.district import District
from apps.dpis.models.municipality import Municipality
from apps.dpis.models.province import Province
from apps.dpis.models.ward import Ward
from apps.dpis.utils.errors import AddressError
from apps.dpis.utils.validators import sanitize_string


def validate_address(province_code, district_code, municipality_code, ward_number):
    """Check that the codes name an existing, consistent province/district/municipality/ward chain.

    Returns ``(province, district, municipality, ward)``.
    """
    if not all([province_code, district_code, municipality_code]) or ward_number in (None, ''):
        raise AddressError('INCOMPLETE_ADDRESS')

    province = db.session.get(Province, province_code)
    if not province:
        raise AddressError('PROVINCE_NOT_FOUND', f'Province not found with code: {province_code}')

    district = db.session.get(District, district_code)
    if not district:
        raise AddressError('DISTRICT_NOT_FOUND', f'District not found with code: {district_code}')
    if district.province_code != province.code:
        raise AddressError(
            'DISTRICT_NOT_IN_PROVINCE',
            f'District {district.name} does not belong to province {province.name}',
        )

    municipality = db.session.get(Municipality, municipality_code)
    if not municipality:
        raise AddressError('MUNICIPALITY_NOT_FOUND', f'Municipality not found with code: {municipality_code}')
    if municipality.district_code != district.code:
        raise AddressError(
            'MUNICIPALITY_NOT_IN_DISTRICT',
            f'Municipality {municipality.name} does not belong to district {district.name}',
        )

    try:
        number = int(ward_number)
    except (TypeError, ValueError):
        raise AddressError('WARD_NOT_FOUND', f'Invalid ward number: {ward_number}')

    ward = Ward.get(municipality.code, number)
    if not ward:
        raise AddressError(
            'WARD_NOT_IN_MUNICIPALITY',
            f'Ward {number} does not belong to municipality {municipality.name}',
        )
    return province, district, municipality, ward


def address_from_payload(payload) -> Optional[dict]:
    """Validate a camelCase address object and return it in column form.

    ``None`` or an empty object means no address.
    """
    if not payload:
        return None
    if not isinstance(payload, dict):
        raise AddressError('INCOMPLETE_ADDRESS')
    _, _, _, ward = validate_address(
        payload.get('provinceCode'),
        payload.get('districtCode'),
        payload.get('municipalityCode'),
        payload.get('wardNumber'),
    )
    return {
        'province_code': payload.get('provinceCode'),
        'district_code': payload.get('districtCode'),
        'municipality_code': ward.municipality_code,
        'ward_number': ward.ward_number,
        'street_address': sanitize_string(payload.get('streetAddress')),
    }
