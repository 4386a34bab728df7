#!/usr/bin/env python3
"""
Seed provinces, districts, municipalities and wards from a JSON file.

The file holds nested objects using the API's camelCase field names:

    {"provinces": [{"code": "1", "name": "Koshi", "nameNepali": "...",
      "districts": [{"code": "101", "name": "...", "nameNepali": "...",
        "municipalities": [{"code": "10101", "name": "...", "nameNepali": "...",
          "type": "MUNICIPALITY", "totalWards": 9,
          "wards": [{"wardNumber": 1, "population": 5000}]}]}]}]}

Existing rows are updated in place, so the script can be re-run.

Usage:
    python apps/dpis/scripts/seed_locations.py path/to/locations.json [--dry-run]
"""
import json
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent.parent.parent
sys.path.insert(0, str(project_root))

import click

from apps.dpis import db
from apps.dpis.models.district import District
from apps.dpis.models.municipality import Municipality, MunicipalityType
from apps.dpis.models.province import Province
from apps.dpis.models.ward import Ward

DEFAULT_DATA_FILE = Path(__file__).parent / 'data' / 'locations.sample.json'

# camelCase key -> column, per entity
PROVINCE_FIELDS = {
    'name': 'name',
    'nameNepali': 'name_nepali',
    'area': 'area',
    'population': 'population',
    'headquarter': 'headquarter',
    'headquarterNepali': 'headquarter_nepali',
}
DISTRICT_FIELDS = PROVINCE_FIELDS
MUNICIPALITY_FIELDS = {
    'name': 'name',
    'nameNepali': 'name_nepali',
    'area': 'area',
    'population': 'population',
    'latitude': 'latitude',
    'longitude': 'longitude',
    'totalWards': 'total_wards',
}
WARD_FIELDS = {
    'area': 'area',
    'population': 'population',
    'latitude': 'latitude',
    'longitude': 'longitude',
    'officeLocation': 'office_location',
    'officeLocationNepali': 'office_location_nepali',
}


def _upsert(model, key, fields: dict, payload: dict, **extra):
    instance = db.session.get(model, key)
    created = instance is None
    if created:
        instance = model(**extra)
        db.session.add(instance)
    else:
        for column, value in extra.items():
            setattr(instance, column, value)
    for src, column in fields.items():
        if src in payload:
            setattr(instance, column, payload[src])
    return instance, created


def seed_locations(data: dict) -> dict:
    """Insert or update every location in ``data``; returns per-entity counts of new rows."""
    counts = {'provinces': 0, 'districts': 0, 'municipalities': 0, 'wards': 0}

    for p in data.get('provinces', []):
        _, created = _upsert(Province, p['code'], PROVINCE_FIELDS, p, code=p['code'])
        counts['provinces'] += created

        for d in p.get('districts', []):
            _, created = _upsert(
                District, d['code'], DISTRICT_FIELDS, d,
                code=d['code'], province_code=p['code'],
            )
            counts['districts'] += created

            for m in d.get('municipalities', []):
                municipality_type = MunicipalityType(m.get('type', MunicipalityType.MUNICIPALITY.value)).value
                _, created = _upsert(
                    Municipality, m['code'], MUNICIPALITY_FIELDS, m,
                    code=m['code'], district_code=d['code'], type=municipality_type,
                )
                counts['municipalities'] += created

                for w in m.get('wards', []):
                    number = int(w['wardNumber'])
                    _, created = _upsert(
                        Ward, (number, m['code']), WARD_FIELDS, w,
                        ward_number=number, municipality_code=m['code'],
                    )
                    counts['wards'] += created

    return counts


@click.command()
@click.argument('data_file', required=False, type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--dry-run', is_flag=True, help='Validate and count without committing')
def seed_locations_command(data_file, dry_run):
    """Seed the location hierarchy from DATA_FILE (defaults to the bundled sample)."""
    from apps.dpis.app import create_app

    data_file = data_file or DEFAULT_DATA_FILE
    with open(data_file, encoding='utf-8') as f:
        data = json.load(f)

    app = create_app()

    with app.app_context():
        db.create_all()
        try:
            counts = seed_locations(data)
            if dry_run:
                db.session.rollback()
            else:
                db.session.commit()
        except Exception as e:
            db.session.rollback()
            app.logger.error(f"Location seeding failed: {e}")
            raise click.ClickException(str(e))

        summary = ', '.join(f"{count} {name}" for name, count in counts.items())
        print(f"{'[DRY RUN] Would create' if dry_run else 'Created'}: {summary}")


if __name__ == '__main__':
    seed_locations_command()
