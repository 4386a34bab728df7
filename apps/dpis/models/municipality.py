"""Municipality model."""
from enum import Enum

from apps.dpis import db
from apps.dpis.utils.time import utc_now


class MunicipalityType(str, Enum):
    METROPOLITAN_CITY = 'METROPOLITAN_CITY'
    SUB_METROPOLITAN_CITY = 'SUB_METROPOLITAN_CITY'
    MUNICIPALITY = 'MUNICIPALITY'
    RURAL_MUNICIPALITY = 'RURAL_MUNICIPALITY'


class Municipality(db.Model):
    __tablename__ = 'municipalities'

    code = db.Column(db.String(36), primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    name_nepali = db.Column(db.String(100), nullable=False)
    type = db.Column(db.String(30), nullable=False, default=MunicipalityType.MUNICIPALITY.value)

    area = db.Column(db.Numeric(12, 2), nullable=True)
    population = db.Column(db.BigInteger, nullable=True)
    latitude = db.Column(db.Numeric(10, 7), nullable=True)
    longitude = db.Column(db.Numeric(10, 7), nullable=True)
    total_wards = db.Column(db.Integer, nullable=True)

    district_code = db.Column(db.String(36), db.ForeignKey('districts.code'), nullable=False, index=True)

    created_at = db.Column(db.DateTime, default=utc_now)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now)

    wards = db.relationship('Ward', backref='municipality', lazy='dynamic')

    def __repr__(self):
        return f'<Municipality {self.code} {self.name}>'

    def to_dict(self, include_wards=False):
        data = {
            'code': self.code,
            'name': self.name,
            'nameNepali': self.name_nepali,
            'type': self.type,
            'area': float(self.area) if self.area is not None else None,
            'population': self.population,
            'latitude': float(self.latitude) if self.latitude is not None else None,
            'longitude': float(self.longitude) if self.longitude is not None else None,
            'totalWards': self.total_wards,
            'districtCode': self.district_code,
        }
        if include_wards:
            from apps.dpis.models.ward import Ward
            data['wards'] = [w.to_dict() for w in self.wards.order_by(Ward.ward_number).all()]
        return data
