"""Ward model, keyed by (ward_number, municipality_code)."""
from apps.dpis import db
from apps.dpis.utils.time import utc_now


class Ward(db.Model):
    __tablename__ = 'wards'

    ward_number = db.Column(db.Integer, primary_key=True, autoincrement=False)
    municipality_code = db.Column(
        db.String(36), db.ForeignKey('municipalities.code'), primary_key=True
    )

    area = db.Column(db.Numeric(12, 2), nullable=True)
    population = db.Column(db.BigInteger, nullable=True)
    latitude = db.Column(db.Numeric(10, 7), nullable=True)
    longitude = db.Column(db.Numeric(10, 7), nullable=True)
    office_location = db.Column(db.String(255), nullable=True)
    office_location_nepali = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime, default=utc_now)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now)

    def __repr__(self):
        return f'<Ward {self.municipality_code}-{self.ward_number}>'

    @classmethod
    def get(cls, municipality_code: str, ward_number: int):
        return db.session.get(cls, (ward_number, municipality_code))

    def to_dict(self):
        return {
            'wardNumber': self.ward_number,
            'municipalityCode': self.municipality_code,
            'municipalityName': self.municipality.name if self.municipality else None,
            'area': float(self.area) if self.area is not None else None,
            'population': self.population,
            'latitude': float(self.latitude) if self.latitude is not None else None,
            'longitude': float(self.longitude) if self.longitude is not None else None,
            'officeLocation': self.office_location,
            'officeLocationNepali': self.office_location_nepali,
        }
