"""District model."""
from apps.dpis import db
from apps.dpis.utils.time import utc_now


class District(db.Model):
    __tablename__ = 'districts'

    code = db.Column(db.String(36), primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    name_nepali = db.Column(db.String(100), nullable=False)

    area = db.Column(db.Numeric(12, 2), nullable=True)
    population = db.Column(db.BigInteger, nullable=True)
    headquarter = db.Column(db.String(100), nullable=True)
    headquarter_nepali = db.Column(db.String(100), nullable=True)

    province_code = db.Column(db.String(36), db.ForeignKey('provinces.code'), nullable=False, index=True)

    created_at = db.Column(db.DateTime, default=utc_now)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now)

    municipalities = db.relationship('Municipality', backref='district', lazy='dynamic')

    def __repr__(self):
        return f'<District {self.code} {self.name}>'

    def to_dict(self, include_province=False):
        data = {
            'code': self.code,
            'name': self.name,
            'nameNepali': self.name_nepali,
            'area': float(self.area) if self.area is not None else None,
            'population': self.population,
            'headquarter': self.headquarter,
            'headquarterNepali': self.headquarter_nepali,
            'provinceCode': self.province_code,
            'municipalityCount': self.municipalities.count(),
        }
        if include_province and self.province:
            data['province'] = {'code': self.province.code, 'name': self.province.name}
        return data
