"""Province model."""
from apps.dpis import db
from apps.dpis.utils.time import utc_now


class Province(db.Model):
    __tablename__ = 'provinces'

    code = db.Column(db.String(36), primary_key=True)

    name = db.Column(db.String(100), nullable=False)
    name_nepali = db.Column(db.String(100), nullable=False)

    area = db.Column(db.Numeric(12, 2), nullable=True)  # square kilometres
    population = db.Column(db.BigInteger, nullable=True)
    headquarter = db.Column(db.String(100), nullable=True)
    headquarter_nepali = db.Column(db.String(100), nullable=True)

    created_at = db.Column(db.DateTime, default=utc_now)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now)

    districts = db.relationship('District', backref='province', lazy='dynamic')

    def __repr__(self):
        return f'<Province {self.code} {self.name}>'

    def to_dict(self, include_districts=False):
        data = {
            'code': self.code,
            'name': self.name,
            'nameNepali': self.name_nepali,
            'area': float(self.area) if self.area is not None else None,
            'population': self.population,
            'headquarter': self.headquarter,
            'headquarterNepali': self.headquarter_nepali,
            'districtCount': self.districts.count(),
        }
        if include_districts:
            from apps.dpis.models.district import District
            data['districts'] = [d.to_dict() for d in self.districts.order_by(District.name).all()]
        return data
