"""
Satellite model for individual catalog objects.
"""
from datetime import datetime
from . import db


class Satellite(db.Model):
    """
    Represents a tracked object. Rows are created by the catalog seeding
    import; the sync jobs only read them.
    """
    __tablename__ = 'satellites'

    id = db.Column(db.Integer, primary_key=True)
    # Objects without a NORAD id cannot be joined to CelesTrak / SatNOGS
    norad_id = db.Column(db.Integer, unique=True, nullable=True, index=True)
    name = db.Column(db.String(100), nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationships
    tle = db.relationship('TLE', backref='satellite', uselist=False,
                          cascade='all, delete-orphan')
    transmitters = db.relationship('Transmitter', backref='satellite', lazy='dynamic',
                                   cascade='all, delete-orphan')

    def to_dict(self, include_tle=True):
        """Convert model to dictionary."""
        data = {
            'id': self.id,
            'norad_id': self.norad_id,
            'name': self.name,
        }
        if include_tle:
            data['tle'] = self.tle.to_dict() if self.tle else None
        return data

    def __repr__(self):
        return f'<Satellite {self.name} (NORAD: {self.norad_id})>'
