"""
Radio transmitter model.
"""
from datetime import datetime
from . import db


class Transmitter(db.Model):
    """
    A radio transmitter of a satellite, as listed by the SatNOGS DB.
    SatNOGS exposes no stable identifier we keep, so (satellite_id,
    description) is what the sync matches rows on.
    """
    __tablename__ = 'transmitters'

    id = db.Column(db.Integer, primary_key=True)
    satellite_id = db.Column(db.Integer, db.ForeignKey('satellites.id'), nullable=False, index=True)
    description = db.Column(db.String(255), nullable=False, default='')
    mode = db.Column(db.String(50))
    alive = db.Column(db.Boolean, default=True)

    # Frequencies in Hz
    uplink_low = db.Column(db.BigInteger)
    uplink_high = db.Column(db.BigInteger)
    downlink_low = db.Column(db.BigInteger)
    downlink_high = db.Column(db.BigInteger)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        """Convert model to dictionary."""
        return {
            'id': self.id,
            'satellite_id': self.satellite_id,
            'description': self.description,
            'mode': self.mode,
            'alive': self.alive,
            'uplink_low': self.uplink_low,
            'uplink_high': self.uplink_high,
            'downlink_low': self.downlink_low,
            'downlink_high': self.downlink_high,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f'<Transmitter satellite_id={self.satellite_id} description={self.description!r}>'
