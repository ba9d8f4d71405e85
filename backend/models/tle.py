"""
Current TLE model, one row per satellite.
"""
from datetime import datetime
from . import db


class TLE(db.Model):
    """
    The latest two-line element set of a satellite. Replaced wholesale
    whenever either element line changes upstream.
    """
    __tablename__ = 'tle'

    id = db.Column(db.Integer, primary_key=True)
    satellite_id = db.Column(db.Integer, db.ForeignKey('satellites.id'),
                             unique=True, nullable=False, index=True)

    # TLE Data
    tle_line1 = db.Column(db.String(70), nullable=False)
    tle_line2 = db.Column(db.String(70), nullable=False)
    # Kept as derived from line 1, e.g. '2024-045.50000000'
    epoch = db.Column(db.String(20))

    # Metadata
    source = db.Column(db.String(20), default='celestrak')
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def to_dict(self):
        """Convert model to dictionary."""
        return {
            'satellite_id': self.satellite_id,
            'line1': self.tle_line1,
            'line2': self.tle_line2,
            'epoch': self.epoch,
            'source': self.source,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f'<TLE satellite_id={self.satellite_id} epoch={self.epoch}>'
