"""
Catalog store handle used by the sync jobs.

Built once in the application factory and handed to the orchestrator.
Reads return plain immutable snapshots so worker threads never touch
session-bound ORM objects; writes go through the BatchWriter.
"""
from collections import defaultdict
from typing import Dict, Iterable, List, NamedTuple, Optional

from sqlalchemy.exc import SQLAlchemyError

from models import Satellite, TLE, Transmitter
from services.batch_writer import BatchWriter
from services.errors import RosterLoadFailed


class SatelliteRef(NamedTuple):
    id: int
    norad_id: int
    name: str


class TleSnapshot(NamedTuple):
    satellite_id: int
    tle_line1: str
    tle_line2: str


class TransmitterSnapshot(NamedTuple):
    id: int
    satellite_id: int
    description: Optional[str]
    mode: Optional[str]
    alive: Optional[bool]
    uplink_low: Optional[int]
    uplink_high: Optional[int]
    downlink_low: Optional[int]
    downlink_high: Optional[int]


class CatalogStore:
    """
    Read/write contract of the catalog database.

    Args:
        session: SQLAlchemy session
        writer: Chunked writer sharing the same session
    """

    def __init__(self, session, writer: BatchWriter):
        self.session = session
        self.writer = writer

    def load_roster(self, limit: Optional[int] = None) -> List[SatelliteRef]:
        """All satellites with a NORAD id, ordered by id."""
        try:
            query = self.session.query(Satellite.id, Satellite.norad_id, Satellite.name)\
                .filter(Satellite.norad_id.isnot(None))\
                .order_by(Satellite.id)
            if limit is not None:
                query = query.limit(limit)
            return [SatelliteRef(*row) for row in query.all()]
        except SQLAlchemyError as e:
            self.session.rollback()
            raise RosterLoadFailed(f"Failed to fetch satellites: {e}") from e

    def load_tles(self, satellite_ids: Iterable[int]) -> Dict[int, TleSnapshot]:
        """Current TLE rows keyed by satellite id."""
        ids = list(satellite_ids)
        if not ids:
            return {}
        try:
            rows = self.session.query(TLE.satellite_id, TLE.tle_line1, TLE.tle_line2)\
                .filter(TLE.satellite_id.in_(ids)).all()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise RosterLoadFailed(f"Failed to fetch existing TLEs: {e}") from e
        return {row.satellite_id: TleSnapshot(*row) for row in rows}

    def load_transmitters(self, satellite_ids: Iterable[int]) -> Dict[int, List[TransmitterSnapshot]]:
        """Existing transmitter rows grouped by satellite id."""
        ids = list(satellite_ids)
        if not ids:
            return {}
        columns = [getattr(Transmitter, field) for field in TransmitterSnapshot._fields]
        try:
            rows = self.session.query(*columns)\
                .filter(Transmitter.satellite_id.in_(ids))\
                .order_by(Transmitter.id).all()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise RosterLoadFailed(f"Failed to fetch existing transmitters: {e}") from e

        grouped = defaultdict(list)
        for row in rows:
            grouped[row.satellite_id].append(TransmitterSnapshot(*row))
        return dict(grouped)
