"""
TLE (Two-Line Element) sync.

Fetches the current element set of every roster satellite from CelesTrak,
parses it and stages a full replace of the stored row whenever either
element line differs from what the catalog holds.
"""
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from models import TLE
from services.catalog_store import CatalogStore, SatelliteRef, TleSnapshot
from services.errors import MalformedTle, UpstreamStatusError
from services.sync_orchestrator import ItemOutcome, ReconciliationJob

# Element lines are fixed width
TLE_LINE_LENGTH = 69


# ==================== TLE Parsing ====================

def split_tle_lines(tle_text: str) -> Tuple[str, str]:
    """
    Extract line 1 and line 2 from a single-object CelesTrak body.

    Two non-empty lines are the element lines themselves; three mean the
    first one is a name header.

    Raises:
        MalformedTle: any other line count, or an element line that is not
            TLE_LINE_LENGTH characters wide
    """
    lines = [line.strip() for line in (tle_text or '').splitlines() if line.strip()]

    if len(lines) == 2:
        line1, line2 = lines
    elif len(lines) == 3:
        _, line1, line2 = lines
    else:
        raise MalformedTle(f"Expected 2 or 3 TLE lines, got {len(lines)}")

    for number, line in ((1, line1), (2, line2)):
        if len(line) != TLE_LINE_LENGTH:
            raise MalformedTle(f"TLE line {number} is {len(line)} characters, expected {TLE_LINE_LENGTH}")
    return line1, line2


def parse_tle_epoch(line1: str) -> str:
    """
    Epoch string from TLE line 1, e.g. '2024-045.50000000'.

    Format of columns 19-32: YYDDD.DDDDDDDD. The two-digit year is always
    read as 20YY, so element sets dated before 2000 come out wrong.
    Stored epochs depend on this form; keep it.
    """
    year_str = line1[18:20]
    day_str = line1[20:32]
    return f"20{year_str}-{day_str}"


def tle_changed(existing: Optional[TleSnapshot], line1: str, line2: str) -> bool:
    """True when there is no stored TLE or either element line differs. The epoch is not compared."""
    if existing is None:
        return True
    return existing.tle_line1 != line1 or existing.tle_line2 != line2


def build_tle_row(satellite_id: int, line1: str, line2: str, source: str,
                  now: Optional[datetime] = None) -> Dict:
    """Full-replace row for the tle table."""
    return {
        'satellite_id': satellite_id,
        'tle_line1': line1,
        'tle_line2': line2,
        'epoch': parse_tle_epoch(line1),
        'source': source,
        'updated_at': now or datetime.utcnow(),
    }


# ==================== Sync Job ====================

class TleSyncJob(ReconciliationJob):
    """
    Keeps the tle table in line with CelesTrak.

    Args:
        url_template: CelesTrak URL with a ``{norad_id}`` placeholder
        source: Origin tag written to each row
    """
    name = 'tle'
    log_tag = 'SyncTLE'
    write_categories = ('tle_upserts',)

    def __init__(self, url_template: str, source: str = 'celestrak'):
        self.url_template = url_template
        self.source = source

    @classmethod
    def from_config(cls, config) -> 'TleSyncJob':
        return cls(config['CELESTRAK_TLE_URL'], source=config['TLE_SOURCE'])

    def load_existing(self, store: CatalogStore, satellite_ids: List[int]) -> Dict[int, TleSnapshot]:
        return store.load_tles(satellite_ids)

    def reconcile(self, satellite: SatelliteRef, existing: Dict[int, TleSnapshot], fetch) -> ItemOutcome:
        url = self.url_template.format(norad_id=satellite.norad_id)
        response = fetch(url)
        if not response.ok:
            raise UpstreamStatusError(url, response.status_code)

        line1, line2 = split_tle_lines(response.text)
        if not tle_changed(existing.get(satellite.id), line1, line2):
            return ItemOutcome.ok(satellite)

        row = build_tle_row(satellite.id, line1, line2, self.source)
        return ItemOutcome.ok(satellite, writes={'tle_upserts': [row]})

    def flush(self, store: CatalogStore, pending: Dict[str, List]) -> Dict[str, int]:
        return {
            'tle_upserts': store.writer.upsert(TLE, pending.get('tle_upserts', []),
                                               conflict_keys=['satellite_id']),
        }
