"""
Transmitter sync against the SatNOGS DB.

SatNOGS transmitters carry no identifier we store, so a satellite's
transmitters are matched on their description. Each run classifies the
upstream list against the stored rows into additions, updates and
removals; unchanged transmitters stage nothing.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from models import Transmitter
from services.catalog_store import CatalogStore, SatelliteRef, TransmitterSnapshot
from services.errors import MalformedUpstreamPayload, UpstreamStatusError
from services.sync_orchestrator import ItemOutcome, ReconciliationJob

# Fields compared to decide whether a matched transmitter needs an update
TRACKED_FIELDS = ('mode', 'alive', 'uplink_low', 'uplink_high', 'downlink_low', 'downlink_high')


@dataclass
class TransmitterDiff:
    """Writes needed to make one satellite's transmitters match upstream."""
    additions: List[Dict[str, Any]] = field(default_factory=list)
    updates: List[Dict[str, Any]] = field(default_factory=list)
    removals: List[int] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.additions or self.updates or self.removals)


def parse_transmitter_payload(data: Any) -> List[Dict[str, Any]]:
    """
    Transmitter list from a SatNOGS body: a bare array or a ``{"results": [...]}`` page.

    An object without ``results``, such as an error body ``{"detail": ...}``,
    is malformed. It never counts as an empty transmitter list.

    Raises:
        MalformedUpstreamPayload: the body is neither, or holds non-object items
    """
    if isinstance(data, list):
        items = data
    elif isinstance(data, dict):
        if 'results' not in data:
            raise MalformedUpstreamPayload(f"Transmitter page has no results: {sorted(data)}")
        items = data['results']
    else:
        raise MalformedUpstreamPayload(f"Unexpected transmitter payload type: {type(data).__name__}")

    if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
        raise MalformedUpstreamPayload("Transmitter list must contain JSON objects")
    return items


def normalize_transmitter(item: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply the catalog defaults to an upstream transmitter.

    Missing description becomes '', missing mode and frequencies become
    None, and ``alive`` is True unless upstream says exactly False.
    """
    return {
        'description': item.get('description') or '',
        'mode': item.get('mode') or None,
        'alive': item.get('alive') is not False,
        'uplink_low': item.get('uplink_low') or None,
        'uplink_high': item.get('uplink_high') or None,
        'downlink_low': item.get('downlink_low') or None,
        'downlink_high': item.get('downlink_high') or None,
    }


def _description_key(description: Optional[str]) -> str:
    return description or ''


def diff_transmitters(satellite_id: int, existing: Sequence[TransmitterSnapshot],
                      upstream: Sequence[Dict[str, Any]],
                      now: Optional[datetime] = None) -> TransmitterDiff:
    """
    Three-way classification keyed by description.

    Entries sharing a description collapse to the last one seen, on either
    side. That is a known limit of matching on a free-text field.
    """
    now = now or datetime.utcnow()
    existing_by_key = {_description_key(row.description): row for row in existing}
    upstream_by_key = {}
    for item in upstream:
        normalized = normalize_transmitter(item)
        upstream_by_key[normalized['description']] = normalized

    diff = TransmitterDiff()
    for key, incoming in upstream_by_key.items():
        current = existing_by_key.get(key)
        if current is None:
            diff.additions.append({'satellite_id': satellite_id, **incoming})
        elif any(getattr(current, name) != incoming[name] for name in TRACKED_FIELDS):
            diff.updates.append({
                'id': current.id,
                'satellite_id': current.satellite_id,
                **incoming,
                'description': current.description,
                'updated_at': now,
            })

    # Every stored row is checked, including ones shadowed by a duplicate description
    for row in existing:
        if _description_key(row.description) not in upstream_by_key:
            diff.removals.append(row.id)

    return diff


# ==================== Sync Job ====================

class TransmitterSyncJob(ReconciliationJob):
    """
    Keeps the transmitters table in line with SatNOGS.

    Args:
        url_template: SatNOGS URL with a ``{norad_id}`` placeholder
    """
    name = 'transmitters'
    log_tag = 'SyncTransmitters'
    write_categories = ('inserts', 'updates', 'deletes')

    def __init__(self, url_template: str):
        self.url_template = url_template

    @classmethod
    def from_config(cls, config) -> 'TransmitterSyncJob':
        return cls(config['SATNOGS_TRANSMITTERS_URL'])

    def load_existing(self, store: CatalogStore,
                      satellite_ids: List[int]) -> Dict[int, List[TransmitterSnapshot]]:
        return store.load_transmitters(satellite_ids)

    def reconcile(self, satellite: SatelliteRef, existing: Dict[int, List[TransmitterSnapshot]],
                  fetch) -> ItemOutcome:
        url = self.url_template.format(norad_id=satellite.norad_id)
        response = fetch(url)
        if not response.ok:
            raise UpstreamStatusError(url, response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedUpstreamPayload(f"Invalid JSON: {e}") from e

        upstream = parse_transmitter_payload(data)
        diff = diff_transmitters(satellite.id, existing.get(satellite.id, []), upstream)
        return ItemOutcome.ok(satellite, writes={
            'inserts': diff.additions,
            'updates': diff.updates,
            'deletes': diff.removals,
        })

    def flush(self, store: CatalogStore, pending: Dict[str, List]) -> Dict[str, int]:
        # New rows first, removals last
        return {
            'inserts': store.writer.insert(Transmitter, pending.get('inserts', [])),
            'updates': store.writer.upsert(Transmitter, pending.get('updates', []), conflict_keys=['id']),
            'deletes': store.writer.delete(Transmitter, pending.get('deletes', [])),
        }
