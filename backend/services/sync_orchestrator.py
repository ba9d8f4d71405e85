"""
Sync run orchestration.

One run walks AUTHORIZING -> LOADING_ROSTER -> LOADING_EXISTING_STATE ->
RECONCILING -> FLUSHING -> DONE. A fatal error at any step ends the run in
ABORTED and is re-raised to the caller. Failures of a single satellite never
leave the worker: they are recorded in that satellite's outcome.

The job-specific parts (which existing rows to preload, how to reconcile one
satellite, how to flush the staged writes) live in ReconciliationJob
subclasses: TleSyncJob and TransmitterSyncJob.
"""
import hmac
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from threading import Event
from typing import Any, Dict, List, Optional

from services.batch_runner import DEFAULT_GROUP_SIZE, run_in_groups
from services.catalog_store import CatalogStore, SatelliteRef
from services.errors import SyncCancelled, SyncError, SyncItemError, Unauthorized
from services.fetch_service import RetryPolicy, fetch_with_retry

logger = logging.getLogger(__name__)


class SyncState(Enum):
    """Steps of a sync run"""
    AUTHORIZING = 'authorizing'
    LOADING_ROSTER = 'loading_roster'
    LOADING_EXISTING_STATE = 'loading_existing_state'
    RECONCILING = 'reconciling'
    FLUSHING = 'flushing'
    DONE = 'done'
    ABORTED = 'aborted'


@dataclass
class ItemOutcome:
    """Result of reconciling one satellite, including the writes it staged."""
    satellite_id: int
    norad_id: int
    name: str
    success: bool
    updated: bool = False
    error: Optional[str] = None
    writes: Dict[str, List[Any]] = field(default_factory=dict)

    @classmethod
    def ok(cls, satellite: SatelliteRef, writes: Optional[Dict[str, List[Any]]] = None):
        writes = {k: v for k, v in (writes or {}).items() if v}
        return cls(satellite.id, satellite.norad_id, satellite.name,
                   success=True, updated=bool(writes), writes=writes)

    @classmethod
    def failure(cls, satellite: SatelliteRef, error: Exception):
        return cls(satellite.id, satellite.norad_id, satellite.name,
                   success=False, error=str(error))


@dataclass
class SyncSummary:
    """Aggregate result of a run, serialized as the trigger endpoint's body."""
    job: str
    processed: int = 0
    updated: int = 0
    failed: int = 0
    writes: Dict[str, int] = field(default_factory=dict)
    duration_ms: int = 0
    dry_run: bool = False
    errors: List[Dict[str, Any]] = field(default_factory=list)
    message: Optional[str] = None

    def to_dict(self):
        data = {
            'success': True,
            'job': self.job,
            'updated': self.updated,
            'processed': self.processed,
            'failed': self.failed,
            **self.writes,
            'duration': f'{self.duration_ms}ms',
            'dry_run': self.dry_run,
            'errors': self.errors,
        }
        if self.message:
            data['message'] = self.message
        return data


class ReconciliationJob:
    """
    Base class of a sync job.

    Subclasses set ``name``, ``log_tag`` and ``write_categories`` and
    implement the three hooks below. ``reconcile`` runs on worker threads
    and may only read ``existing``.
    """
    name = None
    log_tag = 'Sync'
    write_categories = ()

    def load_existing(self, store: CatalogStore, satellite_ids: List[int]) -> Dict[int, Any]:
        raise NotImplementedError

    def reconcile(self, satellite: SatelliteRef, existing: Dict[int, Any], fetch) -> ItemOutcome:
        raise NotImplementedError

    def flush(self, store: CatalogStore, pending: Dict[str, List[Any]]) -> Dict[str, int]:
        raise NotImplementedError


class SyncRun:
    """State of one run; records every state it passes through."""

    def __init__(self, job_name: str):
        self.job_name = job_name
        self.state = None
        self.history: List[SyncState] = []
        self.started = time.monotonic()

    def enter(self, state: SyncState):
        self.state = state
        self.history.append(state)
        logger.debug("[Sync:%s] -> %s", self.job_name, state.value)

    @property
    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self.started) * 1000)


class SyncOrchestrator:
    """
    Runs reconciliation jobs against the catalog store.

    Args:
        store: Catalog store handle
        secret: Shared secret a trigger credential must match
        policy: Retry policy of upstream fetches
        group_size: Satellites reconciled concurrently
        http_session: requests-compatible session (plain requests if None)
        headers: Headers sent with every upstream request
    """

    def __init__(self, store: CatalogStore, secret: Optional[str],
                 policy: Optional[RetryPolicy] = None,
                 group_size: int = DEFAULT_GROUP_SIZE,
                 http_session=None, headers: Optional[dict] = None):
        self.store = store
        self.secret = secret
        self.policy = policy or RetryPolicy()
        self.group_size = group_size
        self.http_session = http_session
        self.headers = headers or {}
        self.last_run: Optional[SyncRun] = None

    @classmethod
    def from_config(cls, store: CatalogStore, config, http_session=None):
        return cls(
            store,
            secret=config['CRON_SECRET'],
            policy=RetryPolicy.from_config(config),
            group_size=config['SYNC_GROUP_SIZE'],
            http_session=http_session,
            headers={'User-Agent': config['HTTP_USER_AGENT']},
        )

    def is_authorized(self, credential: Optional[str]) -> bool:
        if not self.secret or not credential:
            return False
        return hmac.compare_digest(credential.encode(), self.secret.encode())

    def run(self, job: ReconciliationJob, credential: Optional[str],
            limit: Optional[int] = None, dry_run: bool = False,
            cancel_event: Optional[Event] = None) -> SyncSummary:
        """
        Execute one run of ``job``.

        Args:
            job: Reconciliation job
            credential: Bearer credential presented by the caller
            limit: Only reconcile the first N satellites of the roster
            dry_run: Reconcile and count, but write nothing
            cancel_event: Stops new fetches and new groups once set

        Returns:
            SyncSummary of the run

        Raises:
            SyncError: a fatal error aborted the run
        """
        run = SyncRun(job.name)
        self.last_run = run
        try:
            return self._run(run, job, credential, limit, dry_run, cancel_event)
        except SyncError as e:
            run.enter(SyncState.ABORTED)
            logger.error("[%s] Run aborted: %s", job.log_tag, e)
            raise
        except Exception:
            run.enter(SyncState.ABORTED)
            logger.exception("[%s] Run aborted by unexpected error", job.log_tag)
            raise

    def _run(self, run: SyncRun, job: ReconciliationJob, credential, limit, dry_run, cancel_event):
        run.enter(SyncState.AUTHORIZING)
        if not self.is_authorized(credential):
            logger.warning("[%s] Unauthorized sync attempt", job.log_tag)
            raise Unauthorized('Unauthorized')

        run.enter(SyncState.LOADING_ROSTER)
        satellites = self.store.load_roster(limit=limit)
        if not satellites:
            run.enter(SyncState.DONE)
            logger.info("[%s] No satellites to sync", job.log_tag)
            return SyncSummary(job=job.name, writes={c: 0 for c in job.write_categories},
                               duration_ms=run.elapsed_ms, dry_run=dry_run,
                               message='No satellites to sync')

        run.enter(SyncState.LOADING_EXISTING_STATE)
        existing = job.load_existing(self.store, [s.id for s in satellites])

        run.enter(SyncState.RECONCILING)
        logger.info("[%s] Reconciling %d satellites in groups of %d",
                    job.log_tag, len(satellites), self.group_size)
        fetch = partial(fetch_with_retry, policy=self.policy, session=self.http_session,
                        headers=self.headers, cancel_event=cancel_event)
        outcomes = run_in_groups(
            satellites,
            lambda satellite: self._reconcile_one(job, satellite, existing, fetch),
            group_size=self.group_size,
            cancel_event=cancel_event,
        )
        if cancel_event is not None and cancel_event.is_set():
            raise SyncCancelled('Cancelled before flushing')

        pending = merge_writes(outcomes, job.write_categories)

        run.enter(SyncState.FLUSHING)
        if dry_run:
            logger.info("[%s] Dry run, nothing written", job.log_tag)
        else:
            job.flush(self.store, pending)

        run.enter(SyncState.DONE)
        summary = summarize(job, outcomes, pending, run.elapsed_ms, dry_run)
        logger.info("[%s] %d processed, %d updated, %d failed in %s",
                    job.log_tag, summary.processed, summary.updated, summary.failed,
                    f'{summary.duration_ms}ms')
        return summary

    def _reconcile_one(self, job: ReconciliationJob, satellite: SatelliteRef,
                       existing: Dict[int, Any], fetch) -> ItemOutcome:
        try:
            return job.reconcile(satellite, existing, fetch)
        except SyncCancelled:
            raise
        except SyncItemError as e:
            logger.warning("[%s] %s (NORAD %s): %s", job.log_tag, satellite.name, satellite.norad_id, e)
            return ItemOutcome.failure(satellite, e)
        except Exception as e:
            logger.exception("[%s] Unexpected error for %s (NORAD %s)",
                             job.log_tag, satellite.name, satellite.norad_id)
            return ItemOutcome.failure(satellite, e)


def merge_writes(outcomes: List[ItemOutcome], categories) -> Dict[str, List[Any]]:
    """Concatenate the writes staged by each worker, in roster order."""
    pending = {category: [] for category in categories}
    for outcome in outcomes:
        for category, rows in outcome.writes.items():
            pending.setdefault(category, []).extend(rows)
    return pending


def summarize(job: ReconciliationJob, outcomes: List[ItemOutcome], pending: Dict[str, List[Any]],
              duration_ms: int, dry_run: bool) -> SyncSummary:
    failures = [o for o in outcomes if not o.success]
    return SyncSummary(
        job=job.name,
        processed=len(outcomes),
        updated=sum(1 for o in outcomes if o.success and o.updated),
        failed=len(failures),
        writes={category: len(rows) for category, rows in pending.items()},
        duration_ms=duration_ms,
        dry_run=dry_run,
        errors=[
            {'name': o.name, 'norad_id': o.norad_id, 'error': o.error}
            for o in failures
        ],
    )
