"""
Business logic services for the satellite catalog sync.

Services:
- fetch_service: HTTP GET with per-attempt timeout and linear backoff
- batch_runner: Bounded-concurrency group execution
- batch_writer: Chunked insert / upsert / delete with per-chunk commits
- catalog_store: Roster and existing-state reads
- sync_orchestrator: Run state machine shared by every sync job
- tle_service: CelesTrak TLE sync
- transmitter_service: SatNOGS transmitter sync
- scheduler_service: Background task scheduling
"""

from .errors import SyncError, SyncItemError
from .fetch_service import RetryPolicy, fetch_with_retry
from .batch_runner import run_in_groups
from .batch_writer import BatchWriter
from .catalog_store import CatalogStore
from .sync_orchestrator import SyncOrchestrator, SyncState, SyncSummary
from .tle_service import TleSyncJob
from .transmitter_service import TransmitterSyncJob
from .scheduler_service import SyncScheduler

__all__ = [
    # Errors
    'SyncError',
    'SyncItemError',

    # Fetch / concurrency
    'RetryPolicy',
    'fetch_with_retry',
    'run_in_groups',

    # Persistence
    'BatchWriter',
    'CatalogStore',

    # Orchestration
    'SyncOrchestrator',
    'SyncState',
    'SyncSummary',

    # Jobs
    'TleSyncJob',
    'TransmitterSyncJob',

    # Scheduler
    'SyncScheduler',
]
