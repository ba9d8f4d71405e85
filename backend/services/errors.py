"""
Exceptions raised by the catalog sync.

Fatal errors abort a run and become its top-level failure. Per-item errors
(subclasses of SyncItemError) are caught at the worker boundary and recorded
in the run summary.
"""


class SyncError(Exception):
    """Base exception for catalog sync errors"""
    pass


class Unauthorized(SyncError):
    """Raised when the trigger credential does not match the configured secret"""
    pass


class RosterLoadFailed(SyncError):
    """Raised when the satellite roster or existing catalog state cannot be read"""
    pass


class SyncCancelled(SyncError):
    """Raised when a run is cancelled before it completes"""
    pass


class PersistenceChunkFailed(SyncError):
    """Raised when one chunk of a batched write fails"""

    def __init__(self, table, chunk_index, offset, cause):
        self.table = table
        self.chunk_index = chunk_index
        self.offset = offset
        self.cause = cause
        super().__init__(
            f"Write to '{table}' failed at chunk {chunk_index} (rows from {offset}): {cause}"
        )


class SyncItemError(SyncError):
    """Base exception for failures confined to a single satellite"""
    pass


class FetchExhausted(SyncItemError):
    """Raised when every attempt of a resilient fetch failed"""

    def __init__(self, url, attempts, last_error):
        self.url = url
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Fetch failed after {attempts} attempts: {last_error}")


class UpstreamStatusError(SyncItemError):
    """Raised when an upstream source answers with a non-2xx status"""

    def __init__(self, url, status_code):
        self.url = url
        self.status_code = status_code
        super().__init__(f"HTTP {status_code}")


class MalformedUpstreamPayload(SyncItemError):
    """Raised when an upstream body cannot be interpreted"""
    pass


class MalformedTle(MalformedUpstreamPayload):
    """Raised when a CelesTrak body is not a 2 or 3 line element set"""
    pass
