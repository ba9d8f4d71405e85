"""
Resilient HTTP fetch for the upstream sources.

Each attempt is bounded by a timeout; transport failures are retried with a
linear backoff (backoff x attempt number). A non-2xx answer is a response,
not a failure: callers decide what to do with it.

The function keeps no state between calls and is safe to run from many
worker threads at once.
"""
import logging
import time
from dataclasses import dataclass
from threading import Event
from typing import Optional

import requests

from services.errors import FetchExhausted, SyncCancelled

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt count, per-attempt timeout (s) and initial backoff (s)"""
    attempts: int = 3
    timeout: float = 5.0
    backoff: float = 0.5

    @classmethod
    def from_config(cls, config) -> 'RetryPolicy':
        return cls(
            attempts=config['FETCH_ATTEMPTS'],
            timeout=config['FETCH_TIMEOUT'],
            backoff=config['FETCH_BACKOFF'],
        )

    def delay_after(self, attempt: int) -> float:
        return self.backoff * attempt


@dataclass
class RetryState:
    """Progress of a single fetch."""
    policy: RetryPolicy
    attempt: int = 0
    last_error: Optional[BaseException] = None

    @property
    def exhausted(self) -> bool:
        return self.attempt >= self.policy.attempts

    def begin_attempt(self):
        self.attempt += 1

    def record_failure(self, error: BaseException) -> float:
        """Remember the error and return how long to wait before the next attempt."""
        self.last_error = error
        return self.policy.delay_after(self.attempt)


def _wait(delay: float, cancel_event: Optional[Event]):
    if delay <= 0:
        return
    if cancel_event is not None:
        cancel_event.wait(delay)
    else:
        time.sleep(delay)


def fetch_with_retry(url: str, policy: Optional[RetryPolicy] = None, session=None,
                     headers: Optional[dict] = None,
                     cancel_event: Optional[Event] = None) -> requests.Response:
    """
    GET a URL, retrying transport failures.

    Args:
        url: Full URL to fetch
        policy: Attempts / timeout / backoff (defaults: 3, 5s, 0.5s)
        session: Object with a requests-compatible ``get``; plain ``requests`` if None
        headers: Extra request headers
        cancel_event: When set, no further attempt starts and backoff sleeps end early

    Returns:
        The response of the first attempt that completed

    Raises:
        FetchExhausted: every attempt failed; carries the last underlying error
        SyncCancelled: cancel_event was set before an attempt could start
    """
    policy = policy or RetryPolicy()
    http = session if session is not None else requests
    state = RetryState(policy)

    while not state.exhausted:
        if cancel_event is not None and cancel_event.is_set():
            raise SyncCancelled(f"Fetch cancelled: {url}")

        state.begin_attempt()
        if state.attempt > 1:
            logger.warning("[Fetch] Retry #%d for %s", state.attempt - 1, url)

        try:
            return http.get(url, headers=headers, timeout=policy.timeout)
        except requests.Timeout as e:
            logger.debug("[Fetch] Timeout after %.1fs on %s", policy.timeout, url)
            _wait(state.record_failure(e), cancel_event)
        except requests.RequestException as e:
            logger.debug("[Fetch] Request error on %s: %s", url, e)
            _wait(state.record_failure(e), cancel_event)

    raise FetchExhausted(url, state.attempt, state.last_error)
