"""
Bounded-concurrency batch runner.

Items are split into contiguous groups. All workers of a group run at once
on a thread pool; the next group starts only when every worker of the
current one has returned. The group size is therefore the ceiling on
in-flight upstream requests.
"""
import concurrent.futures
import logging
from threading import Event
from typing import Callable, List, Optional, Sequence, TypeVar

from services.errors import SyncCancelled
from utils.batching import chunked

logger = logging.getLogger(__name__)

T = TypeVar('T')
R = TypeVar('R')

DEFAULT_GROUP_SIZE = 30


def run_in_groups(items: Sequence[T], worker: Callable[[T], R],
                  group_size: int = DEFAULT_GROUP_SIZE,
                  cancel_event: Optional[Event] = None) -> List[R]:
    """
    Run ``worker`` over ``items`` group by group.

    Workers are expected to turn their own failures into result values.
    Results come back in input order whatever order workers finish in.

    Raises:
        SyncCancelled: cancel_event was set between two groups
    """
    results: List[R] = []
    groups = chunked(list(items), group_size)

    for index, group in enumerate(groups, start=1):
        if cancel_event is not None and cancel_event.is_set():
            raise SyncCancelled(f"Cancelled before group {index}/{len(groups)}")

        logger.debug("[BatchRunner] Group %d/%d: %d items", index, len(groups), len(group))
        with concurrent.futures.ThreadPoolExecutor(max_workers=len(group)) as executor:
            futures = [executor.submit(worker, item) for item in group]
            concurrent.futures.wait(futures)
        results.extend(future.result() for future in futures)

    return results
