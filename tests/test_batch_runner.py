import concurrent.futures
import random
import threading
import time

import pytest

from services import batch_runner
from services.batch_runner import run_in_groups
from services.errors import SyncCancelled
from utils.batching import chunked


def test_chunked_splits_contiguously():
    assert chunked(list(range(7)), 3) == [[0, 1, 2], [3, 4, 5], [6]]
    assert chunked([], 3) == []


def test_chunked_rejects_non_positive_size():
    with pytest.raises(ValueError):
        chunked([1, 2], 0)


def test_results_keep_input_order():
    def worker(item):
        time.sleep(random.uniform(0, 0.01))
        return item * 10

    assert run_in_groups(list(range(25)), worker, group_size=7) == [i * 10 for i in range(25)]


def test_in_flight_work_never_exceeds_group_size(monkeypatch):
    executors = []

    class CountingExecutor(concurrent.futures.ThreadPoolExecutor):
        def __init__(self, *args, **kwargs):
            super().__init__(*args, **kwargs)
            executors.append(self)

    monkeypatch.setattr(batch_runner.concurrent.futures, 'ThreadPoolExecutor', CountingExecutor)

    lock = threading.Lock()
    state = {'in_flight': 0, 'peak': 0}

    def worker(item):
        with lock:
            state['in_flight'] += 1
            state['peak'] = max(state['peak'], state['in_flight'])
        time.sleep(0.02)
        with lock:
            state['in_flight'] -= 1
        return item

    results = run_in_groups(list(range(65)), worker, group_size=30)

    assert results == list(range(65))
    assert len(executors) == 3
    assert 1 < state['peak'] <= 30


def test_next_group_waits_for_slow_item():
    finished = []
    lock = threading.Lock()

    def worker(item):
        if item == 0:
            time.sleep(0.05)
        with lock:
            finished.append(item)
        return item

    run_in_groups([0, 1, 2, 3], worker, group_size=2)

    # Items of the second group only start after item 0 finished
    assert finished.index(0) < finished.index(2)
    assert finished.index(0) < finished.index(3)


def test_cancellation_stops_before_next_group():
    cancel = threading.Event()
    seen = []

    def worker(item):
        seen.append(item)
        cancel.set()
        return item

    with pytest.raises(SyncCancelled):
        run_in_groups([1, 2, 3, 4], worker, group_size=2, cancel_event=cancel)

    assert sorted(seen) == [1, 2]


def test_empty_input_runs_nothing():
    assert run_in_groups([], lambda item: item) == []
