"""ConvergenceWaiter: terminal conditions, deadline and cancellation."""

import threading

import pytest

from kpcli.core.waiter import ConvergenceWaiter, ready_condition, status_is_current
from kpcli.exceptions import (
    ConvergenceFailedError,
    WaitCancelledError,
    WaitError,
    WaitTimeoutError,
)

from conftest import FakeStore, cluster_builder, ready


class BlockingStore:
    """watch() never yields; it only returns once stop is set."""

    def watch(self, cls, namespace, name, stop, deadline=None):
        while not stop.wait(0.01):
            pass
        return
        yield  # pragma: no cover


# ---------------------------------------------------------------------------
# Status helpers
# ---------------------------------------------------------------------------

def test_ready_condition_lookup():
    obj = ready(cluster_builder(), "Unknown", "building")
    assert ready_condition(obj)["message"] == "building"
    obj.status = {}
    assert ready_condition(obj) is None


def test_status_is_current():
    assert status_is_current(ready(cluster_builder(), "True", generation=2, observed=2))
    assert not status_is_current(ready(cluster_builder(), "True", generation=3, observed=2))
    bare = cluster_builder()
    bare.metadata.pop("generation")
    assert status_is_current(bare)


# ---------------------------------------------------------------------------
# wait()
# ---------------------------------------------------------------------------

def test_returns_first_ready_version():
    obj = cluster_builder()
    store = FakeStore(watch_versions=[
        ready(obj, "Unknown", "resolving"),
        ready(obj, "True"),
    ])
    result = ConvergenceWaiter(store).wait(obj)
    assert ready_condition(result)["status"] == "True"


def test_stale_status_is_not_terminal():
    obj = cluster_builder()
    store = FakeStore(watch_versions=[
        ready(obj, "False", "old failure", generation=2, observed=1),
        ready(obj, "True", generation=2, observed=2),
    ])
    result = ConvergenceWaiter(store).wait(obj)
    assert result.status["observedGeneration"] == 2


def test_ready_false_raises_with_condition_message():
    obj = cluster_builder()
    store = FakeStore(watch_versions=[ready(obj, "False", "stack not found")])
    with pytest.raises(ConvergenceFailedError) as excinfo:
        ConvergenceWaiter(store).wait(obj)
    assert "stack not found" in str(excinfo.value)


def test_progress_reports_each_new_message_once():
    obj = cluster_builder()
    messages = []
    store = FakeStore(watch_versions=[
        ready(obj, "Unknown", "resolving"),
        ready(obj, "Unknown", "resolving"),
        ready(obj, "Unknown", "building"),
        ready(obj, "True"),
    ])
    ConvergenceWaiter(store, on_progress=messages.append).wait(obj)
    assert messages == [
        'Waiting for ClusterBuilder "my-cb" to become ready...',
        "resolving",
        "building",
    ]


def test_deadline_raises_timeout():
    waiter = ConvergenceWaiter(BlockingStore(), timeout=0.05)
    with pytest.raises(WaitTimeoutError) as excinfo:
        waiter.wait(cluster_builder())
    assert excinfo.value.hint


def test_cancel_during_wait():
    obj = cluster_builder()
    waiter = None

    class CancellingStore:
        def watch(self, cls, namespace, name, stop, deadline=None):
            yield ready(obj, "Unknown", "building")
            waiter.cancel()
            stop.wait(1)

    waiter = ConvergenceWaiter(CancellingStore(), timeout=5)
    with pytest.raises(WaitCancelledError):
        waiter.wait(obj)


def test_cancel_before_wait():
    store = FakeStore(watch_versions=[ready(cluster_builder(), "True")])
    waiter = ConvergenceWaiter(store)
    waiter.cancel()
    with pytest.raises(WaitCancelledError):
        waiter.wait(cluster_builder())
    assert "watch" not in store.verbs()


def test_watch_ending_early_is_an_error():
    obj = cluster_builder()
    store = FakeStore(watch_versions=[ready(obj, "Unknown", "building")])
    with pytest.raises(WaitError) as excinfo:
        ConvergenceWaiter(store).wait(obj)
    assert type(excinfo.value) is WaitError


def test_timer_is_released_after_wait():
    obj = cluster_builder()
    before = threading.active_count()
    ConvergenceWaiter(FakeStore(watch_versions=[ready(obj, "True")]), timeout=30).wait(obj)
    # a cancelled Timer thread exits promptly
    for thread in threading.enumerate():
        if isinstance(thread, threading.Timer):
            thread.join(1)
    assert threading.active_count() <= before
