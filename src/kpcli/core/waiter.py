#!/usr/bin/env python3
"""
KPCLI CONVERGENCE WAITER
------------------------
Blocks on the store's watch of a submitted object until its Ready
condition turns terminal, the deadline passes, or the wait is cancelled.

Abandoning the wait never touches the submitted change; only the
waiting stops.
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, Optional, TypeVar

from kpcli.core.models import ResourceObject
from kpcli.exceptions import (
    ConvergenceFailedError,
    WaitCancelledError,
    WaitError,
    WaitTimeoutError,
)

logger = logging.getLogger("kpcli.waiter")

T = TypeVar("T", bound=ResourceObject)

DEFAULT_TIMEOUT = 600.0
READY = "Ready"


def ready_condition(obj: ResourceObject) -> Optional[Dict[str, Any]]:
    for condition in obj.status.get("conditions") or []:
        if isinstance(condition, dict) and condition.get("type") == READY:
            return condition
    return None


def status_is_current(obj: ResourceObject) -> bool:
    """False while the status still describes an older generation."""
    generation = obj.metadata.get("generation")
    observed = obj.status.get("observedGeneration")
    if generation is None or observed is None:
        return True
    return observed >= generation


class ConvergenceWaiter:
    """
    Waits for one object at a time. cancel() may be called from another
    thread (or a signal handler) to abandon the current wait.
    """

    def __init__(self, store: Any, timeout: float = DEFAULT_TIMEOUT,
                 on_progress: Optional[Callable[[str], None]] = None):
        self._store = store
        self.timeout = timeout
        self._on_progress = on_progress
        self._cancelled = threading.Event()
        self._active_stop: Optional[threading.Event] = None

    def cancel(self) -> None:
        self._cancelled.set()
        if self._active_stop is not None:
            self._active_stop.set()

    def _progress(self, message: str) -> None:
        if self._on_progress is not None:
            self._on_progress(message)

    def wait(self, obj: T) -> T:
        """
        Returns the first version of obj whose Ready condition is True.

        Raises ConvergenceFailedError on Ready=False, WaitTimeoutError at the
        deadline and WaitCancelledError after cancel().
        """
        cls = type(obj)
        label = f'{cls.__name__} "{obj.name}"'
        if self._cancelled.is_set():
            raise WaitCancelledError(f"wait for {label} cancelled")

        stop = threading.Event()
        timed_out = threading.Event()

        def expire():
            timed_out.set()
            stop.set()

        deadline = time.monotonic() + self.timeout
        timer = threading.Timer(self.timeout, expire)
        timer.daemon = True
        self._active_stop = stop
        self._progress(f"Waiting for {label} to become ready...")
        logger.debug("waiting up to %.0fs for %s", self.timeout, label)

        last_reason: Optional[str] = None
        timer.start()
        try:
            for current in self._store.watch(cls, obj.namespace, obj.name, stop, deadline=deadline):
                if stop.is_set():
                    break
                if not status_is_current(current):
                    continue

                condition = ready_condition(current)
                if condition is None:
                    continue

                state = condition.get("status")
                message = condition.get("message") or condition.get("reason") or ""
                if state == "True":
                    logger.debug("%s is ready", label)
                    return current
                if state == "False":
                    raise ConvergenceFailedError(
                        f"{label} failed to become ready: {message or 'no reason given'}"
                    )
                if message and message != last_reason:
                    last_reason = message
                    self._progress(message)
        finally:
            timer.cancel()
            self._active_stop = None

        if timed_out.is_set() or time.monotonic() >= deadline:
            raise WaitTimeoutError(
                f"timed out after {self.timeout:.0f}s waiting for {label}",
                hint="The change was applied; check its status later.",
            )
        if self._cancelled.is_set():
            raise WaitCancelledError(
                f"wait for {label} cancelled",
                hint="The change was applied; only the wait was abandoned.",
            )
        raise WaitError(f"watch of {label} ended before it became ready")
