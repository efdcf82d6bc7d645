#!/usr/bin/env python3
"""
KPCLI ENGINE - The Convergence Cycle
------------------------------------
Shared create / patch / save / delete logic for every resource kind.

One cycle per invocation:
  diff -> (maybe) submit -> report -> (maybe) wait

Commands only build the desired object; the engine decides whether it
is submitted, how the result is reported and whether to block on it.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from kpcli.cli.output import OutputRouter
from kpcli.core.models import ResourceObject
from kpcli.core.patch import create_patch
from kpcli.core.waiter import ConvergenceWaiter

logger = logging.getLogger("kpcli.engine")

CREATED = "created"
PATCHED = "patched"
UNCHANGED = "unchanged"
DELETED = "deleted"


@dataclass
class ConvergenceResult:
    """What a cycle did. obj is the store's answer, or the local object when nothing was submitted."""

    action: str
    obj: ResourceObject
    submitted: bool = False
    patch: bytes = b""


class ConvergenceEngine:
    """
    Drives one convergence cycle against a ResourceStore, reporting
    through an OutputRouter and waiting through a ConvergenceWaiter.
    """

    def __init__(self, store: Any, router: OutputRouter,
                 waiter: Optional[ConvergenceWaiter] = None):
        self.store = store
        self.router = router
        self.mode = router.mode
        self.waiter = waiter

    # ------------------------------------------------------------------
    # Verbs
    # ------------------------------------------------------------------

    def create(self, obj: ResourceObject) -> ConvergenceResult:
        submitted = False
        result = obj
        if not self.mode.is_dry_run():
            logger.debug("creating %s %r", type(obj).__name__, obj.name)
            result = self.store.create(obj)
            submitted = True

        self.router.emit_object(result)
        self.router.emit_result('"%s" created', obj.name)
        if submitted:
            result = self._maybe_wait(result)
        return ConvergenceResult(CREATED, result, submitted=submitted)

    def patch(self, observed: ResourceObject, desired: ResourceObject) -> ConvergenceResult:
        """
        Submits the minimal merge patch from observed to desired.

        desired must be a mutated deep copy of observed.
        """
        patch = create_patch(observed, desired)
        if not patch:
            logger.debug("no difference for %s %r", type(observed).__name__, observed.name)
            self.router.emit_object(observed)
            self.router.emit_result("nothing to patch")
            return ConvergenceResult(UNCHANGED, observed)

        submitted = False
        result = desired
        if not self.mode.is_dry_run():
            cls = type(observed)
            logger.debug("patching %s %r with %s", cls.__name__, observed.name, patch.decode("utf-8"))
            result = self.store.patch(cls, observed.namespace, observed.name, patch)
            submitted = True

        self.router.emit_object(result)
        self.router.emit_result('"%s" patched', observed.name)
        if submitted:
            result = self._maybe_wait(result)
        return ConvergenceResult(PATCHED, result, submitted=submitted, patch=patch)

    def save(self, existing: Optional[ResourceObject], desired: ResourceObject) -> ConvergenceResult:
        """Creates desired when existing is None, patches existing otherwise."""
        if existing is None:
            return self.create(desired)
        return self.patch(existing, desired)

    def delete(self, obj: ResourceObject) -> ConvergenceResult:
        submitted = False
        if not self.mode.is_dry_run():
            cls = type(obj)
            logger.debug("deleting %s %r", cls.__name__, obj.name)
            self.store.delete(cls, obj.namespace, obj.name)
            submitted = True

        self.router.emit_result('"%s" deleted', obj.name)
        return ConvergenceResult(DELETED, obj, submitted=submitted)

    # ------------------------------------------------------------------
    # Wait
    # ------------------------------------------------------------------

    def _maybe_wait(self, obj: ResourceObject) -> ResourceObject:
        if not self.mode.should_wait() or self.waiter is None:
            return obj
        return self.waiter.wait(obj)
