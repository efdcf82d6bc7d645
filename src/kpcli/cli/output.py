#!/usr/bin/env python3
"""
KPCLI OUTPUT ROUTER
-------------------
Decides where every piece of text a command produces ends up.

Two logical streams:
  * primary   (stdout) - serialized objects in output mode, narrative
                         text otherwise,
  * secondary (stderr) - narrative text while output mode keeps stdout
                         machine-parseable.

Result lines are discarded in output mode; status and plain lines are
moved to stderr instead.
"""

import io
import sys
from typing import Any, Dict, List, Optional, Sequence, TextIO

from rich.console import Console

from kpcli.cli.printer import ObjectPrinter, new_object_printer
from kpcli.core.context import ExecutionMode
from kpcli.core.models import ResourceObject
from kpcli.core.registry import DEFAULT_REGISTRY, TypeRegistry

DRY_RUN_SUFFIX = " (dry run)"


def _plain_console(stream: TextIO) -> Console:
    # Object output and messages are written verbatim: no markup,
    # highlighting or wrapping.
    return Console(file=stream, highlight=False, emoji=False, soft_wrap=True)


class OutputRouter:
    """
    Routes objects and narrative lines for one invocation according to
    its ExecutionMode.
    """

    def __init__(self, mode: ExecutionMode, out: Optional[TextIO] = None,
                 err: Optional[TextIO] = None, registry: Optional[TypeRegistry] = None,
                 printer: Optional[ObjectPrinter] = None):
        self.mode = mode
        self._out = _plain_console(out if out is not None else sys.stdout)
        self._err = _plain_console(err if err is not None else sys.stderr)
        self._discard = Console(file=io.StringIO(), quiet=True)
        self._registry = registry if registry is not None else DEFAULT_REGISTRY

        self._printer = printer
        if self._printer is None and mode.output_requested:
            self._printer = new_object_printer(mode.output)

    # ------------------------------------------------------------------
    # Stream selection
    # ------------------------------------------------------------------

    @property
    def out_or_err(self) -> Console:
        return self._err if self.mode.output_requested else self._out

    @property
    def out_or_discard(self) -> Console:
        return self._discard if self.mode.output_requested else self._out

    # ------------------------------------------------------------------
    # Objects
    # ------------------------------------------------------------------

    def emit_objects(self, objs: Sequence[ResourceObject]) -> None:
        """
        Serializes objs onto the primary stream when output mode is active.

        Every object is resolved before anything is written, so an
        UnknownTypeError leaves the stream untouched. Several objects are
        emitted as a single List document.
        """
        if not self.mode.output_requested:
            return

        documents = [self._serializable(obj) for obj in objs]
        if not documents:
            return

        if len(documents) == 1:
            payload = documents[0]
        else:
            payload = {"apiVersion": "v1", "kind": "List", "items": documents}
        self._out.out(self._printer.render(payload), end="")

    def emit_object(self, obj: ResourceObject) -> None:
        self.emit_objects([obj])

    def _serializable(self, obj: ResourceObject) -> Dict[str, Any]:
        """A new dict stamped with obj's identity; obj itself is not modified."""
        gvk = obj.gvk
        if gvk.is_empty():
            gvk = self._registry.resolve(obj)

        body = obj.to_dict()
        body.pop("apiVersion", None)
        body.pop("kind", None)
        data: Dict[str, Any] = {"apiVersion": gvk.api_version, "kind": gvk.kind}
        data.update(body)
        return data

    # ------------------------------------------------------------------
    # Narrative text
    # ------------------------------------------------------------------

    def emit_result(self, fmt: str, *args: Any) -> None:
        self._write(self.out_or_discard, fmt, args, dry_run_suffix=True)

    def emit_status(self, fmt: str, *args: Any) -> None:
        self._write(self.out_or_err, fmt, args, dry_run_suffix=True)

    def emit_line(self, fmt: str, *args: Any) -> None:
        self._write(self.out_or_err, fmt, args, dry_run_suffix=False)

    def _write(self, console: Console, fmt: str, args: Sequence[Any], dry_run_suffix: bool) -> None:
        parts: List[str] = [fmt % tuple(args) if args else fmt]
        if dry_run_suffix and self.mode.is_dry_run():
            parts.append(DRY_RUN_SUFFIX)
        console.out("".join(parts))
