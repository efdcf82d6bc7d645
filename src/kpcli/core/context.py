#!/usr/bin/env python3
"""
KPCLI EXECUTION CONTEXT
-----------------------
The three orthogonal execution modes of a command invocation:
dry-run, output and wait. Built once from parsed flags, read-only after.

Flags are declared with argparse.SUPPRESS defaults, so a flag the user
did not pass is simply absent from the namespace. Absent and undeclared
flags both resolve to their zero value, letting one resolver serve every
command regardless of which of the three flags it defines.
"""

import argparse
from dataclasses import dataclass
from typing import Any, Type

from kpcli.exceptions import ValidationError

OUTPUT_FORMATS = ("yaml", "json")


@dataclass(frozen=True)
class ExecutionMode:
    """Immutable (dry_run, output, wait) triple for one invocation."""

    dry_run: bool = False
    output: str = ""
    wait: bool = False

    @property
    def output_requested(self) -> bool:
        return bool(self.output)

    def is_dry_run(self) -> bool:
        return self.dry_run

    def should_wait(self) -> bool:
        # Waiting needs a real submission and narrative progress text.
        return self.wait and not self.dry_run and not self.output_requested

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "ExecutionMode":
        return cls(
            dry_run=_resolve(args, "dry_run", bool, False),
            output=_resolve(args, "output", str, ""),
            wait=_resolve(args, "wait", bool, False),
        )


def _resolve(args: argparse.Namespace, dest: str, kind: Type[Any], zero: Any) -> Any:
    value = getattr(args, dest, None)
    if value is None:
        return zero
    if not isinstance(value, kind):
        flag = "--" + dest.replace("_", "-")
        raise ValidationError(f"flag {flag} expects a {kind.__name__}, got {value!r}")
    return value


def add_execution_flags(parser: argparse.ArgumentParser, *, dry_run: bool = True,
                        output: bool = True, wait: bool = True) -> None:
    """Declares the subset of execution flags a command supports."""
    if dry_run:
        parser.add_argument(
            "--dry-run", action="store_true", default=argparse.SUPPRESS,
            help="Perform validation with no side effects; nothing is submitted",
        )
    if output:
        parser.add_argument(
            "--output", choices=OUTPUT_FORMATS, default=argparse.SUPPRESS,
            help="Print the resource as yaml or json instead of status text",
        )
    if wait:
        parser.add_argument(
            "-w", "--wait", action="store_true", default=argparse.SUPPRESS,
            help="Wait for the resource to reconcile before returning",
        )
