"""Resource command groups and the per-invocation session they run in."""

import argparse
from dataclasses import dataclass
from typing import Any, Optional

from kpcli.cli.output import OutputRouter
from kpcli.config import Config
from kpcli.core.engine import ConvergenceEngine
from kpcli.exceptions import ValidationError


@dataclass
class CommandSession:
    """Everything a command handler needs for one invocation."""

    config: Config
    store: Any
    router: OutputRouter
    engine: ConvergenceEngine


def require(value: Optional[str], flag: str) -> str:
    """Validation helper for flags that are mandatory on some paths only."""
    if not value:
        raise ValidationError(f"flag {flag} is required")
    return value


def add_name_argument(parser: argparse.ArgumentParser, kind: str) -> None:
    parser.add_argument("name", help=f"{kind} name")
