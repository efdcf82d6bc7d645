"""
Logging setup for the kp command line.

Diagnostics go to stderr through rich so they never mix with objects
printed on stdout.
"""

import logging
import sys
from typing import Optional, TextIO

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "kpcli"


def configure_logging(verbose: bool = False, stream: Optional[TextIO] = None) -> logging.Logger:
    """Installs a single RichHandler on the kpcli logger. Safe to call twice."""
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    console = Console(file=stream if stream is not None else sys.stderr, highlight=False)
    handler = RichHandler(console=console, show_time=False, show_path=verbose, markup=False)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))

    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False
    return logger
