"""Process exit codes returned by kp."""

SUCCESS = 0
"""Command completed."""

GENERAL_ERROR = 1
"""A KpError was reported to the user."""

USAGE_ERROR = 2
"""argparse rejected the command line."""

UNEXPECTED_ERROR = 70
"""An exception escaped every known error path (sysexits EX_SOFTWARE)."""

KEYBOARD_INTERRUPT = 130
"""Ctrl+C (128 + SIGINT)."""
