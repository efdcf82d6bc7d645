#!/usr/bin/env python3
"""
KPCLI EXCEPTIONS - Error Taxonomy
---------------------------------
Every error that crosses a layer boundary derives from KpError so the
CLI error boundary can render it without a stack trace.

KpError
├── ValidationError
├── ConfigError
├── UnknownTypeError
├── RemoteCallError
│   ├── NotFoundError
│   └── RemoteTimeoutError
└── WaitError
    ├── ConvergenceFailedError
    ├── WaitTimeoutError
    └── WaitCancelledError
"""

from typing import Optional


class KpError(Exception):
    """Base exception for all kp errors."""

    def __init__(self, message: str, *, hint: Optional[str] = None):
        super().__init__(message)
        self.hint = hint


class ValidationError(KpError):
    """Bad or missing argument. Raised before any remote call is made."""


class ConfigError(KpError):
    """The configuration file or an override holds an invalid value."""


class UnknownTypeError(KpError):
    """An object must be serialized but its type has no registry entry."""


class RemoteCallError(KpError):
    """A resource store call failed.

    The message is prefixed with the operation so the user can tell
    which verb against which object went wrong.
    """

    def __init__(self, operation: str, target: str, reason: str, *, hint: Optional[str] = None):
        super().__init__(f"{operation} {target}: {reason}", hint=hint)
        self.operation = operation
        self.target = target
        self.reason = reason


class NotFoundError(RemoteCallError):
    """The requested object does not exist in the store."""


class RemoteTimeoutError(RemoteCallError):
    """The store did not answer within the time allowed for the call."""


class WaitError(KpError):
    """Base class for failures of the post-submit wait."""


class ConvergenceFailedError(WaitError):
    """The store reported a terminal failure condition."""


class WaitTimeoutError(WaitError):
    """No terminal condition was observed before the deadline."""


class WaitCancelledError(WaitError):
    """The wait was abandoned. The submitted change itself stays applied."""
