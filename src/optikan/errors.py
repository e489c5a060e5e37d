"""Exception hierarchy for optikan."""

from __future__ import annotations


class OptikanError(Exception):
    """Base class for all optikan errors."""


class ValidationError(OptikanError, ValueError):
    """Malformed input, rejected before a transaction begins."""


class ConfigError(OptikanError):
    """Malformed configuration file."""


class RemoteError(OptikanError):
    """A remote persistence call was rejected or failed."""

    def __init__(self, message: str, operation: str | None = None) -> None:
        super().__init__(message)
        self.operation = operation


class NotFoundError(RemoteError):
    """The entity a remote call refers to does not exist."""


class ConflictError(RemoteError):
    """The remote service refused a change (WIP limit, non-empty column, ...)."""


class DispatchTimeout(RemoteError):
    """A remote call did not settle within the configured timeout."""
