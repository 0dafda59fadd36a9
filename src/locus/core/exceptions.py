from __future__ import annotations

from typing import Any, Dict, Mapping


class LocusError(Exception):
    """Base exception for Locus."""

    context: Dict[str, Any]

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        if context is not None:
            # Store a shallow copy to avoid accidental mutation.
            self.context = dict(context)
        else:
            self.context = {}

    def to_json_error(self) -> Dict[str, Any]:
        """Return a JSON-serializable error payload."""
        return {
            "message": str(self),
            "code": self.__class__.__name__,
            "context": self.context,
        }


class ConfigError(LocusError, ValueError):
    """Raised when the merged configuration is invalid."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        LocusError.__init__(self, message, context=context)
        ValueError.__init__(self, message)


class NotActivatedError(LocusError, RuntimeError):
    """Raised when module-level helpers are used before ``activate()``."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        LocusError.__init__(self, message, context=context)
        RuntimeError.__init__(self, message)


class FatalError(LocusError):
    """Raised by host code to abort the process with a user-triggered fatal error.

    When left unhandled it is recorded with the ``User Error`` severity, which
    makes the lifecycle manager discard every cache tier before exiting.
    """


__all__ = [
    "LocusError",
    "ConfigError",
    "NotActivatedError",
    "FatalError",
]
