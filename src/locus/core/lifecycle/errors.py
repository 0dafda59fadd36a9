"""Tracking of the host's last error.

Python has no process-wide "last error" register, so the tracker wraps
``sys.excepthook`` (uncaught exceptions) and ``warnings.showwarning`` (emitted
warnings) and remembers the most recent one. The lifecycle manager inspects it
when the process exits.
"""
from __future__ import annotations

import logging
import sys
import traceback
import warnings
from dataclasses import dataclass
from enum import Enum
from types import TracebackType
from typing import Callable, Optional, TextIO, Type

from locus.core.exceptions import FatalError

logger = logging.getLogger(__name__)


class Severity(str, Enum):
    ERROR = "Error"
    PARSE = "Parse"
    USER_ERROR = "User Error"
    WARNING = "Warning"
    DEPRECATED = "Deprecated"

    @property
    def fatal(self) -> bool:
        return self in (Severity.ERROR, Severity.PARSE, Severity.USER_ERROR)


@dataclass(frozen=True)
class HostError:
    severity: Severity
    message: str
    filename: str = "<unknown>"
    lineno: int = 0

    @property
    def fatal(self) -> bool:
        return self.severity.fatal

    def log_line(self) -> str:
        return f"{self.severity.value}: {self.message} in {self.filename} on line {self.lineno}"

    def display_line(self) -> str:
        return f"{self.severity.value}: {self.message}"

    def notice_line(self) -> str:
        return f"{self.severity.value}: {self.message} - See logs!"


def classify_exception(exc: BaseException) -> Severity:
    if isinstance(exc, SyntaxError):
        return Severity.PARSE
    if isinstance(exc, FatalError):
        return Severity.USER_ERROR
    return Severity.ERROR


def classify_warning(category: Type[Warning]) -> Severity:
    if issubclass(category, (DeprecationWarning, PendingDeprecationWarning)):
        return Severity.DEPRECATED
    return Severity.WARNING


class ErrorTracker:
    """Remember the last uncaught exception or warning of the process."""

    def __init__(self) -> None:
        self.last: Optional[HostError] = None
        self._prev_excepthook: Optional[Callable[..., None]] = None
        self._prev_showwarning: Optional[Callable[..., None]] = None
        self._installed = False

    @property
    def installed(self) -> bool:
        return self._installed

    def install(self) -> None:
        if self._installed:
            return
        self._prev_excepthook = sys.excepthook
        self._prev_showwarning = warnings.showwarning
        sys.excepthook = self._excepthook
        warnings.showwarning = self._showwarning
        self._installed = True

    def uninstall(self) -> None:
        if not self._installed:
            return
        # Only restore hooks nobody replaced after us.
        if sys.excepthook == self._excepthook:
            sys.excepthook = self._prev_excepthook or sys.__excepthook__
        if warnings.showwarning == self._showwarning and self._prev_showwarning is not None:
            warnings.showwarning = self._prev_showwarning
        self._prev_excepthook = None
        self._prev_showwarning = None
        self._installed = False

    def reset(self) -> None:
        self.last = None

    def record(self, severity: Severity, message: str, filename: str = "<unknown>", lineno: int = 0) -> HostError:
        self.last = HostError(severity, message, filename, lineno)
        return self.last

    def record_exception(self, exc: BaseException, tb: Optional[TracebackType] = None) -> HostError:
        severity = classify_exception(exc)
        if isinstance(exc, SyntaxError):
            return self.record(severity, exc.msg or str(exc), exc.filename or "<unknown>", exc.lineno or 0)

        message = str(exc) if severity is Severity.USER_ERROR else f"Uncaught {type(exc).__name__}: {exc}"
        frames = traceback.extract_tb(tb if tb is not None else exc.__traceback__)
        if frames:
            return self.record(severity, message, frames[-1].filename, frames[-1].lineno or 0)
        return self.record(severity, message)

    def _excepthook(
        self,
        exc_type: Type[BaseException],
        exc: BaseException,
        tb: Optional[TracebackType],
    ) -> None:
        if not issubclass(exc_type, KeyboardInterrupt):
            self.record_exception(exc, tb)
        (self._prev_excepthook or sys.__excepthook__)(exc_type, exc, tb)

    def _showwarning(
        self,
        message: Warning | str,
        category: Type[Warning],
        filename: str,
        lineno: int,
        file: Optional[TextIO] = None,
        line: Optional[str] = None,
    ) -> None:
        self.record(classify_warning(category), str(message), filename, lineno)
        if self._prev_showwarning is not None:
            self._prev_showwarning(message, category, filename, lineno, file, line)


__all__ = [
    "ErrorTracker",
    "HostError",
    "Severity",
    "classify_exception",
    "classify_warning",
]
