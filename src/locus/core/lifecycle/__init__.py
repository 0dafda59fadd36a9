"""Process lifecycle: import hook, host error tracking, activation."""
from __future__ import annotations

from .errors import ErrorTracker, HostError, Severity
from .finder import LocusFinder
from .manager import (
    LocusHandle,
    activate,
    add_paths,
    deactivate,
    find_file,
    find_files,
    is_active,
)

__all__ = [
    "ErrorTracker",
    "HostError",
    "Severity",
    "LocusFinder",
    "LocusHandle",
    "activate",
    "add_paths",
    "deactivate",
    "find_file",
    "find_files",
    "is_active",
]
