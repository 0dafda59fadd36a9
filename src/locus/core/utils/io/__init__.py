"""I/O utilities for Locus.

- Core: atomic writes, directory checks, best-effort removal
- Locking: exclusive sidecar file locks
"""
from __future__ import annotations

from .core import (
    PathLike,
    atomic_write,
    ensure_directory,
    is_writable_dir,
    remove_file,
)
from .locking import LockTimeoutError, acquire_file_lock

__all__ = [
    "PathLike",
    "atomic_write",
    "ensure_directory",
    "is_writable_dir",
    "remove_file",
    "LockTimeoutError",
    "acquire_file_lock",
]
