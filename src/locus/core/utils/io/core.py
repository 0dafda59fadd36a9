"""Core I/O primitives for Locus.

Crash-safe replacement of whole files, the only kind of write the snapshot
tier performs, plus the small directory helpers the cache tiers share.
"""
from __future__ import annotations

import fcntl
import os
import tempfile
from contextlib import nullcontext
from pathlib import Path
from typing import Any, Callable, ContextManager, Optional, TextIO, Union

PathLike = Union[str, Path]


def ensure_directory(path: PathLike) -> Path:
    """Create ``path`` (and parents) when missing and return it.

    Raises:
        NotADirectoryError: If path exists but is not a directory
        OSError: If directory creation fails
    """
    path = Path(path)
    if path.exists():
        if not path.is_dir():
            raise NotADirectoryError(f"Path exists but is not a directory: {path}")
        return path
    path.mkdir(parents=True, exist_ok=True)
    return path


def is_writable_dir(path: PathLike) -> bool:
    """Return True when ``path`` is an existing directory this process may write to."""
    path = Path(path)
    return path.is_dir() and os.access(path, os.W_OK)


def remove_file(path: PathLike) -> bool:
    """Unlink ``path`` if present.

    Returns:
        True when a file was removed, False when there was nothing to remove
    """
    try:
        Path(path).unlink()
    except FileNotFoundError:
        return False
    return True


def atomic_write(
    path: PathLike,
    write_fn: Callable[[TextIO], None],
    *,
    lock_cm: Optional[ContextManager[Any]] = None,
    encoding: str = "utf-8",
) -> None:
    """Write to ``path`` atomically using a temp file + fsync + rename.

    - Parent directory is created if missing
    - Data is written to a temporary file in the same directory
    - File is fsync'd, unlocked, then atomically replaced
    - Any leftover temp file is cleaned up on failure

    Args:
        path: Target file path
        write_fn: Callable that writes content to the file object
        lock_cm: Optional context manager held for the whole write
        encoding: Text encoding (default: utf-8)
    """
    path = Path(path)
    ensure_directory(path.parent)

    lock_context = lock_cm or nullcontext()
    tmp_path: Optional[Path] = None
    try:
        with lock_context:
            with tempfile.NamedTemporaryFile(
                "w",
                encoding=encoding,
                dir=str(path.parent),
                prefix=f".{path.name}.",
                delete=False,
            ) as f:
                tmp_path = Path(f.name)
                fcntl.flock(f.fileno(), fcntl.LOCK_EX)
                write_fn(f)
                f.flush()
                os.fsync(f.fileno())
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)

            os.replace(str(tmp_path), str(path))
    finally:
        if tmp_path is not None and tmp_path.exists():
            try:
                tmp_path.unlink()
            except OSError:
                # Temp removal never fails the caller
                pass


__all__ = [
    "PathLike",
    "ensure_directory",
    "is_writable_dir",
    "remove_file",
    "atomic_write",
]
