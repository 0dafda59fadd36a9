"""Exclusive file locks for snapshot writes."""
from __future__ import annotations

import fcntl
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Iterator

from .core import ensure_directory

_THREAD_MUTEXES: dict[str, threading.Lock] = {}


class LockTimeoutError(TimeoutError):
    """Raised when an OS file lock cannot be acquired within timeout."""


def _thread_mutex(path: Path) -> threading.Lock:
    key = str(path.resolve())
    lock = _THREAD_MUTEXES.get(key)
    if lock is None:
        lock = _THREAD_MUTEXES.setdefault(key, threading.Lock())
    return lock


@contextmanager
def acquire_file_lock(
    file_path: Path | str,
    timeout: float,
    *,
    poll_interval: float = 0.05,
) -> Iterator[IO[str]]:
    """Hold an exclusive lock on the ``<file>.lock`` sidecar of ``file_path``.

    Uses ``fcntl.flock`` with ``LOCK_EX | LOCK_NB`` in a retry loop, guarded by a
    per-path thread mutex so threads of one process serialize as well.

    Args:
        file_path: File whose sidecar lock is taken.
        timeout: Maximum seconds to wait before raising ``LockTimeoutError``.
        poll_interval: Sleep duration between non-blocking attempts.

    Yields:
        The opened sidecar file object, locked for the duration of the context.
    """
    if timeout <= 0:
        raise ValueError(f"timeout must be positive (got {timeout})")

    start = time.monotonic()
    target = Path(file_path)
    lock_target = target.with_suffix(target.suffix + ".lock")
    ensure_directory(lock_target.parent)

    mutex = _thread_mutex(lock_target)
    if not mutex.acquire(timeout=timeout):
        raise LockTimeoutError(f"Could not acquire lock on {target} within {timeout}s")

    try:
        fh = open(lock_target, "a+")
    except OSError:
        mutex.release()
        raise

    acquired = False
    try:
        while True:
            try:
                fcntl.flock(fh.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                acquired = True
                break
            except OSError:
                if (time.monotonic() - start) >= timeout:
                    raise LockTimeoutError(
                        f"Could not acquire lock on {target} within {timeout}s"
                    )
                time.sleep(poll_interval)

        yield fh
    finally:
        try:
            if acquired:
                fcntl.flock(fh.fileno(), fcntl.LOCK_UN)
        finally:
            try:
                fh.close()
            finally:
                try:
                    lock_target.unlink(missing_ok=True)
                except OSError:
                    pass
            mutex.release()


__all__ = ["acquire_file_lock", "LockTimeoutError"]
