"""Durable snapshot of the in-process resolution map.

The snapshot is a generated Python source file holding a single literal
mapping. It is read back with ``ast.literal_eval``, so loading it never runs
code, and it is only trusted while its modification time is younger than the
configured TTL.
"""
from __future__ import annotations

import ast
import logging
import pprint
import time
from pathlib import Path
from typing import Dict, NamedTuple, Optional, TextIO, Tuple

from locus.core.utils.io import PathLike, acquire_file_lock, atomic_write, remove_file

logger = logging.getLogger(__name__)

Entry = Optional[str]
Entries = Dict[str, Entry]
Matches = Dict[str, Tuple[str, ...]]

PREAMBLE = "# Generated by locus. Do not edit: rewritten when the process exits.\n"
VARIABLE = "ENTRIES"
MATCHES_VARIABLE = "ALL_MATCHES"


class SnapshotFormatError(ValueError):
    """Raised when a snapshot file does not hold a valid entries literal."""


class SnapshotData(NamedTuple):
    """Contents of a snapshot: single lookups and all-matches lookups, keyed apart."""

    entries: Entries
    matches: Matches


def render_snapshot(entries: Entries, matches: Optional[Matches] = None) -> str:
    body = pprint.pformat(dict(entries), width=100, sort_dicts=True)
    matches_body = pprint.pformat(dict(matches or {}), width=100, sort_dicts=True)
    return f"{PREAMBLE}{VARIABLE} = {body}\n{MATCHES_VARIABLE} = {matches_body}\n"


def _check_key(key: object) -> str:
    if not isinstance(key, str):
        raise SnapshotFormatError(f"snapshot key must be a string, got {key!r}")
    return key


def _check_entry(key: object, value: object) -> Entry:
    _check_key(key)
    if value is None or isinstance(value, str):
        return value
    raise SnapshotFormatError(f"invalid snapshot value for {key!r}: {value!r}")


def _check_matches(key: object, value: object) -> Tuple[str, ...]:
    _check_key(key)
    if isinstance(value, (tuple, list)) and all(isinstance(v, str) for v in value):
        return tuple(value)
    raise SnapshotFormatError(f"invalid all-matches value for {key!r}: {value!r}")


def _literal_mappings(tree: ast.Module, filename: str) -> Dict[str, dict]:
    found: Dict[str, dict] = {}
    for node in tree.body:
        if (
            isinstance(node, ast.Assign)
            and len(node.targets) == 1
            and isinstance(node.targets[0], ast.Name)
            and node.targets[0].id in (VARIABLE, MATCHES_VARIABLE)
        ):
            name = node.targets[0].id
            data = ast.literal_eval(node.value)
            if not isinstance(data, dict):
                raise SnapshotFormatError(f"{name} must be a mapping in {filename}")
            found[name] = data
    return found


def parse_snapshot(text: str, filename: str = "<snapshot>") -> SnapshotData:
    """Extract both mappings from snapshot source ``text``.

    ``ALL_MATCHES`` may be absent; ``ENTRIES`` may not.

    Raises:
        SnapshotFormatError: If a literal is missing or malformed
        SyntaxError: If ``text`` is not valid Python
    """
    found = _literal_mappings(ast.parse(text, filename=filename), filename)
    if VARIABLE not in found:
        raise SnapshotFormatError(f"no {VARIABLE} assignment in {filename}")
    return SnapshotData(
        entries={key: _check_entry(key, value) for key, value in found[VARIABLE].items()},
        matches={key: _check_matches(key, value) for key, value in found.get(MATCHES_VARIABLE, {}).items()},
    )


class SnapshotStore:
    """Reads, writes and discards one snapshot file."""

    def __init__(self, path: PathLike, *, lock_timeout: float = 5.0) -> None:
        self.path = Path(path)
        self.lock_timeout = lock_timeout

    def age(self) -> Optional[float]:
        """Seconds since the snapshot was last written, or None when absent or unreadable."""
        try:
            return time.time() - self.path.stat().st_mtime
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.warning("cannot stat snapshot %s: %s", self.path, exc)
            return None

    def load(self, ttl: float) -> Optional[SnapshotData]:
        """Return the stored mappings, or None when absent, expired or unreadable.

        Expired and unreadable snapshots are deleted.
        """
        age = self.age()
        if age is None:
            return None
        if age >= ttl:
            logger.debug("snapshot %s expired (age %.0fs >= ttl %ss)", self.path, age, ttl)
            self.clear()
            return None
        try:
            return parse_snapshot(self.path.read_text(encoding="utf-8"), filename=str(self.path))
        except (OSError, SyntaxError, ValueError) as exc:
            logger.warning("discarding unreadable snapshot %s: %s", self.path, exc)
            self.clear()
            return None

    def save(self, entries: Entries, matches: Optional[Matches] = None) -> None:
        """Replace the snapshot with ``entries`` and ``matches`` under an exclusive lock.

        Raises:
            OSError: If the file cannot be written (including lock timeouts)
        """
        content = render_snapshot(entries, matches)

        def _writer(f: TextIO) -> None:
            f.write(content)

        atomic_write(
            self.path,
            _writer,
            lock_cm=acquire_file_lock(self.path, timeout=self.lock_timeout),
        )
        logger.debug(
            "wrote %d entries and %d all-matches entries to snapshot %s",
            len(entries),
            len(matches or {}),
            self.path,
        )

    def clear(self) -> bool:
        """Delete the snapshot. Failures are logged, never raised."""
        try:
            return remove_file(self.path)
        except OSError as exc:
            logger.warning("could not remove snapshot %s: %s", self.path, exc)
            return False


__all__ = [
    "Entry",
    "Entries",
    "Matches",
    "SnapshotData",
    "SnapshotStore",
    "SnapshotFormatError",
    "parse_snapshot",
    "render_snapshot",
]
