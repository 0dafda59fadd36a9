"""The resolution engine: name -> file, remembered in up to three tiers.

Lookup order for a key:

1. the in-process map (hot path: no filesystem access, no lock, no other tier)
2. the shared store, when the shared tier is configured
3. an ordered scan of the registered search paths

Scan results, found or not, are written back to the in-process map and to the
active persistence tier. A key cached as not found stays not found for the rest
of the run even if the file appears later; only TTL expiry or ``clear()``
invalidates it.

Single lookups and all-matches lookups live in separate maps in every tier, so
no key of one kind can shadow a key of the other.
"""
from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from locus.core.cache.shared import SharedStore
from locus.core.cache.snapshot import Entries, Matches, SnapshotStore
from locus.core.cache.tiers import NoTier, SharedTier, SnapshotTier, Tier
from locus.core.paths.registry import PathRegistry

from .keys import make_key

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = ".py"
DEFAULT_TTL = 86400

_MISSING = object()


class ResolutionCache:
    """Resolve logical names to files through the registry and the cache tiers.

    Examples:
        >>> registry = PathRegistry()
        >>> registry.add_paths(["/srv/app/lib"])
        >>> engine = ResolutionCache(registry)
        >>> engine.resolve("", "models/user")  # doctest: +SKIP
        PosixPath('/srv/app/lib/models/user.py')
    """

    def __init__(
        self,
        registry: PathRegistry,
        *,
        tier: Optional[Tier] = None,
        ttl: int = DEFAULT_TTL,
        extension: str = DEFAULT_EXTENSION,
        lock_timeout: float = 5.0,
    ) -> None:
        self.registry = registry
        self.tier: Tier = tier if tier is not None else NoTier()
        self.ttl = ttl
        self.extension = extension
        self._entries: Entries = {}
        self._matches: Matches = {}
        self._lock = threading.RLock()
        self._dirty = False

        self.shared: Optional[SharedStore] = None
        self.snapshot: Optional[SnapshotStore] = None
        if isinstance(self.tier, SharedTier):
            try:
                self.shared = SharedStore(self.tier.directory, self.tier.prefix)
            except Exception as exc:
                logger.warning(
                    "shared cache unavailable at %s, keeping the in-process map only: %s",
                    self.tier.directory,
                    exc,
                )
                self.tier = NoTier()
        elif isinstance(self.tier, SnapshotTier):
            self.snapshot = SnapshotStore(self.tier.path, lock_timeout=lock_timeout)

    @property
    def dirty(self) -> bool:
        """True when the maps changed since they were loaded or last persisted."""
        return self._dirty

    def entries(self) -> Entries:
        """Copy of the single-lookup map."""
        with self._lock:
            return dict(self._entries)

    def matches(self) -> Matches:
        """Copy of the all-matches map."""
        with self._lock:
            return dict(self._matches)

    # ========== Lookup ==========

    def resolve(self, dir_hint: str, name: str, ext: Optional[str] = None) -> Optional[Path]:
        """Return the first file for ``name`` in precedence order, or None."""
        key = make_key(dir_hint, name, self.extension if ext is None else ext)
        value = self._entries.get(key, _MISSING)
        if value is _MISSING:
            value = self._lookup(self._entries, key, self._scan_first, all_matches=False)
        return Path(value) if value is not None else None

    def resolve_all(self, dir_hint: str, name: str, ext: Optional[str] = None) -> List[Path]:
        """Return every file for ``name``, least specific search path first."""
        key = make_key(dir_hint, name, self.extension if ext is None else ext)
        value = self._matches.get(key, _MISSING)
        if value is _MISSING:
            value = self._lookup(self._matches, key, self._scan_all, all_matches=True)
        return [Path(p) for p in value]

    def _lookup(self, table: dict, key: str, scan: Callable[[str], object], *, all_matches: bool):
        with self._lock:
            # Another thread may have filled the slot while we waited.
            value = table.get(key, _MISSING)
            if value is not _MISSING:
                return value

            if self.shared is not None:
                try:
                    value, found = self.shared.fetch(key, all_matches=all_matches)
                except Exception as exc:
                    logger.warning("shared cache fetch failed for %s: %s", key, exc)
                    found = False
                if found:
                    table[key] = value
                    return value

            value = scan(key)
            if value:
                self._store(table, key, value, all_matches)
            else:
                self._store_miss(table, key, value, all_matches)
            return value

    def _scan_first(self, key: str) -> Optional[str]:
        for base in self.registry.list_paths():
            candidate = base + key
            if os.path.isfile(candidate):
                logger.debug("resolved %s -> %s", key, candidate)
                return candidate
        logger.debug("no match for %s in %d search paths", key, len(self.registry))
        return None

    def _scan_all(self, key: str) -> Tuple[str, ...]:
        found = tuple(
            base + key for base in reversed(self.registry.list_paths()) if os.path.isfile(base + key)
        )
        logger.debug("scanned %d paths for all matches of %s: %d found", len(self.registry), key, len(found))
        return found

    # ========== Write-back ==========

    def _store(self, table: dict, key: str, value, all_matches: bool) -> None:
        table[key] = value
        if self.shared is not None:
            try:
                self.shared.add(key, value, self.ttl, all_matches=all_matches)
            except Exception as exc:
                logger.warning("shared cache add failed for %s: %s", key, exc)
        elif self.snapshot is not None:
            self._dirty = True

    def _store_miss(self, table: dict, key: str, marker, all_matches: bool) -> None:
        # Evict whatever an earlier run left for this key before caching the miss.
        table.pop(key, None)
        if self.shared is not None:
            try:
                self.shared.delete(key, all_matches=all_matches)
            except Exception as exc:
                logger.warning("shared cache delete failed for %s: %s", key, exc)
        self._store(table, key, marker, all_matches)

    # ========== Persistence ==========

    def load_snapshot(self) -> int:
        """Seed the in-process maps from a valid snapshot. Returns the entry count."""
        if self.snapshot is None:
            return 0
        data = self.snapshot.load(self.ttl)
        if data is None:
            return 0
        with self._lock:
            self._entries.update(data.entries)
            self._matches.update(data.matches)
            self._dirty = False
        count = len(data.entries) + len(data.matches)
        logger.debug("loaded %d entries from snapshot %s", count, self.snapshot.path)
        return count

    def persist(self) -> bool:
        """Rewrite the snapshot when the maps changed. Never raises.

        Returns:
            True when the snapshot was written
        """
        if self.snapshot is None or not self._dirty:
            return False
        try:
            self.snapshot.save(self.entries(), self.matches())
        except Exception as exc:
            logger.warning("could not persist snapshot %s: %s", self.snapshot.path, exc)
            return False
        self._dirty = False
        return True

    def clear(self) -> None:
        """Discard every tier: snapshot file, shared namespace and in-process maps."""
        if self.snapshot is not None:
            self.snapshot.clear()
        if self.shared is not None:
            try:
                self.shared.clear()
            except Exception as exc:
                logger.warning("could not clear shared cache: %s", exc)
        with self._lock:
            self._entries.clear()
            self._matches.clear()
            self._dirty = False

    def close(self) -> None:
        if self.shared is not None:
            self.shared.close()


__all__ = ["ResolutionCache", "DEFAULT_EXTENSION", "DEFAULT_TTL"]
