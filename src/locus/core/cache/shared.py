"""Cross-process resolution store backed by diskcache.

diskcache keeps entries in a SQLite database under one directory, safe for
concurrent use by independent processes, and expires them on its own. Every
key is namespaced with the configured prefix and tagged with it, so
``clear()`` evicts this namespace without touching other consumers of the
same directory.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Hashable, Optional, Tuple

import diskcache

from locus.core.utils.io import PathLike, ensure_directory

logger = logging.getLogger(__name__)

_MISSING = object()

# Namespace marker for all-matches keys. They are stored as tuples, which diskcache
# pickles, so they can never equal the plain string key of a single lookup.
ALL_MATCHES = "all"


class SharedStore:
    """``add`` / ``fetch`` / ``delete`` / ``clear`` over a prefixed namespace."""

    def __init__(self, directory: PathLike, prefix: str) -> None:
        self.directory = ensure_directory(Path(directory))
        self.prefix = prefix
        self._cache: Optional[diskcache.Cache] = diskcache.Cache(str(self.directory))

    @property
    def cache(self) -> diskcache.Cache:
        if self._cache is None:
            self._cache = diskcache.Cache(str(self.directory))
        return self._cache

    def _key(self, key: str, all_matches: bool = False) -> Hashable:
        if all_matches:
            return (ALL_MATCHES, self.prefix + key)
        return self.prefix + key

    def add(self, key: str, value: Any, ttl: float, *, all_matches: bool = False) -> bool:
        """Store ``value`` unless the key is already present. Returns True if stored."""
        return bool(self.cache.add(self._key(key, all_matches), value, expire=ttl, tag=self.prefix))

    def fetch(self, key: str, *, all_matches: bool = False) -> Tuple[Any, bool]:
        """Return ``(value, found)``; a stored None is a hit, not a miss."""
        value = self.cache.get(self._key(key, all_matches), default=_MISSING)
        if value is _MISSING:
            return None, False
        return value, True

    def delete(self, key: str, *, all_matches: bool = False) -> None:
        self.cache.delete(self._key(key, all_matches))

    def clear(self) -> int:
        """Evict every entry of this namespace and return how many were removed."""
        removed = self.cache.evict(self.prefix)
        logger.debug("evicted %d shared entries with prefix %r", removed, self.prefix)
        return removed

    def close(self) -> None:
        if self._cache is not None:
            self._cache.close()
            self._cache = None


__all__ = ["SharedStore"]
