"""Typed view over the merged configuration mapping."""
from __future__ import annotations

import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple, Union

from locus.core.cache.tiers import NoTier, SharedTier, SnapshotTier, Tier
from locus.core.exceptions import ConfigError
from locus.core.utils.io import is_writable_dir

# The locus package directory, where the snapshot lives unless configured otherwise.
PACKAGE_DIR = Path(__file__).resolve().parents[2]

SNAPSHOT_BASENAME = "resolve_cache.py"
SHARED_DIRNAME = "locus-shared"


def snapshot_path(directory: Optional[str], key: Optional[str]) -> Path:
    """Return the snapshot file location for ``directory`` and ``key``.

    A directory that is missing or not writable falls back to the package
    directory. A key namespaces the filename so several applications can share
    one directory.
    """
    base = PACKAGE_DIR
    if directory:
        candidate = Path(directory).expanduser()
        if is_writable_dir(candidate):
            base = candidate
    name = f"_{key}_{SNAPSHOT_BASENAME}" if key else SNAPSHOT_BASENAME
    return base / name


def _build_tier(cache: Mapping[str, Any]) -> Tier:
    kind = cache.get("tier", "snapshot")
    if kind == "none":
        return NoTier()
    if kind == "shared":
        shared = cache.get("shared") or {}
        prefix = shared.get("prefix")
        if not prefix:
            raise ConfigError(
                "cache.shared.prefix is required when cache.tier is 'shared'",
                context={"tier": kind},
            )
        directory = shared.get("directory") or str(Path(tempfile.gettempdir()) / SHARED_DIRNAME)
        return SharedTier(prefix=str(prefix), directory=Path(directory).expanduser())
    if kind == "snapshot":
        snapshot = cache.get("snapshot") or {}
        return SnapshotTier(path=snapshot_path(snapshot.get("directory"), snapshot.get("key")))
    raise ConfigError(f"Unknown cache tier: {kind!r}", context={"tier": kind})


@dataclass(frozen=True)
class LocusConfig:
    """Resolved settings consumed by the engine and the lifecycle manager."""

    extension: str = ".py"
    ttl_seconds: int = 86400
    paths: Tuple[str, ...] = ()
    prepend: bool = False
    tier: Tier = field(default_factory=NoTier)
    logging_mode: Union[bool, str] = True
    logging_level: str = "INFO"
    lock_timeout: float = 5.0

    @classmethod
    def from_mapping(cls, cfg: Mapping[str, Any]) -> "LocusConfig":
        """Build settings from an already validated configuration mapping."""
        resolver = cfg.get("resolver") or {}
        logging_cfg = cfg.get("logging") or {}
        locking = cfg.get("locking") or {}
        return cls(
            extension=str(resolver.get("extension", ".py")),
            ttl_seconds=int(resolver.get("ttl_seconds", 86400)),
            paths=tuple(str(p) for p in resolver.get("paths") or ()),
            prepend=bool(resolver.get("prepend", False)),
            tier=_build_tier(cfg.get("cache") or {}),
            logging_mode=logging_cfg.get("mode", True),
            logging_level=str(logging_cfg.get("level", "INFO")),
            lock_timeout=float(locking.get("timeout_seconds", 5.0)),
        )


__all__ = ["LocusConfig", "snapshot_path", "PACKAGE_DIR"]
