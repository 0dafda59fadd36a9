"""Persistence tier selection.

Exactly one tier is authoritative for a process: the in-process map is always
present, and at most one of the shared store or the snapshot file mirrors it.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Union


@dataclass(frozen=True)
class NoTier:
    """Only the in-process map; nothing survives the process."""

    name = "none"


@dataclass(frozen=True)
class SharedTier:
    """Per-entry persistence into a cross-process store with expiry."""

    prefix: str
    directory: Path

    name = "shared"


@dataclass(frozen=True)
class SnapshotTier:
    """Whole-map persistence into one generated file, rewritten at process end."""

    path: Path

    name = "snapshot"


Tier = Union[NoTier, SharedTier, SnapshotTier]


__all__ = ["NoTier", "SharedTier", "SnapshotTier", "Tier"]
