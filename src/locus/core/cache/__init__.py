"""Resolution cache tiers: tier selection, snapshot file, shared store."""
from __future__ import annotations

from .shared import SharedStore
from .snapshot import Entries, Entry, Matches, SnapshotData, SnapshotFormatError, SnapshotStore
from .tiers import NoTier, SharedTier, SnapshotTier, Tier

__all__ = [
    "Entries",
    "Entry",
    "Matches",
    "SnapshotData",
    "NoTier",
    "SharedStore",
    "SharedTier",
    "SnapshotFormatError",
    "SnapshotStore",
    "SnapshotTier",
    "Tier",
]
