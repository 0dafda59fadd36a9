"""Search path registry."""
from __future__ import annotations

from .registry import PathRegistry, normalize_search_path

__all__ = ["PathRegistry", "normalize_search_path"]
