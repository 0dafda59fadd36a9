"""Name resolution: key derivation and the caching engine."""
from __future__ import annotations

from .engine import ResolutionCache
from .keys import make_key, module_relpath

__all__ = ["ResolutionCache", "make_key", "module_relpath"]
