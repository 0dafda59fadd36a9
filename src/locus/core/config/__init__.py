"""Locus configuration: layered YAML, environment overrides, schema validation."""
from __future__ import annotations

from .manager import ConfigManager, load_config
from .settings import LocusConfig

__all__ = ["ConfigManager", "LocusConfig", "load_config"]
