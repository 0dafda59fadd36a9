"""Diagnostics output for Locus."""
from __future__ import annotations

from .stdlib_logging import (
    DEFAULT_LOG_PATH,
    configure_logging,
    is_display_mode,
    reset_logging,
)

__all__ = ["DEFAULT_LOG_PATH", "configure_logging", "is_display_mode", "reset_logging"]
