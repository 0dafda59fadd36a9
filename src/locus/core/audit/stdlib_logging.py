from __future__ import annotations

import logging
import sys
import tempfile
from pathlib import Path
from typing import Union

from locus.core.utils.io import ensure_directory

LOGGER_NAME = "locus"
DEFAULT_LOG_PATH = Path(tempfile.gettempdir()) / "locus" / "locus_errors.log"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_LOCUS_HANDLER: logging.Handler | None = None
_CONFIGURED_TARGET: str | None = None


def _level_from_name(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def _target_for(mode: Union[bool, str]) -> str:
    if mode is False:
        return "<stderr>"
    if mode is True:
        return str(DEFAULT_LOG_PATH.resolve())
    return str(Path(mode).expanduser().resolve())


def configure_logging(mode: Union[bool, str] = True, level: str = "INFO") -> None:
    """Route the ``locus`` logger according to the logging mode.

    ``True`` logs to the default file, a string logs to that file, ``False``
    displays records on stderr. Idempotent per process: reconfiguring the same
    target only updates the level.
    """
    global _LOCUS_HANDLER, _CONFIGURED_TARGET

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(_level_from_name(level))

    target = _target_for(mode)
    if _CONFIGURED_TARGET == target and _LOCUS_HANDLER is not None:
        _LOCUS_HANDLER.setLevel(_level_from_name(level))
        return

    reset_logging()

    if mode is False:
        handler: logging.Handler = logging.StreamHandler(sys.stderr)
    else:
        ensure_directory(Path(target).parent)
        handler = logging.FileHandler(target, encoding="utf-8")
    handler.setLevel(_level_from_name(level))
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)

    _LOCUS_HANDLER = handler
    _CONFIGURED_TARGET = target


def is_display_mode() -> bool:
    """True when diagnostics go to stderr rather than a log file."""
    return _CONFIGURED_TARGET == "<stderr>"


def reset_logging() -> None:
    """Remove the handler installed by :func:`configure_logging`."""
    global _LOCUS_HANDLER, _CONFIGURED_TARGET
    if _LOCUS_HANDLER is not None:
        logging.getLogger(LOGGER_NAME).removeHandler(_LOCUS_HANDLER)
        try:
            _LOCUS_HANDLER.close()
        except Exception:
            pass
    _LOCUS_HANDLER = None
    _CONFIGURED_TARGET = None


__all__ = ["configure_logging", "is_display_mode", "reset_logging", "DEFAULT_LOG_PATH", "LOGGER_NAME"]
