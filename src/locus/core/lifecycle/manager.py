"""Activation, process-exit finalization and deactivation of the engine.

One engine instance per process sits behind ``activate()``/``deactivate()``.
Callers only ever see a :class:`LocusHandle`.

Finalization runs once, at interpreter exit, in two independent steps:

1. persist the in-process map to the snapshot (snapshot tier only); every
   failure is logged and swallowed
2. if the host recorded a fatal error, discard every cache tier, report the
   error and terminate with status 1, whatever step 1 did
"""
from __future__ import annotations

import atexit
import logging
import os
import sys
import threading
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from locus.core.audit import configure_logging, is_display_mode, reset_logging
from locus.core.config import LocusConfig, load_config
from locus.core.exceptions import NotActivatedError
from locus.core.paths.registry import PathRegistry
from locus.core.resolution.engine import ResolutionCache
from locus.core.utils.io import PathLike

from .errors import ErrorTracker, HostError
from .finder import LocusFinder

logger = logging.getLogger(__name__)

ExitFunc = Callable[[int], None]

_ACTIVE: Optional["_Lifecycle"] = None
_ACTIVE_MUTEX = threading.Lock()


class _Lifecycle:
    def __init__(self, config: LocusConfig, exit_func: ExitFunc) -> None:
        self.config = config
        self.registry = PathRegistry()
        self.engine = ResolutionCache(
            self.registry,
            tier=config.tier,
            ttl=config.ttl_seconds,
            extension=config.extension,
            lock_timeout=config.lock_timeout,
        )
        self.finder = LocusFinder(self.engine)
        self.errors = ErrorTracker()
        self._exit = exit_func
        self._finalized = False
        self.handle = LocusHandle(self)

    def start(self) -> None:
        configure_logging(self.config.logging_mode, self.config.logging_level)
        self.registry.add_paths(self.config.paths)
        loaded = self.engine.load_snapshot()
        if self.config.prepend:
            sys.meta_path.insert(0, self.finder)
        else:
            sys.meta_path.append(self.finder)
        self.errors.install()
        atexit.register(self.finalize)
        logger.debug(
            "activated with %s tier, %d search paths, %d cached entries",
            self.engine.tier.name,
            len(self.registry),
            loaded,
        )

    def stop(self) -> None:
        atexit.unregister(self.finalize)
        if self.finder in sys.meta_path:
            sys.meta_path.remove(self.finder)
        self.errors.uninstall()
        self.engine.clear()
        self.engine.close()
        self.registry.clear()
        logger.debug("deactivated")
        reset_logging()

    def finalize(self) -> None:
        if self._finalized:
            return
        self._finalized = True
        self._persist()
        self._check_last_error()

    def _persist(self) -> None:
        try:
            if self.engine.persist():
                logger.debug("snapshot written to %s", self.config.tier)
        except Exception:
            logger.exception("snapshot persistence failed")

    def _check_last_error(self) -> None:
        error = self.errors.last
        if error is None:
            return
        if not error.fatal:
            logger.warning(error.log_line())
            return
        logger.error(error.log_line())
        self._fatal_cleanup(error)

    def _fatal_cleanup(self, error: HostError) -> None:
        try:
            self.engine.clear()
        except Exception:
            logger.exception("cache cleanup after fatal error failed")
        for stream in (sys.stdout, sys.stderr):
            try:
                stream.flush()
            except (AttributeError, OSError, ValueError):
                pass
        message = error.display_line() if is_display_mode() else error.notice_line()
        try:
            sys.stderr.write(message + "\n")
            sys.stderr.flush()
        except (AttributeError, OSError, ValueError):
            pass
        self._exit(1)


class LocusHandle:
    """Public face of the active engine."""

    def __init__(self, lifecycle: _Lifecycle) -> None:
        self._lifecycle = lifecycle

    @property
    def config(self) -> LocusConfig:
        return self._lifecycle.config

    @property
    def finder(self) -> LocusFinder:
        return self._lifecycle.finder

    @property
    def errors(self) -> ErrorTracker:
        return self._lifecycle.errors

    def add_paths(self, paths: Iterable[PathLike]) -> "LocusHandle":
        self._lifecycle.registry.add_paths(paths)
        return self

    def paths(self) -> List[str]:
        return self._lifecycle.registry.list_paths()

    def find_file(self, dir_hint: str, name: str, ext: Optional[str] = None) -> Optional[Path]:
        return self._lifecycle.engine.resolve(dir_hint, name, ext)

    def find_files(self, dir_hint: str, name: str, ext: Optional[str] = None) -> List[Path]:
        return self._lifecycle.engine.resolve_all(dir_hint, name, ext)

    def discover(self, directory: str = "functions", prefix: str = "_") -> List[Path]:
        return self._lifecycle.registry.discover(directory, prefix, self._lifecycle.engine.extension)

    def cached_entries(self) -> dict:
        return self._lifecycle.engine.entries()

    def cached_matches(self) -> dict:
        return self._lifecycle.engine.matches()

    def clear_cache(self) -> "LocusHandle":
        self._lifecycle.engine.clear()
        return self

    def finalize(self) -> None:
        self._lifecycle.finalize()

    def __repr__(self) -> str:
        return f"LocusHandle(tier={self._lifecycle.engine.tier.name}, paths={len(self._lifecycle.registry)})"


def activate(
    config: Optional[LocusConfig] = None,
    *,
    config_path: Optional[PathLike] = None,
    exit_func: Optional[ExitFunc] = None,
) -> LocusHandle:
    """Install the import hook and return the handle; idempotent.

    Args:
        config: Explicit settings. Loaded through ConfigManager when omitted.
        config_path: Project config file used when ``config`` is omitted.
        exit_func: Called with the exit status after a fatal error
            (default: ``os._exit``).
    """
    global _ACTIVE
    with _ACTIVE_MUTEX:
        if _ACTIVE is None:
            lifecycle = _Lifecycle(
                config if config is not None else load_config(config_path),
                exit_func or os._exit,
            )
            lifecycle.start()
            _ACTIVE = lifecycle
        return _ACTIVE.handle


def deactivate() -> None:
    """Remove the hook, discard every cache tier and forget the engine."""
    global _ACTIVE
    with _ACTIVE_MUTEX:
        if _ACTIVE is None:
            return
        lifecycle, _ACTIVE = _ACTIVE, None
    lifecycle.stop()


def is_active() -> bool:
    return _ACTIVE is not None


def _require_active() -> LocusHandle:
    if _ACTIVE is None:
        raise NotActivatedError("locus is not active; call locus.activate() first")
    return _ACTIVE.handle


def find_file(dir_hint: str, name: str, ext: Optional[str] = None) -> Optional[Path]:
    return _require_active().find_file(dir_hint, name, ext)


def find_files(dir_hint: str, name: str, ext: Optional[str] = None) -> List[Path]:
    return _require_active().find_files(dir_hint, name, ext)


def add_paths(paths: Iterable[PathLike]) -> LocusHandle:
    return _require_active().add_paths(paths)


__all__ = [
    "LocusHandle",
    "activate",
    "deactivate",
    "is_active",
    "find_file",
    "find_files",
    "add_paths",
]
