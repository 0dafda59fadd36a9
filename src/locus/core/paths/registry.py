"""Ordered registry of base directories searched during resolution.

Later registrations take precedence: every new directory is inserted at the
front, so the most recently registered path family is scanned first.
Directories are not checked for existence here; a missing directory simply
never matches at lookup time.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, List

from locus.core.utils.io import PathLike


def normalize_search_path(path: PathLike) -> str:
    """Strip trailing separators and append exactly one ``os.sep``."""
    return str(path).rstrip("/\\") + os.sep


class PathRegistry:
    """Most-recently-added-first list of unique search directories.

    Examples:
        >>> reg = PathRegistry()
        >>> reg.add_paths(["/a", "/b"])
        >>> reg.add_paths(["/c", "/a/"])
        >>> reg.list_paths()
        ['/c/', '/b/', '/a/']
    """

    def __init__(self) -> None:
        self._paths: List[str] = []

    def __len__(self) -> int:
        return len(self._paths)

    def __iter__(self):
        return iter(list(self._paths))

    def add_paths(self, paths: Iterable[PathLike]) -> None:
        for raw in paths:
            path = normalize_search_path(raw)
            if path not in self._paths:
                self._paths.insert(0, path)

    def list_paths(self) -> List[str]:
        return list(self._paths)

    def clear(self) -> None:
        self._paths.clear()

    def discover(self, directory: str = "functions", prefix: str = "_", ext: str = ".py") -> List[Path]:
        """List ``<search path>/<directory>/<prefix>*<ext>`` files.

        Search paths are visited in precedence order; matches within one
        directory are sorted by name. Missing directories contribute nothing.
        """
        found: List[Path] = []
        for base in self._paths:
            folder = Path(base) / directory
            if not folder.is_dir():
                continue
            found.extend(sorted(p for p in folder.glob(f"{prefix}*{ext}") if p.is_file()))
        return found


__all__ = ["PathRegistry", "normalize_search_path"]
