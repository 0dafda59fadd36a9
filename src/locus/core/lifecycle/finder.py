"""Import hook resolving module names through the Locus engine."""
from __future__ import annotations

import importlib.abc
import importlib.machinery
import importlib.util
from pathlib import Path
from types import ModuleType
from typing import Optional, Sequence

from locus.core.resolution.engine import ResolutionCache
from locus.core.resolution.keys import module_relpath

PACKAGE_INIT = "__init__"


class LocusFinder(importlib.abc.MetaPathFinder):
    """``sys.meta_path`` finder backed by a :class:`ResolutionCache`.

    ``a.b.c`` resolves to ``a/b/c<ext>`` first, then to the package form
    ``a/b/c/__init__<ext>``. Misses return None so the remaining finders get
    their turn.
    """

    def __init__(self, engine: ResolutionCache) -> None:
        self.engine = engine

    def find_spec(
        self,
        fullname: str,
        path: Optional[Sequence[str]] = None,
        target: Optional[ModuleType] = None,
    ) -> Optional[importlib.machinery.ModuleSpec]:
        relpath = module_relpath(fullname)

        found = self.engine.resolve("", relpath)
        if found is not None:
            return self._spec(fullname, found)

        init = self.engine.resolve(relpath, PACKAGE_INIT)
        if init is not None:
            return self._spec(fullname, init, package_dir=init.parent)
        return None

    @staticmethod
    def _spec(
        fullname: str, location: Path, package_dir: Optional[Path] = None
    ) -> Optional[importlib.machinery.ModuleSpec]:
        loader = importlib.machinery.SourceFileLoader(fullname, str(location))
        return importlib.util.spec_from_file_location(
            fullname,
            str(location),
            loader=loader,
            submodule_search_locations=[str(package_dir)] if package_dir is not None else None,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({len(self.engine.registry)} paths)"


__all__ = ["LocusFinder"]
