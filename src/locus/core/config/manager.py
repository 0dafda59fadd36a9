"""
Locus configuration management (YAML layers + LOCUS_* environment overrides).
"""
from __future__ import annotations

import copy
import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

import jsonschema
import yaml

from locus.core.exceptions import ConfigError
from locus.core.utils.merge import deep_merge
from locus.data import read_yaml

from .settings import LocusConfig

logger = logging.getLogger(__name__)

ENV_PREFIX = "LOCUS_"
CONFIG_PATH_ENV = "LOCUS_CONFIG"
PROJECT_CONFIG_FILENAME = "locus.yaml"


class ConfigManager:
    """Load, merge, and validate Locus configuration.

    Configuration sources (highest to lowest priority):
    1. Environment variables: LOCUS_<section>__<key>[__<key>...]
    2. Project config: ``config_path``, else $LOCUS_CONFIG, else ./locus.yaml
    3. Bundled defaults: locus.data/config/defaults.yaml
    """

    def __init__(self, config_path: Optional[Path | str] = None) -> None:
        self.project_path = self._find_project_config(config_path)

    def _find_project_config(self, explicit: Optional[Path | str]) -> Optional[Path]:
        if explicit is not None:
            path = Path(explicit).expanduser()
            if not path.is_file():
                raise ConfigError(f"Config file not found: {path}", context={"path": str(path)})
            return path
        env_path = os.environ.get(CONFIG_PATH_ENV)
        if env_path:
            path = Path(env_path).expanduser()
            if not path.is_file():
                raise ConfigError(
                    f"{CONFIG_PATH_ENV} points at missing file: {path}",
                    context={"path": str(path)},
                )
            return path
        local = Path.cwd() / PROJECT_CONFIG_FILENAME
        return local if local.is_file() else None

    def load_yaml(self, path: Path) -> Dict[str, Any]:
        # Fail closed: configuration must never silently ignore invalid YAML.
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"Cannot read config file {path}: {exc}", context={"path": str(path)}) from exc
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping", context={"path": str(path)})
        return data

    # ========== Environment overrides ==========

    def _as_bool(self, v: str) -> Optional[bool]:
        low = v.strip().lower()
        if low in {"true", "false"}:
            return low == "true"
        return None

    def _as_int(self, v: str) -> Optional[int]:
        if re.fullmatch(r"[-+]?\d+", v.strip() or " "):
            return int(v)
        return None

    def _as_float(self, v: str) -> Optional[float]:
        s = v.strip()
        if re.fullmatch(r"[-+]?\d*\.\d+", s) or re.fullmatch(r"[-+]?\d+\.\d*", s):
            return float(s)
        return None

    def _as_json(self, v: str) -> Optional[Any]:
        s = v.strip()
        if (s.startswith("{") and s.endswith("}")) or (s.startswith("[") and s.endswith("]")):
            try:
                return json.loads(s)
            except ValueError:
                return None
        return None

    def _coerce_type(self, value: str) -> Any:
        if value.strip().lower() in {"null", "none", "~"}:
            return None
        for caster in (self._as_bool, self._as_int, self._as_float, self._as_json):
            result = caster(value)
            if result is not None:
                return result
        return value.strip()

    def _iter_env_overrides(self) -> Iterator[Tuple[List[str], Any]]:
        for key in sorted(os.environ.keys()):
            if not key.startswith(ENV_PREFIX) or key == CONFIG_PATH_ENV:
                continue
            segs = key[len(ENV_PREFIX):].split("__")
            # Only section__key paths are overrides; anything else belongs to someone else.
            if len(segs) < 2 or any(not s for s in segs):
                continue
            yield [s.lower() for s in segs], self._coerce_type(os.environ[key])

    def apply_env_overrides(self, cfg: Dict[str, Any]) -> None:
        for path, value in self._iter_env_overrides():
            cur = cfg
            for part in path[:-1]:
                nxt = cur.get(part)
                if not isinstance(nxt, dict):
                    nxt = cur[part] = {}
                cur = nxt
            cur[path[-1]] = value
            logger.debug("config override %s=%r from environment", ".".join(path), value)

    # ========== Loading ==========

    def validate_schema(self, cfg: Dict[str, Any]) -> None:
        schema = read_yaml("schemas", "config.yaml")
        validator = jsonschema.Draft202012Validator(schema)
        errors = sorted(validator.iter_errors(cfg), key=lambda e: list(e.absolute_path))
        if errors:
            first = errors[0]
            where = ".".join(str(p) for p in first.absolute_path) or "<root>"
            raise ConfigError(
                f"Invalid configuration at {where}: {first.message}",
                context={"path": where, "errors": len(errors)},
            )

    def load_config(self, validate: bool = True) -> Dict[str, Any]:
        """Merge defaults, the project file and environment overrides.

        Returns:
            Merged configuration dictionary
        """
        cfg = copy.deepcopy(read_yaml("config", "defaults.yaml"))
        if self.project_path is not None:
            cfg = deep_merge(cfg, self.load_yaml(self.project_path))
            logger.debug("loaded project config %s", self.project_path)
        self.apply_env_overrides(cfg)
        if validate:
            self.validate_schema(cfg)
        return cfg

    def load(self) -> LocusConfig:
        """Load and validate configuration into a :class:`LocusConfig`."""
        return LocusConfig.from_mapping(self.load_config(validate=True))


def load_config(config_path: Optional[Path | str] = None) -> LocusConfig:
    """Shortcut for ``ConfigManager(config_path).load()``."""
    return ConfigManager(config_path).load()


__all__ = ["ConfigManager", "load_config", "ENV_PREFIX", "CONFIG_PATH_ENV"]
