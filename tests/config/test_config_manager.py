from __future__ import annotations

import tempfile
from pathlib import Path

import pytest
import yaml

from locus.core.cache.tiers import NoTier, SharedTier, SnapshotTier
from locus.core.config import ConfigManager, LocusConfig, load_config
from locus.core.config.settings import PACKAGE_DIR, snapshot_path
from locus.core.exceptions import ConfigError


def _write_config(path: Path, data: dict) -> Path:
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


def test_defaults() -> None:
    cfg = load_config()

    assert cfg.extension == ".py"
    assert cfg.ttl_seconds == 86400
    assert cfg.paths == ()
    assert cfg.prepend is False
    assert cfg.logging_mode is True
    assert cfg.logging_level == "INFO"
    assert cfg.lock_timeout == 5.0
    assert cfg.tier == SnapshotTier(PACKAGE_DIR / "resolve_cache.py")


def test_project_file_overrides_defaults(tmp_path: Path) -> None:
    cfg_file = _write_config(
        tmp_path / "custom.yaml",
        {"resolver": {"extension": ".inc", "paths": ["/srv/lib"]}, "cache": {"tier": "none"}},
    )

    cfg = load_config(cfg_file)

    assert cfg.extension == ".inc"
    assert cfg.ttl_seconds == 86400
    assert cfg.paths == ("/srv/lib",)
    assert cfg.tier == NoTier()


def test_locus_yaml_in_cwd_is_picked_up(tmp_path: Path) -> None:
    _write_config(tmp_path / "locus.yaml", {"resolver": {"ttl_seconds": 60}})

    assert load_config().ttl_seconds == 60


def test_config_env_var_points_at_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    cfg_file = _write_config(tmp_path / "elsewhere.yaml", {"resolver": {"prepend": True}})
    monkeypatch.setenv("LOCUS_CONFIG", str(cfg_file))

    assert load_config().prepend is True


def test_missing_explicit_file_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        ConfigManager(tmp_path / "nope.yaml")


def test_env_overrides_are_coerced(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOCUS_RESOLVER__TTL_SECONDS", "120")
    monkeypatch.setenv("LOCUS_resolver__prepend", "true")
    monkeypatch.setenv("LOCUS_resolver__paths", '["/a", "/b"]')
    monkeypatch.setenv("LOCUS_locking__timeout_seconds", "0.5")
    monkeypatch.setenv("LOCUS_logging__mode", str(tmp_path / "errors.log"))

    cfg = load_config()

    assert cfg.ttl_seconds == 120
    assert cfg.prepend is True
    assert cfg.paths == ("/a", "/b")
    assert cfg.lock_timeout == 0.5
    assert cfg.logging_mode == str(tmp_path / "errors.log")


def test_env_without_section_is_ignored(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOCUS_SOMETHING", "x")

    assert load_config().extension == ".py"


def test_env_override_beats_project_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    cfg_file = _write_config(tmp_path / "c.yaml", {"resolver": {"extension": ".inc"}})
    monkeypatch.setenv("LOCUS_resolver__extension", ".tpl")

    assert load_config(cfg_file).extension == ".tpl"


def test_shared_tier_requires_prefix(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOCUS_cache__tier", "shared")

    with pytest.raises(ConfigError, match="prefix"):
        load_config()


def test_shared_tier(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOCUS_cache__tier", "shared")
    monkeypatch.setenv("LOCUS_cache__shared__prefix", "myapp:")

    cfg = load_config()

    assert cfg.tier == SharedTier(prefix="myapp:", directory=Path(tempfile.gettempdir()) / "locus-shared")


def test_snapshot_directory_and_key(tmp_path: Path) -> None:
    cfg_file = _write_config(
        tmp_path / "c.yaml",
        {"cache": {"snapshot": {"directory": str(tmp_path), "key": "shop"}}},
    )

    assert load_config(cfg_file).tier == SnapshotTier(tmp_path / "_shop_resolve_cache.py")


def test_unwritable_snapshot_directory_falls_back_to_package(tmp_path: Path) -> None:
    assert snapshot_path(str(tmp_path / "missing"), None) == PACKAGE_DIR / "resolve_cache.py"


@pytest.mark.parametrize(
    "data,where",
    [
        ({"resolver": {"ttl_seconds": 0}}, "resolver.ttl_seconds"),
        ({"resolver": {"extension": "py"}}, "resolver.extension"),
        ({"cache": {"tier": "redis"}}, "cache.tier"),
        ({"logging": {"level": "LOUD"}}, "logging.level"),
        ({"unknown": {}}, "<root>"),
    ],
)
def test_schema_violations_raise(tmp_path: Path, data: dict, where: str) -> None:
    cfg_file = _write_config(tmp_path / "bad.yaml", data)

    with pytest.raises(ConfigError) as excinfo:
        load_config(cfg_file)
    assert excinfo.value.context["path"] == where


def test_invalid_yaml_raises(tmp_path: Path) -> None:
    bad = tmp_path / "bad.yaml"
    bad.write_text("resolver: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(bad)


def test_env_overrides_do_not_leak_into_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOCUS_resolver__extension", ".inc")
    assert load_config().extension == ".inc"

    monkeypatch.delenv("LOCUS_resolver__extension")
    assert load_config().extension == ".py"


def test_from_mapping_builds_dataclass() -> None:
    cfg = LocusConfig.from_mapping(
        {
            "resolver": {"extension": ".py", "ttl_seconds": 10, "paths": ["/x"], "prepend": False},
            "cache": {"tier": "none"},
            "logging": {"mode": False, "level": "DEBUG"},
            "locking": {"timeout_seconds": 1},
        }
    )

    assert cfg == LocusConfig(
        extension=".py",
        ttl_seconds=10,
        paths=("/x",),
        tier=NoTier(),
        logging_mode=False,
        logging_level="DEBUG",
        lock_timeout=1.0,
    )
