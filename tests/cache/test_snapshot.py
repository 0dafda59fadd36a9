from __future__ import annotations

import os
import time
from pathlib import Path
from unittest import mock

import pytest

from locus.core.cache.snapshot import (
    PREAMBLE,
    SnapshotData,
    SnapshotFormatError,
    SnapshotStore,
    parse_snapshot,
    render_snapshot,
)
from locus.core.utils.io import acquire_file_lock, LockTimeoutError


def test_round_trip_reproduces_mapping(tmp_path: Path) -> None:
    store = SnapshotStore(tmp_path / "resolve_cache.py")
    entries = {"Foo.py": "/a/Foo.py", "Bar.py": None}

    store.save(entries)

    assert store.load(ttl=60) == SnapshotData(entries, {})


def test_round_trip_keeps_all_matches_apart(tmp_path: Path) -> None:
    store = SnapshotStore(tmp_path / "resolve_cache.py")
    entries = {"Foo.py": "/b/Foo.py", "Foo.py[]": None}
    matches = {"Foo.py": ("/a/Foo.py", "/b/Foo.py"), "Nope.py": ()}

    store.save(entries, matches)

    assert store.load(ttl=60) == SnapshotData(entries, matches)


def test_rendered_snapshot_is_marked_generated() -> None:
    text = render_snapshot({"Foo.py": "/a/Foo.py"})

    assert text.startswith(PREAMBLE)
    assert "ENTRIES = {'Foo.py': '/a/Foo.py'}" in text
    assert "ALL_MATCHES = {}" in text


def test_snapshot_without_all_matches_section_is_accepted() -> None:
    data = parse_snapshot("ENTRIES = {'Foo.py': None}\n")

    assert data == SnapshotData({"Foo.py": None}, {})


def test_parse_never_executes_code(tmp_path: Path) -> None:
    marker = tmp_path / "pwned"
    text = f"import pathlib\npathlib.Path({str(marker)!r}).touch()\nENTRIES = {{}}\n"

    assert parse_snapshot(text) == SnapshotData({}, {})
    assert not marker.exists()


@pytest.mark.parametrize(
    "text",
    [
        "ENTRIES = ['not', 'a', 'mapping']\n",
        "ENTRIES = {'Foo.py': 42}\n",
        "ENTRIES = {1: '/a/Foo.py'}\n",
        "ENTRIES = {'Foo.py': ('/a/Foo.py',)}\n",
        "ENTRIES = {}\nALL_MATCHES = {'Foo.py': '/a/Foo.py'}\n",
        "ENTRIES = {}\nALL_MATCHES = []\n",
        "ENTRIES = {'Foo.py': open('x')}\n",
        "OTHER = {}\n",
    ],
)
def test_parse_rejects_malformed_snapshots(text: str) -> None:
    with pytest.raises(ValueError):
        parse_snapshot(text)


def test_missing_snapshot_loads_as_none(tmp_path: Path) -> None:
    assert SnapshotStore(tmp_path / "absent.py").load(ttl=60) is None


def test_expired_snapshot_is_deleted(tmp_path: Path) -> None:
    path = tmp_path / "resolve_cache.py"
    store = SnapshotStore(path)
    store.save({"Foo.py": "/a/Foo.py"})
    old = time.time() - 100
    os.utime(path, (old, old))

    assert store.load(ttl=50) is None
    assert not path.exists()


def test_unreadable_snapshot_is_deleted(tmp_path: Path) -> None:
    path = tmp_path / "resolve_cache.py"
    path.write_text("ENTRIES = {'Foo.py': \n", encoding="utf-8")

    assert SnapshotStore(path).load(ttl=60) is None
    assert not path.exists()


def test_age_reports_seconds_since_write(tmp_path: Path) -> None:
    path = tmp_path / "resolve_cache.py"
    store = SnapshotStore(path)
    assert store.age() is None

    store.save({})
    old = time.time() - 30
    os.utime(path, (old, old))

    assert 29 <= store.age() < 60


def test_clear_is_safe_when_absent(tmp_path: Path) -> None:
    store = SnapshotStore(tmp_path / "resolve_cache.py")
    assert store.clear() is False
    store.save({})
    assert store.clear() is True


def test_save_respects_exclusive_lock(tmp_path: Path) -> None:
    path = tmp_path / "resolve_cache.py"
    store = SnapshotStore(path, lock_timeout=0.2)

    with acquire_file_lock(path, timeout=1.0):
        with pytest.raises(LockTimeoutError):
            store.save({"Foo.py": None})

    assert not path.exists()
    store.save({"Foo.py": None})
    assert store.load(ttl=60).entries == {"Foo.py": None}


def test_snapshot_format_error_is_value_error() -> None:
    assert issubclass(SnapshotFormatError, ValueError)


def test_unstattable_snapshot_is_treated_as_absent(tmp_path: Path) -> None:
    path = tmp_path / "resolve_cache.py"
    store = SnapshotStore(path)
    store.save({"Foo.py": "/a/Foo.py"})

    with mock.patch.object(Path, "stat", side_effect=PermissionError("denied")):
        assert store.age() is None
        assert store.load(ttl=60) is None

    assert path.exists()
