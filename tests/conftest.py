import os
import sys
from pathlib import Path

import pytest

# Keep the repository free of Python bytecode and __pycache__ artifacts during tests.
sys.dont_write_bytecode = True

TESTS_ROOT = Path(__file__).resolve().parent
REPO_ROOT = TESTS_ROOT.parent
SRC_ROOT = REPO_ROOT / "src"

# Make src/ importable as 'locus'
for p in (SRC_ROOT, TESTS_ROOT):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))


from locus.core.audit import reset_logging
from locus.core.lifecycle import deactivate


@pytest.fixture(autouse=True)
def isolated_locus(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Run every test without LOCUS_* overrides, a stray locus.yaml or an active engine."""
    for key in list(os.environ):
        if key.startswith("LOCUS_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    yield
    deactivate()
    reset_logging()
