import os
import sys
from pathlib import Path

import pytest

# Keep the repository free of Python bytecode and __pycache__ artifacts during tests.
sys.dont_write_bytecode = True

TESTS_ROOT = Path(__file__).resolve().parent
REPO_ROOT = TESTS_ROOT.parent
SRC_ROOT = REPO_ROOT / "src"

# Make src/ importable as 'forkery' and tests/ importable for helpers
for p in (SRC_ROOT, TESTS_ROOT):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))


from helpers.cache_utils import reset_forkery_caches


def pytest_collection_modifyitems(config, items):  # type: ignore[no-untyped-def]
    if os.name == "posix":
        return
    skip = pytest.mark.skip(reason="requires POSIX process groups and signals")
    for item in items:
        if "posix_only" in item.keywords:
            item.add_marker(skip)


@pytest.fixture(autouse=True)
def _isolate_forkery_env(tmp_path_factory, monkeypatch):
    """Fresh caches and no developer-shell FORKERY_* overrides for every test."""
    for key in list(os.environ):
        if key.startswith("FORKERY_"):
            monkeypatch.delenv(key, raising=False)
    # Never read the developer's ~/.forkery during tests.
    user_dir = tmp_path_factory.mktemp("forkery-user")
    monkeypatch.setenv("FORKERY_paths__user_config_dir", str(user_dir))
    reset_forkery_caches()
    yield
    reset_forkery_caches()


@pytest.fixture
def isolated_project_env(tmp_path, monkeypatch):
    """
    Isolated project root with an empty ``.forkery/config`` overlay directory.

    The project root is pinned through ``FORKERY_PROJECT_ROOT`` and the test
    runs with the project as its working directory.
    """
    (tmp_path / ".forkery" / "config").mkdir(parents=True, exist_ok=True)
    monkeypatch.setenv("FORKERY_PROJECT_ROOT", str(tmp_path))
    monkeypatch.chdir(tmp_path)
    reset_forkery_caches()
    return tmp_path
