import logging
from pathlib import Path

import pytest

from locator.cache import ContentCache
from locator.resolver import Resolver

from tests.infrastructure import FakeGit


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path: Path):
    # never touch the real ~/.locator or inherit settings from the shell
    monkeypatch.setenv("LOCATOR_HOME", str(tmp_path / "home"))
    for name in (
        "LOCATOR_CACHE_DIR",
        "LOCATOR_FETCH_TIMEOUT",
        "LOCATOR_LOCK_WAIT_TIMEOUT",
        "LOCATOR_LOCK_STALE_SEC",
        "LOCATOR_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    yield
    # drop stderr handlers installed by in-process CLI runs
    pkg_logger = logging.getLogger("locator")
    for h in list(pkg_logger.handlers):
        if getattr(h, "_locator_cli", False):
            pkg_logger.removeHandler(h)
    pkg_logger.setLevel(logging.NOTSET)


@pytest.fixture
def fake_git() -> FakeGit:
    return FakeGit()


@pytest.fixture
def cache(tmp_path: Path, fake_git: FakeGit) -> ContentCache:
    return ContentCache(root=tmp_path / "cache", git=fake_git, lock_wait_timeout=5.0)


@pytest.fixture
def resolver(cache: ContentCache) -> Resolver:
    return Resolver(cache)
