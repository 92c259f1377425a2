from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Optional

import pytest


def pytest_sessionstart(session):  # type: ignore[override]
    root = Path(__file__).resolve().parents[1]
    src = root / "src"
    if str(src) not in sys.path:
        sys.path.insert(0, str(src))
    # Ensure console scripts load in editable style as well
    os.environ.setdefault("PYTHONPATH", str(src))


_ENV_PREFIXES = ("GITBOARD_",)
_TOKEN_VARS = ("GITHUB_TOKEN", "GH_TOKEN")


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Point HOME at an empty directory and drop gitboard/GitHub env vars."""
    for name in list(os.environ):
        if name.startswith(_ENV_PREFIXES) or name in _TOKEN_VARS:
            monkeypatch.delenv(name, raising=False)
    fake_home = tmp_path / "home"
    fake_home.mkdir()
    monkeypatch.setenv("HOME", str(fake_home))
    monkeypatch.setenv("GITBOARD_LOG_DISABLE_FILE", "1")

    from gitboard.config_loader import clear_config_cache
    clear_config_cache()
    yield fake_home
    clear_config_cache()


@pytest.fixture
def make_repo():
    """Factory creating a git repository with one commit on ``main``."""
    from git import Actor, Repo

    actor = Actor("Test", "test@example.com")

    def _make(path: Path, remote_url: Optional[str] = None, branches: tuple = ()) -> Repo:
        path.mkdir(parents=True, exist_ok=True)
        repo = Repo.init(path)
        (path / "README.md").write_text("hello\n", encoding="utf-8")
        repo.index.add(["README.md"])
        repo.index.commit("initial", author=actor, committer=actor)
        repo.git.branch("-M", "main")
        for branch in branches:
            repo.create_head(branch)
        if remote_url:
            repo.create_remote("origin", remote_url)
        return repo

    return _make


@pytest.fixture(autouse=True)
def reset_logger():
    """Drop gitboard logger handlers and loaded logging settings after each test."""
    import logging

    from gitboard_mcp import observability as obs

    def _reset():
        logger = logging.getLogger(obs.LOGGER_NAME)
        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()
        logger.setLevel(logging.NOTSET)
        obs._logger_initialized = False
        obs._session_start = None
        obs._config_settings.clear()

    _reset()
    yield
    _reset()
