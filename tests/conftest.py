"""
Shared pytest fixtures for the twig test suite.

Usage in tests:
    def test_something(repo, store):
        a = repo.commit_on_head("create initial.txt")
        record(store, [commit_created(a)])

    @requires_git
    def test_end_to_end(sandbox):
        sandbox.commit_file("test1", 1)
"""

import pytest

from twig.config import ConfigManager
from twig.core.events import EventLogStore
from tests.factories import FakeRepository, GitSandbox, git_is_available


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep the real ~/.twig and TWIG_* environment out of every test."""
    monkeypatch.setattr(ConfigManager, "USER_CONFIG_DIR", tmp_path / "user-config")
    for name in ("TWIG_MAIN_BRANCH", "TWIG_SYMBOLS", "TWIG_LOG_LEVEL",
                 "TWIG_TRANSACTION_KEY", "TWIG_PROJECT_PATH", "TWIG_ASCII_ONLY"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def repo():
    """Empty in-memory repository with HEAD on an unborn master."""
    return FakeRepository()


@pytest.fixture
def store(tmp_path):
    """Event log backed by a temp file, closed after the test."""
    event_store = EventLogStore(tmp_path / "twig" / "events.db")
    yield event_store
    event_store.close()


@pytest.fixture
def sandbox(tmp_path):
    """Real git repository with one commit ("create initial.txt") on master."""
    if not git_is_available():
        pytest.skip("Git is not available")
    git = GitSandbox(tmp_path / "repo")
    git.init()
    return git
