"""Shared fixtures."""

import pytest

from ascella.environment import current_session


@pytest.fixture(autouse=True)
def ascella_home(tmp_path, monkeypatch):
    """Point the data directory at a temp dir for every test."""
    home = tmp_path / "ascella-home"
    monkeypatch.setenv("ASCELLA_HOME", str(home))
    current_session.cache_clear()
    yield home
    current_session.cache_clear()
