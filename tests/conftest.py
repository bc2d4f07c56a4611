"""Central test fixtures."""

import operator

import pytest

from selectorsync import InMemoryStore, SelectorSettings


@pytest.fixture
def store() -> InMemoryStore:
    """Create an in-memory store with a small todo snapshot."""
    return InMemoryStore({"count": 0, "todos": ["write docs"]})


@pytest.fixture
def settings() -> SelectorSettings:
    """Create settings with the default overlap policy."""
    return SelectorSettings(log_level="DEBUG", overlap_policy="commit_all")


@pytest.fixture
def latest_wins_settings() -> SelectorSettings:
    """Create settings that drop superseded resolutions."""
    return SelectorSettings(log_level="DEBUG", overlap_policy="latest_wins")


@pytest.fixture
def list_equal():
    """Structural equality for selections."""
    return operator.eq
