import logging
from datetime import datetime, timedelta

import pytest

from brainbuddy.content import load_daily_quiz, load_pet_catalog
from brainbuddy.engine import ProgressEngine
from brainbuddy.store import KeyValueStore


class FakeClock:
    """Settable wall clock for cooldowns, expiry and day boundaries."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_brainbuddy.db")
    return db_path


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 2, 9, 0, 0))


@pytest.fixture
def store(tmp_db, clock):
    return KeyValueStore(tmp_db, ttl_days=30, clock=clock)


@pytest.fixture
def quiz_items():
    return load_daily_quiz()


@pytest.fixture
def catalog():
    return load_pet_catalog()


@pytest.fixture
def engine(store, clock, quiz_items, catalog):
    """A loaded engine for user 'alice' with no remote service."""
    return ProgressEngine(store, "alice", quiz_items=quiz_items, catalog=catalog, clock=clock).load()


@pytest.fixture
def restore_package_logger():
    """Undo setup_logger() so later tests still see records through caplog."""
    package_logger = logging.getLogger("brainbuddy")
    yield package_logger
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)
