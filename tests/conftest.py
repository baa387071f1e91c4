"""
Shared fixtures: a controllable clock and stores wired to it
"""

import logging
import pytest
from datetime import datetime, timedelta, timezone

from shiwallet.ledger import LedgerStore
from shiwallet.profit import ProfitEngine
from shiwallet.scheduler import CatchUpScheduler


class FrozenClock:
    """Callable clock that only moves when told to"""

    def __init__(self, moment: datetime):
        self.moment = moment

    def __call__(self) -> datetime:
        return self.moment

    def set(self, moment: datetime) -> None:
        self.moment = moment

    def advance(self, **kwargs) -> None:
        self.moment += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FrozenClock(datetime(2024, 9, 1, tzinfo=timezone.utc))


@pytest.fixture
def store(clock):
    return LedgerStore(clock=clock)


@pytest.fixture
def engine(store, clock):
    return ProfitEngine(store, tz=timezone.utc, clock=clock)


@pytest.fixture
def scheduler(store, engine, clock):
    return CatchUpScheduler(store, engine, clock=clock)


@pytest.fixture(autouse=True)
def reset_shiwallet_logger():
    """Undo setup_logging so records keep reaching caplog"""
    yield
    logger = logging.getLogger("shiwallet")
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
