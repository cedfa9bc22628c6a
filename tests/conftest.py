import datetime as dt
import random

import pytest
from fastapi.testclient import TestClient

from meowdrop.config import Settings
from meowdrop.main import create_app
from meowdrop.sharing import ShareService
from meowdrop.slots import MemorySlots
from meowdrop.store import RecordStore
from meowdrop.transfers import TransferBoard

START = dt.datetime(2026, 10, 16, 12, 0, tzinfo=dt.timezone.utc)


class FakeClock:
    def __init__(self, now: dt.datetime = START):
        self.now = now

    def __call__(self) -> dt.datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += dt.timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def slots():
    return MemorySlots()


@pytest.fixture
def store(slots, clock):
    return RecordStore(slots, clock=clock)


@pytest.fixture
def service(store, clock):
    return ShareService(store, max_bytes=3 * 1024 * 1024, clock=clock, rng=random.Random(7))


@pytest.fixture
def board(clock):
    return TransferBoard(max_bytes=1024, start_delay=0.3, clock=clock)


@pytest.fixture
def settings():
    return Settings(data_dir="/tmp/meowdrop-tests", max_share_bytes=1024, storage_quota_chars=10_000)


@pytest.fixture
def client(settings, clock):
    app = create_app(settings, slots=MemorySlots(quota=settings.storage_quota_chars), clock=clock)
    with TestClient(app) as c:
        yield c
