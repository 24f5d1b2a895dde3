from collections.abc import Callable
from datetime import UTC, datetime

import pytest

from gas_monitor.models import DailyAggregateModel, ReadingModel
from gas_monitor.store import MemoryStore, StoreUnavailableError
from gas_monitor.tiers import TierRepository

# Saturday 2025-03-15, midday UTC
NOW = datetime(2025, 3, 15, 12, 0, tzinfo=UTC)


class FailingStore(MemoryStore):
    """MemoryStore whose reads and/or writes fail for selected keys."""

    def __init__(self, fail_get: set[str] | None = None, fail_set: set[str] | None = None) -> None:
        super().__init__()
        self.fail_get = fail_get or set()
        self.fail_set = fail_set or set()

    def get(self, key: str) -> str | None:
        if key in self.fail_get:
            raise StoreUnavailableError(f"get {key} failed")
        return super().get(key)

    def set(self, key: str, value: str) -> None:
        if key in self.fail_set:
            raise StoreUnavailableError(f"set {key} failed")
        super().set(key, value)

    def remove(self, key: str) -> None:
        if key in self.fail_set:
            raise StoreUnavailableError(f"remove {key} failed")
        super().remove(key)


def make_reading(ts: str, etanol: float | None = 0.0, co2: float | None = 0.0, co: float | None = 0.0, nh3: float | None = 0.0) -> ReadingModel:
    return ReadingModel(dateTime=ts, etanol=etanol, co2=co2, co=co, nh3=nh3)


def make_day(date: str, etanol: float = 0.0, co2: float = 0.0, co: float = 0.0, nh3: float = 0.0) -> DailyAggregateModel:
    return DailyAggregateModel(date=date, etanol=etanol, co2=co2, co=co, nh3=nh3)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def repo(store: MemoryStore) -> TierRepository:
    return TierRepository(store)


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: NOW
