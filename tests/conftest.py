"""
Shared fixtures for the check-in bot tests.

Everything runs against the in-memory document store with a clock pinned to
a settable instant in Asia/Taipei, so no database or Telegram access is needed.
"""
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock
from zoneinfo import ZoneInfo

import pytest

from checkin_bot.clock import Clock
from checkin_bot.errors import StoreUnavailable
from checkin_bot.messages import Locale
from checkin_bot.messenger import Messenger
from checkin_bot.records import DailyRecord, RecordStore
from checkin_bot.roster import DailyAggregator
from checkin_bot.store import MemoryDocumentStore

TAIPEI = ZoneInfo("Asia/Taipei")


class SettableNow:
    def __init__(self, value: datetime) -> None:
        self.value = value

    def __call__(self) -> datetime:
        return self.value


class FlakyStore(MemoryDocumentStore):
    """Memory store that raises StoreUnavailable for the named operations."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_on: set[str] = set()
        self.calls: list[tuple[str, str]] = []

    def _check(self, op: str, path: str) -> None:
        self.calls.append((op, path))
        if op in self.fail_on:
            raise StoreUnavailable(f"{op} {path}")

    async def get(self, path):
        self._check("get", path)
        return await super().get(path)

    async def set(self, path, value):
        self._check("set", path)
        await super().set(path, value)

    async def update(self, path, fields):
        self._check("update", path)
        await super().update(path, fields)

    async def increment(self, path, field, amount=1):
        self._check("increment", path)
        return await super().increment(path, field, amount)


@pytest.fixture
def now():
    return SettableNow(datetime(2024, 5, 20, 7, 30, tzinfo=TAIPEI))


@pytest.fixture
def clock(now):
    return Clock("Asia/Taipei", now_fn=now)


@pytest.fixture
def store():
    return FlakyStore()


@pytest.fixture
def records(store):
    return RecordStore(store)


@pytest.fixture
def aggregator(records, clock):
    return DailyAggregator(records, clock)


@pytest.fixture
def messenger():
    mock = MagicMock(spec=Messenger)
    mock.reply = AsyncMock()
    mock.push = AsyncMock()
    mock.get_profile = AsyncMock(return_value=None)
    return mock


async def seed_user(
    records: RecordStore,
    user_id: str,
    name: str,
    *,
    active: bool = True,
    language: Locale = Locale.ZH_TW,
    finished: dict[str, int] | None = None,
) -> None:
    await records.update_user(user_id, display_name=name, is_active=active, language=language)
    for date, rank in (finished or {}).items():
        await records.set_daily_record(
            user_id,
            date,
            DailyRecord(finished=True, rank=rank, timestamp=f"{date}T{rank:02d}:15:00+08:00"),
        )
