from __future__ import annotations

import logging
from dataclasses import dataclass

from checkin_bot.clock import Clock
from checkin_bot.records import DailyRecord, RecordStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompletionResult:
    rank: int
    is_first_today: bool


class RankingEngine:
    """Hands out same-day completion ranks.

    Ranks come from a per-date counter document that the store increments
    atomically, so two users finishing at the same moment never share a rank.
    The order is the order in which increments land at the store. If the
    record write fails after the increment, that number is skipped and the
    user's retry receives the next one.
    """

    def __init__(self, records: RecordStore, clock: Clock) -> None:
        self._records = records
        self._clock = clock

    async def record_completion(self, user_id: str) -> CompletionResult:
        now = self._clock.now()
        today = self._clock.civil_date(now)

        existing = await self._records.get_daily_record(user_id, today)
        if existing is not None and existing.finished:
            logger.info("User %s already finished %s with rank %s", user_id, today, existing.rank)
            return CompletionResult(rank=existing.rank, is_first_today=False)

        rank = await self._records.next_rank(today)
        record = DailyRecord(finished=True, rank=rank, timestamp=now.isoformat())
        await self._records.set_daily_record(user_id, today, record)
        logger.info("User %s finished %s with rank %s", user_id, today, rank)
        return CompletionResult(rank=rank, is_first_today=True)
