from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from checkin_bot.clock import Clock
from checkin_bot.messages import Locale
from checkin_bot.records import RecordStore, User

logger = logging.getLogger(__name__)

UNKNOWN_TIME = "時間未知"


@dataclass(frozen=True)
class RosterEntry:
    user_id: str
    display_name: str
    has_finished: bool
    finish_time: str | None = None
    rank: int | None = None


def _sort_key(entry: RosterEntry) -> tuple:
    if entry.has_finished:
        return (0, entry.rank or 0, "")
    return (1, 0, entry.display_name)


class DailyAggregator:
    def __init__(self, records: RecordStore, clock: Clock) -> None:
        self._records = records
        self._clock = clock

    async def _active_users(self) -> list[User]:
        users = await self._records.list_users()
        return [user for user in users.values() if user.is_active]

    def _finish_time(self, timestamp: str, locale: Locale) -> str:
        try:
            return self._clock.format_time(datetime.fromisoformat(timestamp), locale)
        except ValueError:
            return UNKNOWN_TIME

    async def get_today_roster(self, locale: Locale = Locale.ZH_TW) -> list[RosterEntry]:
        """Active users' status for today, finishers by rank then the rest by name.

        An empty group gives an empty list; a store failure propagates.
        """
        today = self._clock.today()
        roster: list[RosterEntry] = []
        for user in await self._active_users():
            record = user.finished_on(today)
            if record is None:
                roster.append(RosterEntry(user.user_id, user.display_name, has_finished=False))
                continue
            roster.append(
                RosterEntry(
                    user.user_id,
                    user.display_name,
                    has_finished=True,
                    finish_time=self._finish_time(record.timestamp, locale),
                    rank=record.rank,
                )
            )
        roster.sort(key=_sort_key)
        logger.info("Built roster for %s with %d active users", today, len(roster))
        return roster

    async def get_yesterday_rank(self, user_id: str) -> int:
        """Yesterday's rank, or 0 when the user has no finished record."""
        record = await self._records.get_daily_record(user_id, self._clock.yesterday())
        if record is None or not record.finished:
            return 0
        return record.rank

    async def get_unfinished_users(self) -> list[User]:
        today = self._clock.today()
        unfinished = [user for user in await self._active_users() if user.finished_on(today) is None]
        logger.info("%d active users have not finished %s", len(unfinished), today)
        return unfinished
