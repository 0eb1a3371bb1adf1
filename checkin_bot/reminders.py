from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from checkin_bot.errors import CheckinError, DeliveryFailed
from checkin_bot.messages import reminder_message
from checkin_bot.messenger import Messenger
from checkin_bot.roster import DailyAggregator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DispatchResult:
    sent_count: int
    attempted: int


class ReminderDispatcher:
    def __init__(self, aggregator: DailyAggregator, messenger: Messenger) -> None:
        self._aggregator = aggregator
        self._messenger = messenger
        self._background: set[asyncio.Task] = set()

    async def notify_unfinished(self, finisher_display_name: str) -> DispatchResult:
        """Push a reminder to every active user who has not finished today.

        Only the initial roster fetch can fail the batch; a failed delivery is
        logged and the loop moves on to the next recipient, whatever the error.
        """
        unfinished = await self._aggregator.get_unfinished_users()
        if not unfinished:
            logger.info("No one left to remind")
            return DispatchResult(sent_count=0, attempted=0)

        sent_count = 0
        for user in unfinished:
            text = reminder_message(finisher_display_name, user.language)
            try:
                await self._messenger.push(user.user_id, text)
            except DeliveryFailed as exc:
                logger.warning("Reminder to %s (%s) failed: %s", user.display_name, user.user_id, exc)
                continue
            except Exception:
                logger.exception("Unexpected error reminding %s (%s)", user.display_name, user.user_id)
                continue
            sent_count += 1
            logger.info("Reminder sent to %s (%s) in %s", user.display_name, user.user_id, user.language.value)

        logger.info("Reminders sent: %d/%d", sent_count, len(unfinished))
        return DispatchResult(sent_count=sent_count, attempted=len(unfinished))

    async def _run_detached(self, finisher_display_name: str) -> None:
        try:
            result = await self.notify_unfinished(finisher_display_name)
        except CheckinError as exc:
            logger.error("Reminder batch for %s failed: %s", finisher_display_name, exc)
            return
        except Exception:
            logger.exception("Unexpected error in reminder batch for %s", finisher_display_name)
            return
        if result.sent_count == 0:
            logger.info("%s finished and everyone is done for today", finisher_display_name)

    def dispatch_in_background(self, finisher_display_name: str) -> asyncio.Task:
        """Start the reminder batch without waiting for it."""
        task = asyncio.create_task(self._run_detached(finisher_display_name))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def drain(self) -> None:
        """Wait for detached batches still in flight, e.g. before shutdown."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
