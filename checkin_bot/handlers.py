from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from telegram import Message

from checkin_bot.errors import CheckinError, DeliveryFailed, StoreUnavailable
from checkin_bot.messages import (
    FINISHER_PLACEHOLDER,
    UNSET_PLACEHOLDER,
    Locale,
    general_message,
    language_changed_message,
    ranking_reply,
    record_reply,
)
from checkin_bot.messenger import Messenger
from checkin_bot.ranking import RankingEngine
from checkin_bot.records import RecordStore, User
from checkin_bot.reminders import ReminderDispatcher
from checkin_bot.roster import DailyAggregator

logger = logging.getLogger(__name__)


class Intent(str, Enum):
    COMPLETION = "completion"
    RANKING_QUERY = "rankingQuery"
    LANGUAGE_SWITCH = "languageSwitch"
    GENERAL_MESSAGE = "generalMessage"


COMPLETION_TRIGGERS = {"完成", "完了", "/done"}
RANKING_TRIGGERS = {"排名", "ランキング", "/ranking"}
LANGUAGE_TRIGGERS = {
    "日本語": Locale.JA_JP,
    "JP": Locale.JA_JP,
    "中文": Locale.ZH_TW,
    "TW": Locale.ZH_TW,
}


def classify_intent(text: str) -> Intent:
    command = text.strip()
    if command in COMPLETION_TRIGGERS:
        return Intent.COMPLETION
    if command in RANKING_TRIGGERS:
        return Intent.RANKING_QUERY
    if command in LANGUAGE_TRIGGERS:
        return Intent.LANGUAGE_SWITCH
    return Intent.GENERAL_MESSAGE


@dataclass(frozen=True)
class HandlerResult:
    """Outcome of one inbound event, kept for logs only."""

    success: bool
    user_id: str
    message: str
    extra: dict[str, Any] = field(default_factory=dict)


class CheckinHandlers:
    def __init__(
        self,
        records: RecordStore,
        ranking: RankingEngine,
        aggregator: DailyAggregator,
        reminders: ReminderDispatcher,
        messenger: Messenger,
    ) -> None:
        self._records = records
        self._ranking = ranking
        self._aggregator = aggregator
        self._reminders = reminders
        self._messenger = messenger

    async def _reply(self, message: Message | None, text: str) -> bool:
        if message is None:
            return False
        try:
            await self._messenger.reply(message, text)
        except DeliveryFailed as exc:
            logger.warning("Reply failed: %s", exc)
            return False
        return True

    async def _language_of(self, user_id: str) -> Locale:
        try:
            return await self._records.get_language(user_id)
        except StoreUnavailable as exc:
            logger.warning("Language lookup for %s failed, using default: %s", user_id, exc)
            return self._records.default_language

    async def _fail(self, user_id: str, message: Message | None, tag: str, exc: Exception) -> HandlerResult:
        logger.error("%s for user %s: %s", tag, user_id, exc)
        await self._reply(message, general_message("", await self._language_of(user_id)))
        return HandlerResult(False, user_id, tag, {"error": str(exc)})

    async def handle_follow(self, user_id: str, message: Message | None = None) -> HandlerResult:
        logger.info("User %s started the bot", user_id)
        profile = await self._messenger.get_profile(user_id)
        user = User(
            user_id=user_id,
            display_name=profile.display_name if profile else UNSET_PLACEHOLDER,
            picture_id=profile.picture_id if profile else None,
            status_message=profile.status_message if profile else None,
            language=self._records.default_language,
        )
        try:
            await self._records.save_user(user)
        except CheckinError as exc:
            logger.error("Saving user %s failed: %s", user_id, exc)
            return HandlerResult(False, user_id, "user_join_failed", {"error": str(exc)})

        language = await self._language_of(user_id)
        await self._reply(message, general_message(profile.display_name if profile else "", language))
        return HandlerResult(True, user_id, "user_joined")

    async def handle_unfollow(self, user_id: str) -> HandlerResult:
        logger.info("User %s blocked the bot", user_id)
        try:
            await self._records.touch_user(user_id, active=False)
        except CheckinError as exc:
            logger.error("Deactivating user %s failed: %s", user_id, exc)
            return HandlerResult(False, user_id, "user_left_failed", {"error": str(exc)})
        return HandlerResult(True, user_id, "user_left")

    async def handle_text(self, user_id: str, text: str, message: Message | None = None) -> HandlerResult:
        logger.info("Message from %s: %r", user_id, text)
        try:
            await self._records.touch_user(user_id, active=True)
        except CheckinError as exc:
            return await self._fail(user_id, message, "text_message_failed", exc)

        intent = classify_intent(text)
        if intent is Intent.COMPLETION:
            return await self.handle_completion(user_id, message)
        if intent is Intent.RANKING_QUERY:
            return await self.handle_ranking_query(user_id, message)
        if intent is Intent.LANGUAGE_SWITCH:
            return await self.handle_language_switch(user_id, LANGUAGE_TRIGGERS[text.strip()], message)
        return await self.handle_general_message(user_id, message)

    async def handle_completion(self, user_id: str, message: Message | None = None) -> HandlerResult:
        profile = await self._messenger.get_profile(user_id)
        display_name = profile.display_name if profile else FINISHER_PLACEHOLDER

        try:
            result = await self._ranking.record_completion(user_id)
        except CheckinError as exc:
            return await self._fail(user_id, message, "exercise_complete_failed", exc)

        language = await self._language_of(user_id)
        try:
            yesterday_rank = await self._aggregator.get_yesterday_rank(user_id)
        except StoreUnavailable as exc:
            logger.warning("Yesterday's rank for %s unavailable: %s", user_id, exc)
            yesterday_rank = 0

        await self._reply(message, record_reply(yesterday_rank, result.rank, language))
        logger.info("User %s (%s) finished with rank %d", user_id, display_name, result.rank)

        if result.is_first_today:
            self._reminders.dispatch_in_background(display_name)
        else:
            logger.info("%s repeated completion, no reminders sent", display_name)

        return HandlerResult(
            True,
            user_id,
            "exercise_completed",
            {"ranking": result.rank, "first_today": result.is_first_today},
        )

    async def handle_ranking_query(self, user_id: str, message: Message | None = None) -> HandlerResult:
        language = await self._language_of(user_id)
        try:
            roster = await self._aggregator.get_today_roster(language)
        except CheckinError as exc:
            return await self._fail(user_id, message, "ranking_query_failed", exc)

        await self._reply(message, ranking_reply(roster, language))
        return HandlerResult(True, user_id, "ranking_query", {"entries": len(roster)})

    async def handle_language_switch(
        self, user_id: str, locale: Locale, message: Message | None = None
    ) -> HandlerResult:
        try:
            await self._records.set_language(user_id, locale)
        except CheckinError as exc:
            return await self._fail(user_id, message, "language_switch_failed", exc)

        await self._reply(message, language_changed_message(locale))
        return HandlerResult(True, user_id, "language_switched", {"language": locale.value})

    async def handle_general_message(self, user_id: str, message: Message | None = None) -> HandlerResult:
        language = await self._language_of(user_id)
        await self._reply(message, general_message("", language))
        return HandlerResult(True, user_id, "general_reply")
