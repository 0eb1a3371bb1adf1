from __future__ import annotations

import logging
from dataclasses import dataclass

from telegram import ChatMember, Update
from telegram.constants import ChatType
from telegram.ext import (
    Application,
    ChatMemberHandler,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from checkin_bot.clock import DEFAULT_TIMEZONE, Clock
from checkin_bot.handlers import CheckinHandlers, HandlerResult
from checkin_bot.messages import Locale
from checkin_bot.messenger import Messenger
from checkin_bot.ranking import RankingEngine
from checkin_bot.records import RecordStore
from checkin_bot.reminders import ReminderDispatcher
from checkin_bot.roster import DailyAggregator
from checkin_bot.store import DocumentStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BotConfig:
    timezone: str = DEFAULT_TIMEZONE
    default_language: Locale = Locale.ZH_TW


LEFT_STATUSES = {ChatMember.BANNED, ChatMember.LEFT}


class CheckinBot:
    def __init__(self, token: str, store: DocumentStore, config: BotConfig) -> None:
        self._store = store
        self._config = config
        self.app = (
            Application.builder()
            .token(token)
            .concurrent_updates(True)
            .post_shutdown(self._post_shutdown)
            .build()
        )

        self.clock = Clock(config.timezone)
        self.records = RecordStore(store, config.default_language)
        self.messenger = Messenger(self.app.bot)
        self.aggregator = DailyAggregator(self.records, self.clock)
        self.reminders = ReminderDispatcher(self.aggregator, self.messenger)
        self.handlers = CheckinHandlers(
            records=self.records,
            ranking=RankingEngine(self.records, self.clock),
            aggregator=self.aggregator,
            reminders=self.reminders,
            messenger=self.messenger,
        )
        self._register_handlers()

    def _register_handlers(self) -> None:
        self.app.add_handler(CommandHandler("start", self.start))
        self.app.add_handler(CommandHandler("help", self.help))
        self.app.add_handler(CommandHandler("done", self.done))
        self.app.add_handler(CommandHandler("ranking", self.ranking))
        self.app.add_handler(ChatMemberHandler(self.on_membership, ChatMemberHandler.MY_CHAT_MEMBER))
        self.app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, self.on_text))

    async def _post_shutdown(self, app: Application) -> None:
        await self.reminders.drain()
        await self._store.close()

    @staticmethod
    def _user_id(update: Update) -> str | None:
        user = update.effective_user
        return str(user.id) if user else None

    @staticmethod
    def _log_result(result: HandlerResult) -> None:
        if result.success:
            logger.info("%s: %s %s", result.user_id, result.message, result.extra or "")
        else:
            logger.warning("%s: %s %s", result.user_id, result.message, result.extra or "")

    async def start(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        user_id = self._user_id(update)
        if user_id is None:
            return
        self._log_result(await self.handlers.handle_follow(user_id, update.message))

    async def help(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        user_id = self._user_id(update)
        if user_id is None:
            return
        self._log_result(await self.handlers.handle_text(user_id, "", update.message))

    async def done(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        user_id = self._user_id(update)
        if user_id is None:
            return
        self._log_result(await self.handlers.handle_text(user_id, "/done", update.message))

    async def ranking(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        user_id = self._user_id(update)
        if user_id is None:
            return
        self._log_result(await self.handlers.handle_text(user_id, "/ranking", update.message))

    async def on_text(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        user_id = self._user_id(update)
        if user_id is None or update.message is None:
            return
        text = (update.message.text or "").strip()
        if not text:
            return
        self._log_result(await self.handlers.handle_text(user_id, text, update.message))

    async def on_membership(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        change = update.my_chat_member
        user_id = self._user_id(update)
        if change is None or user_id is None or change.chat.type != ChatType.PRIVATE:
            return

        status = change.new_chat_member.status
        if status in LEFT_STATUSES:
            self._log_result(await self.handlers.handle_unfollow(user_id))
        elif change.old_chat_member.status in LEFT_STATUSES:
            self._log_result(await self.handlers.handle_follow(user_id))

    def run(self) -> None:
        self.app.run_polling(allowed_updates=Update.ALL_TYPES)
