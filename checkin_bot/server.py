from __future__ import annotations

from telegram import Update

from checkin_bot.bot import BotConfig, CheckinBot
from checkin_bot.config import load_settings
from checkin_bot.db import open_store

_bot_instance: CheckinBot | None = None
_initialized = False


def get_bot_instance() -> CheckinBot:
    global _bot_instance
    if _bot_instance is None:
        settings = load_settings()
        _bot_instance = CheckinBot(
            token=settings.telegram_bot_token,
            store=open_store(settings.database_url),
            config=BotConfig(
                timezone=settings.timezone,
                default_language=settings.default_language,
            ),
        )
    return _bot_instance


async def ensure_initialized() -> CheckinBot:
    global _initialized
    bot = get_bot_instance()
    if not _initialized:
        await bot.app.initialize()
        _initialized = True
    return bot


async def process_telegram_update(payload: dict) -> None:
    bot = await ensure_initialized()
    update = Update.de_json(payload, bot.app.bot)
    await bot.app.process_update(update)
    # The webhook runs each request in its own event loop; reminder batches
    # must finish before that loop closes.
    await bot.reminders.drain()
