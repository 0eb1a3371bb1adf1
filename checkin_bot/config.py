from __future__ import annotations

import os
from dataclasses import dataclass
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from checkin_bot.messages import Locale


load_dotenv()


@dataclass(frozen=True)
class Settings:
    telegram_bot_token: str
    database_url: str
    timezone: str
    default_language: Locale
    log_level: str
    webhook_secret: str


def load_settings() -> Settings:
    token = os.getenv("TELEGRAM_BOT_TOKEN", "").strip()
    timezone = os.getenv("CHECKIN_TIMEZONE", "Asia/Taipei").strip()
    language = os.getenv("DEFAULT_LANGUAGE", Locale.ZH_TW.value).strip()

    if not token:
        raise ValueError("Missing TELEGRAM_BOT_TOKEN in .env")
    try:
        ZoneInfo(timezone)
    except ZoneInfoNotFoundError as exc:
        raise ValueError(f"CHECKIN_TIMEZONE is not a known time zone: {timezone}") from exc
    try:
        default_language = Locale(language)
    except ValueError as exc:
        supported = ", ".join(locale.value for locale in Locale)
        raise ValueError(f"DEFAULT_LANGUAGE must be one of: {supported}") from exc

    return Settings(
        telegram_bot_token=token,
        database_url=os.getenv("DATABASE_URL", "").strip(),
        timezone=timezone,
        default_language=default_language,
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
        webhook_secret=os.getenv("TELEGRAM_WEBHOOK_SECRET", "").strip(),
    )
