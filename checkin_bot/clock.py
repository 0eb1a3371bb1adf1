from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from checkin_bot.messages import Locale

DEFAULT_TIMEZONE = "Asia/Taipei"

_MERIDIEM = {
    Locale.ZH_TW: ("上午", "下午", "點"),
    Locale.JA_JP: ("午前", "午後", "時"),
}


class Clock:
    """Civil dates in one fixed zone, whatever the host clock is set to."""

    def __init__(
        self,
        timezone: str = DEFAULT_TIMEZONE,
        now_fn: Callable[[], datetime] | None = None,
    ) -> None:
        self.zone = ZoneInfo(timezone)
        self._now_fn = now_fn or (lambda: datetime.now(self.zone))

    def now(self) -> datetime:
        current = self._now_fn()
        if current.tzinfo is None:
            return current.replace(tzinfo=self.zone)
        return current.astimezone(self.zone)

    def civil_date(self, instant: datetime) -> str:
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=self.zone)
        return instant.astimezone(self.zone).date().isoformat()

    def today(self) -> str:
        return self.civil_date(self.now())

    def yesterday(self) -> str:
        return (self.now().date() - timedelta(days=1)).isoformat()

    def format_time(self, instant: datetime, locale: Locale = Locale.ZH_TW) -> str:
        local = instant.astimezone(self.zone) if instant.tzinfo else instant.replace(tzinfo=self.zone)
        am, pm, suffix = _MERIDIEM[locale]
        hour = local.hour % 12 or 12
        return f"{am if local.hour < 12 else pm}{hour}{suffix}"
