from __future__ import annotations

import logging
from dataclasses import dataclass

from telegram import Bot, Message
from telegram.error import TelegramError

from checkin_bot.errors import DeliveryFailed, ProfileUnavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Profile:
    display_name: str
    picture_id: str | None = None
    status_message: str | None = None


class Messenger:
    """Outbound side of the Telegram Bot API."""

    def __init__(self, bot: Bot) -> None:
        self._bot = bot

    async def reply(self, message: Message, text: str) -> None:
        try:
            await message.reply_text(text)
        except TelegramError as exc:
            raise DeliveryFailed(str(message.chat_id), str(exc)) from exc

    async def push(self, user_id: str, text: str) -> None:
        try:
            await self._bot.send_message(chat_id=int(user_id), text=text)
        except TelegramError as exc:
            raise DeliveryFailed(user_id, str(exc)) from exc

    async def fetch_profile(self, user_id: str) -> Profile:
        try:
            chat = await self._bot.get_chat(chat_id=int(user_id))
        except TelegramError as exc:
            raise ProfileUnavailable(f"profile of {user_id}: {exc}") from exc
        name = chat.full_name or chat.username or chat.title
        if not name:
            raise ProfileUnavailable(f"profile of {user_id} has no name")
        return Profile(
            display_name=name,
            picture_id=chat.photo.big_file_id if chat.photo else None,
            status_message=chat.bio,
        )

    async def get_profile(self, user_id: str) -> Profile | None:
        """Profile lookup that degrades to None; callers use a placeholder name."""
        try:
            return await self.fetch_profile(user_id)
        except ProfileUnavailable as exc:
            logger.warning("Profile lookup failed: %s", exc)
            return None
