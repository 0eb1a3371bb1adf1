from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from checkin_bot.messages import UNSET_PLACEHOLDER, Locale
from checkin_bot.store import Document, DocumentStore

logger = logging.getLogger(__name__)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class DailyRecord:
    finished: bool
    rank: int
    timestamp: str

    @classmethod
    def from_document(cls, doc: Document) -> DailyRecord:
        rank = doc.get("ranking")
        return cls(
            finished=bool(doc.get("finish", False)),
            rank=rank if isinstance(rank, int) else 0,
            timestamp=str(doc.get("timestamp", "")),
        )

    def to_document(self) -> Document:
        return {"finish": self.finished, "ranking": self.rank, "timestamp": self.timestamp}

    @property
    def finished_at(self) -> datetime | None:
        try:
            return datetime.fromisoformat(self.timestamp)
        except ValueError:
            return None


@dataclass(frozen=True)
class User:
    user_id: str
    display_name: str = UNSET_PLACEHOLDER
    picture_id: str | None = None
    status_message: str | None = None
    is_active: bool = True
    language: Locale = Locale.ZH_TW
    joined_at: str = ""
    last_active_at: str = ""
    records: dict[str, DailyRecord] = field(default_factory=dict)

    @classmethod
    def from_document(cls, user_id: str, doc: Document, default_language: Locale = Locale.ZH_TW) -> User:
        records = {
            date: DailyRecord.from_document(value)
            for date, value in (doc.get("data") or {}).items()
            if isinstance(value, dict)
        }
        return cls(
            user_id=user_id,
            display_name=str(doc.get("displayName") or UNSET_PLACEHOLDER),
            picture_id=doc.get("pictureId"),
            status_message=doc.get("statusMessage"),
            is_active=bool(doc.get("isActive", False)),
            language=Locale.parse(doc.get("language"), default_language),
            joined_at=str(doc.get("joinedAt", "")),
            last_active_at=str(doc.get("lastActiveAt", "")),
            records=records,
        )

    def to_document(self) -> Document:
        return {
            "displayName": self.display_name,
            "pictureId": self.picture_id,
            "statusMessage": self.status_message,
            "isActive": self.is_active,
            "language": self.language.value,
            "joinedAt": self.joined_at,
            "lastActiveAt": self.last_active_at,
        }

    def finished_on(self, date: str) -> DailyRecord | None:
        record = self.records.get(date)
        if record is not None and record.finished:
            return record
        return None


_USER_FIELDS = {
    "display_name": "displayName",
    "picture_id": "pictureId",
    "status_message": "statusMessage",
    "is_active": "isActive",
    "language": "language",
    "joined_at": "joinedAt",
    "last_active_at": "lastActiveAt",
}


class RecordStore:
    """The only reader and writer of user documents and daily records.

    Every method may raise ``StoreUnavailable``; nothing is retried here.
    """

    def __init__(self, store: DocumentStore, default_language: Locale = Locale.ZH_TW) -> None:
        self._store = store
        self._default_language = default_language

    @property
    def default_language(self) -> Locale:
        return self._default_language

    @staticmethod
    def _user_path(user_id: str) -> str:
        return f"users/{user_id}"

    @staticmethod
    def _record_path(user_id: str, date: str) -> str:
        return f"users/{user_id}/data/{date}"

    async def get_daily_record(self, user_id: str, date: str) -> DailyRecord | None:
        doc = await self._store.get(self._record_path(user_id, date))
        return DailyRecord.from_document(doc) if doc is not None else None

    async def set_daily_record(self, user_id: str, date: str, record: DailyRecord) -> None:
        await self._store.set(self._record_path(user_id, date), record.to_document())

    async def get_user(self, user_id: str) -> User | None:
        doc = await self._store.get(self._user_path(user_id))
        if doc is None:
            return None
        return User.from_document(user_id, doc, self._default_language)

    async def list_users(self) -> dict[str, User]:
        tree = await self._store.get("users") or {}
        return {
            user_id: User.from_document(user_id, doc, self._default_language)
            for user_id, doc in tree.items()
            if isinstance(doc, dict)
        }

    async def update_user(self, user_id: str, **fields: object) -> None:
        unknown = set(fields) - set(_USER_FIELDS)
        if unknown:
            raise ValueError(f"unknown user fields: {', '.join(sorted(unknown))}")
        doc = {
            _USER_FIELDS[name]: value.value if isinstance(value, Locale) else value
            for name, value in fields.items()
        }
        await self._store.update(self._user_path(user_id), doc)

    async def save_user(self, user: User) -> bool:
        """Create the user on first contact; returns False when it already existed."""
        if await self._store.get(self._user_path(user.user_id)) is not None:
            await self.touch_user(user.user_id, True)
            logger.info("User %s already known, activity refreshed", user.user_id)
            return False
        now = _utc_now_iso()
        doc = user.to_document()
        doc["joinedAt"] = user.joined_at or now
        doc["lastActiveAt"] = user.last_active_at or now
        await self._store.update(self._user_path(user.user_id), doc)
        logger.info("New user %s joined", user.user_id)
        return True

    async def touch_user(self, user_id: str, active: bool = True) -> None:
        await self.update_user(user_id, last_active_at=_utc_now_iso(), is_active=active)

    async def set_language(self, user_id: str, locale: Locale) -> None:
        await self.update_user(user_id, language=locale, last_active_at=_utc_now_iso())
        logger.info("User %s language set to %s", user_id, locale.value)

    async def get_language(self, user_id: str) -> Locale:
        user = await self.get_user(user_id)
        return user.language if user is not None else self._default_language

    async def next_rank(self, date: str) -> int:
        return await self._store.increment(f"counters/{date}", "nextRank")

    async def count_finished(self, date: str) -> int:
        users = await self.list_users()
        return sum(1 for user in users.values() if user.finished_on(date) is not None)
