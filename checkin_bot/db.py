from __future__ import annotations

import logging

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from checkin_bot.errors import StoreUnavailable
from checkin_bot.store import (
    Document,
    DocumentStore,
    MemoryDocumentStore,
    build_subtree,
    normalize_path,
)

logger = logging.getLogger(__name__)


def _like_prefix(path: str) -> str:
    escaped = path.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"{escaped}/%"


class PostgresDocumentStore(DocumentStore):
    """Document tree kept as one JSONB row per path in a ``documents`` table."""

    def __init__(self, database_url: str) -> None:
        self.database_url = database_url
        self._schema_ready = False

    async def _connect(self) -> psycopg.AsyncConnection:
        conn = await psycopg.AsyncConnection.connect(self.database_url, row_factory=dict_row)
        if not self._schema_ready:
            try:
                await self._init_db(conn)
            except psycopg.Error:
                await conn.close()
                raise
        return conn

    async def _init_db(self, conn: psycopg.AsyncConnection) -> None:
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS documents (
                path TEXT PRIMARY KEY,
                value JSONB NOT NULL DEFAULT '{}'::jsonb
            )
            """
        )
        await conn.commit()
        self._schema_ready = True

    async def get(self, path: str) -> Document | None:
        path = normalize_path(path)
        try:
            async with await self._connect() as conn:
                cur = await conn.execute(
                    "SELECT path, value FROM documents WHERE path = %s OR path LIKE %s",
                    (path, _like_prefix(path)),
                )
                rows = await cur.fetchall()
        except psycopg.Error as exc:
            logger.error("Reading %s failed: %s", path, exc)
            raise StoreUnavailable(f"read {path}") from exc
        return build_subtree(path, [(str(row["path"]), dict(row["value"])) for row in rows])

    async def set(self, path: str, value: Document) -> None:
        path = normalize_path(path)
        try:
            async with await self._connect() as conn:
                await conn.execute("DELETE FROM documents WHERE path LIKE %s", (_like_prefix(path),))
                # overlapping writes to the same path both land; the last one wins
                await conn.execute(
                    """
                    INSERT INTO documents (path, value) VALUES (%s, %s)
                    ON CONFLICT (path) DO UPDATE SET value = excluded.value
                    """,
                    (path, Jsonb(value)),
                )
        except psycopg.Error as exc:
            logger.error("Writing %s failed: %s", path, exc)
            raise StoreUnavailable(f"write {path}") from exc

    async def update(self, path: str, fields: Document) -> None:
        path = normalize_path(path)
        try:
            async with await self._connect() as conn:
                await conn.execute(
                    """
                    INSERT INTO documents (path, value) VALUES (%s, %s)
                    ON CONFLICT (path) DO UPDATE SET value = documents.value || excluded.value
                    """,
                    (path, Jsonb(fields)),
                )
        except psycopg.Error as exc:
            logger.error("Updating %s failed: %s", path, exc)
            raise StoreUnavailable(f"update {path}") from exc

    async def increment(self, path: str, field: str, amount: int = 1) -> int:
        path = normalize_path(path)
        try:
            async with await self._connect() as conn:
                cur = await conn.execute(
                    """
                    INSERT INTO documents (path, value)
                    VALUES (%(path)s, jsonb_build_object(%(field)s::text, %(amount)s::bigint))
                    ON CONFLICT (path) DO UPDATE SET value = documents.value || jsonb_build_object(
                        %(field)s::text,
                        COALESCE((documents.value ->> %(field)s::text)::bigint, 0) + %(amount)s::bigint
                    )
                    RETURNING (value ->> %(field)s::text)::bigint AS counter
                    """,
                    {"path": path, "field": field, "amount": amount},
                )
                row = await cur.fetchone()
        except psycopg.Error as exc:
            logger.error("Incrementing %s.%s failed: %s", path, field, exc)
            raise StoreUnavailable(f"increment {path}") from exc
        return int(row["counter"])


def open_store(database_url: str) -> DocumentStore:
    if database_url:
        return PostgresDocumentStore(database_url)
    logger.warning("DATABASE_URL not set, check-ins are kept in memory only")
    return MemoryDocumentStore()
