from __future__ import annotations

import asyncio
import copy
from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any

Document = dict[str, Any]


def normalize_path(path: str) -> str:
    normalized = "/".join(part for part in path.strip().split("/") if part)
    if not normalized:
        raise ValueError("document path must not be empty")
    return normalized


def build_subtree(path: str, rows: Iterable[tuple[str, Document]]) -> Document | None:
    """Fold flat (path, value) rows at or below ``path`` into one nested document.

    Children are nested under their relative path segments; a row stored at
    ``path`` itself supplies the top-level fields.
    """
    tree: Document | None = None
    prefix = f"{path}/"
    for row_path, value in sorted(rows, key=lambda row: row[0].count("/")):
        if tree is None:
            tree = {}
        if row_path == path:
            tree.update(copy.deepcopy(value))
            continue
        if not row_path.startswith(prefix):
            continue
        node = tree
        *parents, leaf = row_path[len(prefix):].split("/")
        for segment in parents:
            child = node.get(segment)
            if not isinstance(child, dict):
                child = {}
                node[segment] = child
            node = child
        existing = node.get(leaf)
        merged = existing if isinstance(existing, dict) else {}
        merged.update(copy.deepcopy(value))
        node[leaf] = merged
    return tree


class DocumentStore(ABC):
    """Path-addressed document tree, e.g. ``users/{id}/data/{date}``."""

    @abstractmethod
    async def get(self, path: str) -> Document | None:
        """Return the document at ``path`` with its children nested, or None."""

    @abstractmethod
    async def set(self, path: str, value: Document) -> None:
        """Replace the whole subtree at ``path``."""

    @abstractmethod
    async def update(self, path: str, fields: Document) -> None:
        """Merge ``fields`` into the document at ``path``, creating it if absent."""

    @abstractmethod
    async def increment(self, path: str, field: str, amount: int = 1) -> int:
        """Atomically add ``amount`` to an integer field and return the new value."""

    async def close(self) -> None:
        return None


class MemoryDocumentStore(DocumentStore):
    def __init__(self) -> None:
        self._rows: dict[str, Document] = {}
        self._lock = asyncio.Lock()

    def _subtree_rows(self, path: str) -> list[tuple[str, Document]]:
        prefix = f"{path}/"
        return [
            (row_path, value)
            for row_path, value in self._rows.items()
            if row_path == path or row_path.startswith(prefix)
        ]

    async def get(self, path: str) -> Document | None:
        path = normalize_path(path)
        return build_subtree(path, self._subtree_rows(path))

    async def set(self, path: str, value: Document) -> None:
        path = normalize_path(path)
        async with self._lock:
            for row_path, _ in self._subtree_rows(path):
                del self._rows[row_path]
            self._rows[path] = copy.deepcopy(value)

    async def update(self, path: str, fields: Document) -> None:
        path = normalize_path(path)
        async with self._lock:
            row = self._rows.setdefault(path, {})
            row.update(copy.deepcopy(fields))

    async def increment(self, path: str, field: str, amount: int = 1) -> int:
        path = normalize_path(path)
        async with self._lock:
            row = self._rows.setdefault(path, {})
            row[field] = int(row.get(field, 0)) + amount
            return row[field]
