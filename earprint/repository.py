"""
Earprint — Key-value repository

Everything Earprint persists (signatures, rule sets, the collection, spectrum
pins, experience notes, API keys) is a JSON document under a namespaced
string key.  Services receive a ``KeyValueRepository`` rather than touching
a global store, so the same code runs against SQLite/Postgres in the app and
against ``InMemoryRepository`` in tests.

Writes are all-or-nothing: a ``put`` either replaces the whole document or
leaves the previous one untouched.
"""

from __future__ import annotations

import copy
from typing import Any, AsyncGenerator, Protocol, runtime_checkable

import structlog
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from earprint.database import get_db
from earprint.models.kv_entry import KeyValueEntry

logger = structlog.get_logger("earprint.repository")


@runtime_checkable
class KeyValueRepository(Protocol):
    """Minimal async document store used by every Earprint store class."""

    async def get(self, key: str) -> Any | None: ...

    async def put(self, key: str, value: Any) -> None: ...

    async def delete(self, key: str) -> None: ...


class InMemoryRepository:
    """Dict-backed repository.  Values are deep-copied on the way in and
    out so callers can never mutate stored state by reference."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}

    async def get(self, key: str) -> Any | None:
        if key not in self._data:
            return None
        return copy.deepcopy(self._data[key])

    async def put(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class SqlKeyValueRepository:
    """Repository over the ``kv_entries`` table.

    Commit/rollback is owned by the session provider (``get_db``), so a
    request either persists all of its writes or none of them.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, key: str) -> Any | None:
        entry = await self._session.get(KeyValueEntry, key)
        return None if entry is None else entry.value

    async def put(self, key: str, value: Any) -> None:
        entry = await self._session.get(KeyValueEntry, key)
        if entry is None:
            self._session.add(KeyValueEntry(key=key, value=value))
        else:
            entry.value = value
        await self._session.flush()
        logger.debug("kv_put", key=key)

    async def delete(self, key: str) -> None:
        entry = await self._session.get(KeyValueEntry, key)
        if entry is not None:
            await self._session.delete(entry)
            await self._session.flush()
            logger.debug("kv_delete", key=key)


# ------------------------------------------------------------------ #
# FastAPI dependency
# ------------------------------------------------------------------ #

async def get_repository(
    db: AsyncSession = Depends(get_db),
) -> AsyncGenerator[KeyValueRepository, None]:
    """Yield a SQL-backed repository bound to the request's session."""
    yield SqlKeyValueRepository(db)
