# key-value persistence used for per-device state such as the cart
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, Optional

from db.database import STORAGE_ERRORS, connect
from shop.errors import PersistenceFailure
from utils.logger import get_logger

_logger = get_logger(__name__)


class KeyValueStore(ABC):
    """get/set/delete of opaque byte values by string key."""

    @abstractmethod
    async def get(self, key: str) -> Optional[bytes]: ...

    @abstractmethod
    async def set(self, key: str, value: bytes) -> None: ...

    @abstractmethod
    async def delete(self, key: str) -> None: ...


class MemoryKeyValueStore(KeyValueStore):
    """Lives as long as the process; used for session-scoped state and tests."""

    def __init__(self, initial: Optional[Dict[str, bytes]] = None) -> None:
        self._data: Dict[str, bytes] = dict(initial or {})

    async def get(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    async def set(self, key: str, value: bytes) -> None:
        self._data[key] = bytes(value)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)


class SqliteKeyValueStore(KeyValueStore):
    """Stores values in the `kv` table of the local database."""

    async def get(self, key: str) -> Optional[bytes]:
        try:
            async with connect() as conn:
                cur = await conn.execute("SELECT value FROM kv WHERE key = ?;", (key,))
                row = await cur.fetchone()
                await cur.close()
        except STORAGE_ERRORS as exc:
            raise PersistenceFailure(f"Could not read {key!r}: {exc}") from exc
        if row is None:
            return None
        value = row[0]
        return value.encode("utf-8") if isinstance(value, str) else bytes(value)

    async def set(self, key: str, value: bytes) -> None:
        try:
            async with connect() as conn:
                await conn.execute(
                    "INSERT INTO kv(key, value) VALUES (?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value = excluded.value;",
                    (key, bytes(value)),
                )
                await conn.commit()
        except STORAGE_ERRORS as exc:
            _logger.error(f"Write of {key!r} failed: {exc}")
            raise PersistenceFailure(f"Could not write {key!r}: {exc}") from exc

    async def delete(self, key: str) -> None:
        try:
            async with connect() as conn:
                await conn.execute("DELETE FROM kv WHERE key = ?;", (key,))
                await conn.commit()
        except STORAGE_ERRORS as exc:
            raise PersistenceFailure(f"Could not delete {key!r}: {exc}") from exc
