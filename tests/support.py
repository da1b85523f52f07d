import asyncio
import os
import sys
import tempfile
import unittest
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional

# Ensure project src/ is on sys.path for imports
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
src_path = os.path.join(ROOT, "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from db import database as db_database  # noqa: E402
from db.kvstore import MemoryKeyValueStore  # noqa: E402
from db.models import Product, Role, User  # noqa: E402
from db.tables import Row, SqliteTableStore, TableStore  # noqa: E402
from shop.errors import PersistenceFailure  # noqa: E402
from shop.session import SessionContext  # noqa: E402

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class Clock:
    """Settable clock handed to the services instead of utcnow."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def make_product(pid=1, price=250000, stock=10, offer_price=None, offer_expires_at=None, **kw):
    return Product(
        id=pid,
        title=kw.pop("title", f"Product {pid}"),
        price=price,
        stock=stock,
        category=kw.pop("category", "Tools"),
        image=kw.pop("image", ""),
        offer_price=offer_price,
        offer_expires_at=offer_expires_at,
    )


def staff_session(email="owner@biltone.com", role=Role.OWNER, approved=True):
    """A session already bound to a back-office user."""
    return SessionContext(user=User(email=email, name="Staff", role=role, approved=approved))


class FlakyKeyValueStore(MemoryKeyValueStore):
    """Memory store whose reads/writes can be switched to fail."""

    def __init__(self, initial=None) -> None:
        super().__init__(initial)
        self.fail_reads = False
        self.fail_writes = False
        self.writes = 0

    async def get(self, key: str) -> Optional[bytes]:
        if self.fail_reads:
            raise PersistenceFailure("read refused")
        return await super().get(key)

    async def set(self, key: str, value: bytes) -> None:
        if self.fail_writes:
            raise PersistenceFailure("write refused")
        self.writes += 1
        await super().set(key, value)


class StalledKeyValueStore(MemoryKeyValueStore):
    """Writes wait for `release`; `entered` is set once a write is under way."""

    def __init__(self) -> None:
        super().__init__()
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def set(self, key: str, value: bytes) -> None:
        self.entered.set()
        await self.release.wait()
        await super().set(key, value)


class BrokenTableStore(TableStore):
    """Every call fails as an unreachable backend would."""

    async def select(self, table, where=None, order_by=None, descending=False, limit=None) -> List[Row]:
        raise PersistenceFailure(f"select {table} refused")

    async def insert(self, table: str, row: Mapping[str, Any]) -> Row:
        raise PersistenceFailure(f"insert {table} refused")

    async def update(self, table, values, where) -> int:
        raise PersistenceFailure(f"update {table} refused")

    async def delete(self, table, where) -> int:
        raise PersistenceFailure(f"delete {table} refused")


class FailingInsertStore(SqliteTableStore):
    """Reads work, inserts into the named table fail."""

    def __init__(self, table: str) -> None:
        self.table = table

    async def insert(self, table: str, row: Mapping[str, Any]) -> Row:
        if table == self.table:
            raise PersistenceFailure(f"insert {table} refused")
        return await super().insert(table, row)


class TempDatabaseTestCase(unittest.IsolatedAsyncioTestCase):
    """Points the local database at a fresh temporary file per test."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self.temp_dir.name, "test.sqlite")
        self._orig_db_path = db_database.DB_PATH
        db_database.DB_PATH = self.db_path
        db_database._initialized = False
        self.store = SqliteTableStore()

    def tearDown(self):
        db_database.DB_PATH = self._orig_db_path
        db_database._initialized = False
        self.temp_dir.cleanup()
