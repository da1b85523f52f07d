# table-scoped persistence: the contract shared by the local sqlite db and the remote table api
from __future__ import annotations

import json
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from db.database import STORAGE_ERRORS, connect
from shop.errors import PersistenceFailure
from utils.logger import get_logger

_logger = get_logger(__name__)

Row = Dict[str, Any]

# known tables and their columns; identifiers never come from user input unchecked
SCHEMA: Dict[str, tuple] = {
    "products": (
        "id",
        "title",
        "price",
        "offer_price",
        "offer_expires",
        "image_url",
        "stock",
        "category",
        "created_at",
    ),
    "users": (
        "email",
        "name",
        "phone",
        "password_hash",
        "role",
        "approved",
        "created_at",
    ),
    "orders": (
        "id",
        "created_at",
        "status",
        "customer_name",
        "customer_phone",
        "customer_email",
        "customer_address",
        "notes",
        "items",
        "total",
    ),
    "messages": ("id", "name", "email", "body", "date", "status"),
    "profile_updates": ("id", "email", "changes", "date"),
    "content": ("id", "about_us", "contact_info"),
}

JSON_COLUMNS = {("orders", "items"), ("profile_updates", "changes")}


class TableStore(ABC):
    """
    select/insert/update/delete on named tables, filtered by column equality.
    Every method raises PersistenceFailure when the backing store fails.
    """

    @abstractmethod
    async def select(
        self,
        table: str,
        where: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Row]: ...

    @abstractmethod
    async def insert(self, table: str, row: Mapping[str, Any]) -> Row: ...

    @abstractmethod
    async def update(
        self, table: str, values: Mapping[str, Any], where: Mapping[str, Any]
    ) -> int: ...

    @abstractmethod
    async def delete(self, table: str, where: Mapping[str, Any]) -> int: ...

    async def select_one(
        self, table: str, where: Mapping[str, Any]
    ) -> Optional[Row]:
        rows = await self.select(table, where=where, limit=1)
        return rows[0] if rows else None


def check_columns(table: str, columns) -> None:
    """Raise ValueError for a table or column outside SCHEMA."""
    if table not in SCHEMA:
        raise ValueError(f"Unknown table {table!r}.")
    unknown = [c for c in columns if c not in SCHEMA[table]]
    if unknown:
        raise ValueError(f"Unknown column(s) {unknown} for table {table!r}.")


class SqliteTableStore(TableStore):
    """TableStore over the local aiosqlite database."""

    @staticmethod
    def _encode(table: str, column: str, value: Any) -> Any:
        if (table, column) in JSON_COLUMNS and value is not None:
            return json.dumps(value)
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, datetime):
            return value.isoformat()
        return value

    @staticmethod
    def _decode(table: str, row) -> Row:
        out = dict(row)
        for column in out:
            if (table, column) in JSON_COLUMNS and isinstance(out[column], str):
                out[column] = json.loads(out[column])
        return out

    @staticmethod
    def _where(where: Optional[Mapping[str, Any]]) -> tuple:
        if not where:
            return "", []
        clause = " AND ".join(f"{col} = ?" for col in where)
        return f" WHERE {clause}", list(where.values())

    async def select(
        self,
        table: str,
        where: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Row]:
        check_columns(table, list(where or {}) + ([order_by] if order_by else []))
        where_sql, params = self._where(
            {k: self._encode(table, k, v) for k, v in (where or {}).items()}
        )
        sql = f"SELECT * FROM {table}{where_sql}"
        if order_by:
            sql += f" ORDER BY {order_by} {'DESC' if descending else 'ASC'}"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))

        try:
            async with connect() as conn:
                cur = await conn.execute(sql + ";", tuple(params))
                rows = await cur.fetchall()
                await cur.close()
        except STORAGE_ERRORS as exc:
            raise PersistenceFailure(f"Could not read {table}: {exc}") from exc
        return [self._decode(table, row) for row in rows]

    async def insert(self, table: str, row: Mapping[str, Any]) -> Row:
        check_columns(table, row)
        columns = list(row)
        values = [self._encode(table, c, row[c]) for c in columns]
        placeholders = ", ".join("?" for _ in columns)
        try:
            async with connect() as conn:
                cur = await conn.execute(
                    f"INSERT INTO {table}({', '.join(columns)}) VALUES ({placeholders});",
                    tuple(values),
                )
                rowid = cur.lastrowid
                await cur.close()
                cur = await conn.execute(
                    f"SELECT * FROM {table} WHERE rowid = ?;", (rowid,)
                )
                stored = await cur.fetchone()
                await cur.close()
                await conn.commit()
        except STORAGE_ERRORS as exc:
            _logger.error(f"Insert into {table} failed: {exc}")
            raise PersistenceFailure(f"Could not write {table}: {exc}") from exc
        return self._decode(table, stored)

    async def update(
        self, table: str, values: Mapping[str, Any], where: Mapping[str, Any]
    ) -> int:
        if not values:
            return 0
        check_columns(table, list(values) + list(where))
        set_sql = ", ".join(f"{col} = ?" for col in values)
        set_params = [self._encode(table, c, v) for c, v in values.items()]
        where_sql, where_params = self._where(
            {k: self._encode(table, k, v) for k, v in where.items()}
        )
        try:
            async with connect() as conn:
                cur = await conn.execute(
                    f"UPDATE {table} SET {set_sql}{where_sql};",
                    tuple(set_params + where_params),
                )
                count = cur.rowcount
                await cur.close()
                await conn.commit()
        except STORAGE_ERRORS as exc:
            _logger.error(f"Update of {table} failed: {exc}")
            raise PersistenceFailure(f"Could not write {table}: {exc}") from exc
        return count

    async def delete(self, table: str, where: Mapping[str, Any]) -> int:
        check_columns(table, where)
        where_sql, params = self._where(
            {k: self._encode(table, k, v) for k, v in where.items()}
        )
        try:
            async with connect() as conn:
                cur = await conn.execute(f"DELETE FROM {table}{where_sql};", tuple(params))
                count = cur.rowcount
                await cur.close()
                await conn.commit()
        except STORAGE_ERRORS as exc:
            _logger.error(f"Delete from {table} failed: {exc}")
            raise PersistenceFailure(f"Could not write {table}: {exc}") from exc
        return count
