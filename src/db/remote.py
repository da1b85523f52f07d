"""Supabase (PostgREST) implementation of the table store."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

import httpx

from db.tables import Row, TableStore, check_columns
from shop.errors import PersistenceFailure
from utils.logger import get_logger

_logger = get_logger(__name__)


class SupabaseTableStore(TableStore):
    """Talks to the REST endpoint of a Supabase project."""

    REST_PATH = "/rest/v1"

    def __init__(
        self,
        url: str,
        api_key: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 15.0,
    ) -> None:
        """
        Initialize the store.

        Args:
            url: project url, e.g. https://xyz.supabase.co
            api_key: anon or service key of the project
            client: preconfigured client (tests pass one with a mock transport)
            timeout: request timeout in seconds
        """
        self.client = client or httpx.AsyncClient(
            base_url=url.rstrip("/") + self.REST_PATH,
            timeout=timeout,
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Accept": "application/json",
            },
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    @staticmethod
    def _value(value: Any) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, datetime):
            return value.isoformat()
        if value is None:
            return "null"
        return str(value)

    @classmethod
    def _filters(cls, where: Optional[Mapping[str, Any]]) -> Dict[str, str]:
        params = {}
        for column, value in (where or {}).items():
            op = "is" if value is None else "eq"
            params[column] = f"{op}.{cls._value(value)}"
        return params

    @staticmethod
    def _body(row: Mapping[str, Any]) -> Dict[str, Any]:
        return {
            k: v.isoformat() if isinstance(v, datetime) else v for k, v in row.items()
        }

    async def _request(
        self,
        method: str,
        table: str,
        params: Dict[str, str],
        json_body: Any = None,
        prefer: Optional[str] = None,
    ) -> List[Row]:
        headers = {"Prefer": prefer} if prefer else None
        try:
            response = await self.client.request(
                method, f"/{table}", params=params, json=json_body, headers=headers
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            _logger.error(
                f"{method} {table} rejected with {exc.response.status_code}: "
                f"{exc.response.text[:200]}"
            )
            raise PersistenceFailure(
                f"{method} {table} failed with status {exc.response.status_code}."
            ) from exc
        except httpx.HTTPError as exc:
            _logger.error(f"{method} {table} failed: {exc}")
            raise PersistenceFailure(f"{method} {table} failed: {exc}") from exc

        if not response.content:
            return []
        data = response.json()
        return data if isinstance(data, list) else [data]

    async def select(
        self,
        table: str,
        where: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Row]:
        check_columns(table, list(where or {}) + ([order_by] if order_by else []))
        params = {"select": "*", **self._filters(where)}
        if order_by:
            params["order"] = f"{order_by}.{'desc' if descending else 'asc'}"
        if limit is not None:
            params["limit"] = str(int(limit))
        return await self._request("GET", table, params)

    async def insert(self, table: str, row: Mapping[str, Any]) -> Row:
        check_columns(table, row)
        rows = await self._request(
            "POST", table, {}, [self._body(row)], prefer="return=representation"
        )
        if not rows:
            raise PersistenceFailure(f"Insert into {table} returned no row.")
        return rows[0]

    async def update(
        self, table: str, values: Mapping[str, Any], where: Mapping[str, Any]
    ) -> int:
        if not values:
            return 0
        check_columns(table, list(values) + list(where))
        rows = await self._request(
            "PATCH",
            table,
            self._filters(where),
            self._body(values),
            prefer="return=representation",
        )
        return len(rows)

    async def delete(self, table: str, where: Mapping[str, Any]) -> int:
        check_columns(table, where)
        rows = await self._request(
            "DELETE", table, self._filters(where), prefer="return=representation"
        )
        return len(rows)
