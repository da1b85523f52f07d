"""Contact messages from customers and the editable about-us content."""

from __future__ import annotations

from typing import Dict, List, Optional

from db import crud
from db.models import Message
from db.tables import TableStore
from shop.catalog import Clock, WarningSink, utcnow
from shop.errors import NotFoundError, PersistenceFailure
from shop.session import SessionContext, require_staff
from utils.logger import get_logger

_logger = get_logger(__name__)


class Inbox:
    def __init__(
        self,
        store: TableStore,
        clock: Clock = utcnow,
        on_warning: Optional[WarningSink] = None,
    ) -> None:
        self._store = store
        self._clock = clock
        self._on_warning = on_warning

    def _warn(self, text: str) -> None:
        _logger.warning(text)
        if self._on_warning:
            self._on_warning(text)

    async def send(self, name: str, email: str, body: str) -> Message:
        name, email, body = (name or "").strip(), (email or "").strip(), (body or "").strip()
        if not name or not email or not body:
            raise ValueError("Name, email and message are all required.")
        message = await crud.save_message(self._store, name, email, body, self._clock())
        _logger.info(f"Message {message.id} received from {email}.")
        return message

    async def list(self) -> List[Message]:
        try:
            return await crud.list_messages(self._store)
        except PersistenceFailure as exc:
            self._warn(f"Messages unavailable: {exc}")
            return []

    async def unread_count(self) -> int:
        return sum(1 for m in await self.list() if m.status == "New")

    async def mark_read(self, session: SessionContext, message_id: str) -> None:
        require_staff(session)
        if not await crud.mark_message_read(self._store, message_id):
            raise NotFoundError("Message", message_id)

    async def get_content(self) -> Dict[str, str]:
        try:
            return await crud.get_content(self._store)
        except PersistenceFailure as exc:
            self._warn(f"Page content unavailable: {exc}")
            return {}

    async def save_content(self, session: SessionContext, **fields: str) -> None:
        require_staff(session)
        await crud.save_content(self._store, fields)
        _logger.info(f"Content updated: {', '.join(sorted(fields))}.")
