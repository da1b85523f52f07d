"""Browsing-session handle and the staff check every back-office write goes through."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Optional

from db.models import Role, User
from shop.errors import NotAuthorizedError


@dataclass
class SessionContext:
    """Transient binding of one browsing session to (at most) one user."""

    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    user: Optional[User] = None

    @property
    def role(self) -> Role:
        return self.user.role if self.user else Role.CUSTOMER

    @property
    def is_staff(self) -> bool:
        return bool(self.user and self.user.is_staff and self.user.approved)


def require_staff(session: SessionContext) -> User:
    if not session.is_staff:
        raise NotAuthorizedError("Administrator login required.")
    return session.user
