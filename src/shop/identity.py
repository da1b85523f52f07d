"""
Session/identity adapter for the back-office.

Customers shop without an account; administrators and the owner log in.
The logged-in user is bound to an explicit SessionContext handle, one per
browsing session, instead of process-wide state. Secrets only ever pass
through the passlib hashing boundary.
"""

from __future__ import annotations

from typing import Dict, List, Mapping, Optional

from passlib.context import CryptContext

from db import crud
from db.models import ProfileUpdate, Role, User
from db.tables import TableStore
from shop.catalog import Clock, utcnow
from shop.errors import (
    DuplicateAccountError,
    InvalidCredentialsError,
    NotFoundError,
    PendingApprovalError,
)
from shop.session import SessionContext, require_staff
from utils.logger import get_logger

_logger = get_logger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

# profile fields an administrator may ask to change
PROFILE_FIELDS = ("name", "phone")


def hash_password(secret: str) -> str:
    return pwd_context.hash(secret)


def verify_password(secret: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    try:
        return pwd_context.verify(secret, password_hash)
    except ValueError:
        # not a hash this context understands
        return False


class IdentityService:
    def __init__(self, store: TableStore, clock: Clock = utcnow) -> None:
        self._store = store
        self._clock = clock

    # ---------------------------
    # Sessions
    # ---------------------------

    def current_user(self, session: SessionContext) -> Optional[User]:
        return session.user

    async def login(
        self, session: SessionContext, identifier: str, secret: str
    ) -> User:
        """
        Bind the matching user to `session`.
        Raises InvalidCredentialsError for an unknown identifier or a wrong secret,
        PendingApprovalError when the secret is right but the account is not approved.
        """
        user = await crud.get_user(self._store, identifier)
        if user is None or not verify_password(secret, user.password_hash):
            _logger.info("Rejected login attempt.")
            raise InvalidCredentialsError()
        if user.is_staff and not user.approved:
            _logger.info(f"Login by {user.email} refused, pending approval.")
            raise PendingApprovalError(user.email)

        session.user = user
        _logger.info(f"{user.email} logged in ({user.role.value}).")
        return user

    def logout(self, session: SessionContext) -> None:
        if session.user:
            _logger.info(f"{session.user.email} logged out.")
        session.user = None

    def require_staff(self, session: SessionContext) -> User:
        return require_staff(session)

    async def refresh(self, session: SessionContext) -> Optional[User]:
        """Reload the bound user after their record changed."""
        if session.user:
            session.user = await crud.get_user(self._store, session.user.email)
        return session.user

    # ---------------------------
    # Accounts
    # ---------------------------

    async def register_applicant(self, email: str, password: str, name: str) -> User:
        """Create an administrator account that cannot log in until approved."""
        email = (email or "").strip().lower()
        if not email or "@" not in email:
            raise ValueError("A valid email is required.")
        if not password:
            raise ValueError("Password cannot be empty.")
        if not await crud.email_available(self._store, email):
            raise DuplicateAccountError(email)

        user = await crud.insert_user(
            self._store,
            User(
                email=email,
                name=(name or "").strip(),
                role=Role.ADMIN,
                approved=False,
                password_hash=hash_password(password),
            ),
        )
        _logger.info(f"New applicant {email}.")
        return user

    async def ensure_owner(self, email: str, password: str, name: str) -> Optional[User]:
        """Create an approved owner when the store has no users yet."""
        if await crud.list_users(self._store):
            return None
        user = await crud.insert_user(
            self._store,
            User(
                email=email,
                name=name,
                role=Role.OWNER,
                approved=True,
                password_hash=hash_password(password),
            ),
        )
        _logger.info(f"Bootstrapped owner account {user.email}.")
        return user

    async def list_applicants(self) -> List[User]:
        return [
            u for u in await crud.list_users(self._store) if u.is_staff and not u.approved
        ]

    async def approve(self, session: SessionContext, email: str) -> None:
        approver = require_staff(session)
        if not await crud.update_user(self._store, email, {"approved": True}):
            raise NotFoundError("User", email)
        _logger.info(f"{approver.email} approved {email}.")

    # ---------------------------
    # Profile updates
    # ---------------------------

    async def request_profile_update(
        self, session: SessionContext, changes: Mapping[str, str]
    ) -> ProfileUpdate:
        user = require_staff(session)
        cleaned: Dict[str, str] = {
            k: str(v).strip() for k, v in changes.items() if str(v).strip()
        }
        unknown = set(cleaned) - set(PROFILE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot request changes to {sorted(unknown)}.")
        if not cleaned:
            raise ValueError("Nothing to update.")
        return await crud.request_profile_update(
            self._store, user.email, cleaned, self._clock()
        )

    async def list_profile_updates(self) -> List[ProfileUpdate]:
        return await crud.list_profile_updates(self._store)

    async def approve_profile_update(
        self, session: SessionContext, update_id: str, sessions: tuple = ()
    ) -> User:
        """Apply a pending change and drop it; sessions bound to that user are refreshed."""
        require_staff(session)
        update = await crud.get_profile_update(self._store, update_id)
        if update is None:
            raise NotFoundError("Profile update", update_id)
        if not await crud.update_user(self._store, update.email, update.changes):
            raise NotFoundError("User", update.email)
        await crud.delete_profile_update(self._store, update_id)

        for bound in sessions:
            if bound.user and bound.user.email == update.email:
                await self.refresh(bound)
        _logger.info(f"Applied profile update {update_id} for {update.email}.")
        return await crud.get_user(self._store, update.email)

    async def reject_profile_update(self, session: SessionContext, update_id: str) -> None:
        require_staff(session)
        if not await crud.delete_profile_update(self._store, update_id):
            raise NotFoundError("Profile update", update_id)
        _logger.info(f"Rejected profile update {update_id}.")
