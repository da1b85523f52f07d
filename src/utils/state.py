from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Optional

from db import database
from db.kvstore import KeyValueStore, SqliteKeyValueStore
from db.models import Role
from db.remote import SupabaseTableStore
from db.tables import SqliteTableStore, TableStore
from shop.cart import CartEngine
from shop.catalog import Catalog
from shop.identity import IdentityService
from shop.inbox import Inbox
from shop.orders import OrderLifecycle
from shop.session import SessionContext
from utils.config import Settings
from utils.logger import get_logger

_logger = get_logger(__name__)


@dataclass
class AppState:
    """
    Everything one running storefront needs, wired once and shared by screens.

    Fields:
      - session: the browsing session; holds the logged-in administrator, if any
      - catalog / cart / orders / identity / inbox: the services screens call
      - warnings: degraded reads reported by the services, drained by the UI
    """

    settings: Settings
    store: TableStore
    kv: KeyValueStore
    catalog: Catalog
    cart: CartEngine
    orders: OrderLifecycle
    identity: IdentityService
    inbox: Inbox
    session: SessionContext = field(default_factory=SessionContext)
    warnings: List[str] = field(default_factory=list)
    warning_listener: Optional[Callable[[str], None]] = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        store: Optional[TableStore] = None,
        kv: Optional[KeyValueStore] = None,
    ) -> "AppState":
        database.use_database(settings.db_path)
        if store is None:
            if settings.backend == "supabase":
                store = SupabaseTableStore(settings.supabase_url, settings.supabase_key)
            else:
                store = SqliteTableStore()
        # the cart always lives on the device, whatever the table backend
        kv = kv if kv is not None else SqliteKeyValueStore()

        def sink(text: str) -> None:
            state.report_warning(text)

        state = cls(
            settings=settings,
            store=store,
            kv=kv,
            catalog=Catalog(store, on_warning=sink),
            cart=CartEngine(kv, key=settings.cart_key, on_warning=sink),
            orders=OrderLifecycle(
                store, strict=settings.strict_transitions, on_warning=sink
            ),
            identity=IdentityService(store),
            inbox=Inbox(store, on_warning=sink),
        )
        return state

    def report_warning(self, text: str) -> None:
        self.warnings.append(text)
        if self.warning_listener:
            self.warning_listener(text)

    @property
    def role(self) -> Role:
        return self.session.role

    @property
    def is_staff(self) -> bool:
        return self.session.is_staff

    async def start(self) -> None:
        """Bootstrap the owner account if configured, then restore the device cart."""
        s = self.settings
        if s.owner_password:
            await self.identity.ensure_owner(s.owner_email, s.owner_password, s.owner_name)
        await self.cart.restore()
        _logger.info(f"Storefront started ({s.backend} backend, {self.cart.count()} item(s) in cart).")

    async def close(self) -> None:
        if isinstance(self.store, SupabaseTableStore):
            await self.store.aclose()
