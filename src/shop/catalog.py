"""
Catalog store: product reads for the cart and checkout, plus the
administrative product plumbing (create, edit, offers, delete).
"""

from __future__ import annotations

import dataclasses
from datetime import datetime, timezone
from typing import Callable, List, Optional

from db import crud
from db.models import Product
from db.tables import TableStore
from shop.errors import NotFoundError, PersistenceFailure
from shop.session import SessionContext, require_staff
from utils.logger import get_logger

_logger = get_logger(__name__)

Clock = Callable[[], datetime]
WarningSink = Callable[[str], None]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def offer_is_active(product: Product, now: datetime) -> bool:
    """An offer counts only while its expiry is strictly in the future."""
    return (
        product.offer_price is not None
        and product.offer_expires_at is not None
        and product.offer_expires_at > now
    )


def effective_price(product: Product, now: datetime) -> int:
    """The price a customer pays for `product` at instant `now`."""
    return product.offer_price if offer_is_active(product, now) else product.price


def validate_product(product: Product) -> None:
    if not product.title.strip():
        raise ValueError("Product title is required.")
    if product.price < 0:
        raise ValueError("Price cannot be negative.")
    if product.stock < 0:
        raise ValueError("Stock cannot be negative.")
    if product.offer_price is not None:
        if product.offer_price < 0:
            raise ValueError("Offer price cannot be negative.")
        if product.offer_price >= product.price:
            raise ValueError("Offer price must be lower than the regular price.")


class Catalog:
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

    def price_of(self, product: Product) -> int:
        return effective_price(product, self._clock())

    def has_offer(self, product: Product) -> bool:
        return offer_is_active(product, self._clock())

    async def list(self) -> List[Product]:
        try:
            return await crud.list_products(self._store)
        except PersistenceFailure as exc:
            self._warn(f"Products unavailable: {exc}")
            return []

    async def search(self, query: str) -> List[Product]:
        try:
            return await crud.search_products(self._store, query)
        except PersistenceFailure as exc:
            self._warn(f"Product search unavailable: {exc}")
            return []

    async def get(self, pid: int) -> Optional[Product]:
        try:
            return await crud.get_product(self._store, pid)
        except PersistenceFailure as exc:
            self._warn(f"Product {pid} unavailable: {exc}")
            return None

    async def require(self, pid: int) -> Product:
        product = await crud.get_product(self._store, pid)
        if product is None:
            raise NotFoundError("Product", pid)
        return product

    # ---------------------------
    # Administration, staff sessions only
    # ---------------------------

    async def save(self, session: SessionContext, product: Product) -> Product:
        require_staff(session)
        validate_product(product)
        saved = await crud.save_product(self._store, product)
        _logger.info(f"Saved product {saved.id} ({saved.title}).")
        return saved

    async def delete(self, session: SessionContext, pid: int) -> None:
        require_staff(session)
        if not await crud.delete_product(self._store, pid):
            raise NotFoundError("Product", pid)
        _logger.info(f"Deleted product {pid}.")

    async def restock(self, session: SessionContext, pid: int, stock: int) -> Product:
        require_staff(session)
        if stock < 0:
            raise ValueError("Stock cannot be negative.")
        if not await crud.update_product_price_stock(self._store, pid, None, stock):
            raise NotFoundError("Product", pid)
        return await self.require(pid)

    async def set_offer(
        self, session: SessionContext, pid: int, offer_price: int, expires_at: datetime
    ) -> Product:
        require_staff(session)
        product = await self.require(pid)
        if expires_at.tzinfo is None:
            raise ValueError("Offer expiry must be timezone-aware.")
        if expires_at <= self._clock():
            raise ValueError("Offer expiry must be in the future.")
        validate_product(
            dataclasses.replace(
                product, offer_price=offer_price, offer_expires_at=expires_at
            )
        )
        await crud.set_offer(self._store, pid, offer_price, expires_at)
        _logger.info(f"Offer on product {pid}: {offer_price} until {expires_at}.")
        return await self.require(pid)

    async def clear_offer(self, session: SessionContext, pid: int) -> Product:
        require_staff(session)
        if not await crud.clear_offer(self._store, pid):
            raise NotFoundError("Product", pid)
        return await self.require(pid)
