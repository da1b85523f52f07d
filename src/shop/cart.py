"""
Cart engine for one device/session.

Lines are kept in insertion order, at most one per product. The unit price of
a line is resolved once, when the product is first added, and is never
re-resolved afterwards even if the offer expires or the price changes.
Every mutation writes the whole cart before it returns.
"""

from __future__ import annotations

import asyncio
import copy
import json
from typing import Callable, List, Optional, Tuple

from db.kvstore import KeyValueStore
from db.models import Cart, CartLine, Product
from shop.catalog import Clock, WarningSink, effective_price, utcnow
from shop.errors import InvalidQuantityError, PersistenceFailure
from utils.logger import get_logger

_logger = get_logger(__name__)

DEFAULT_CART_KEY = "biltone_cart"

CartObserver = Callable[["CartEngine"], None]


def encode_cart(lines: List[CartLine]) -> bytes:
    return json.dumps(
        [
            {
                "id": line.product_id,
                "title": line.title,
                "price": line.unit_price,
                "image": line.image,
                "quantity": line.quantity,
            }
            for line in lines
        ]
    ).encode("utf-8")


def decode_cart(raw: bytes) -> List[CartLine]:
    """Raises ValueError on anything that is not a stored cart."""
    try:
        items = json.loads(raw.decode("utf-8"))
        if not isinstance(items, list):
            raise ValueError("stored cart is not a list")
        lines = [
            CartLine(
                product_id=int(item["id"]),
                title=str(item.get("title", "")),
                unit_price=int(item["price"]),
                image=str(item.get("image", "")),
                quantity=int(item["quantity"]),
            )
            for item in items
        ]
    except (UnicodeDecodeError, KeyError, TypeError, AttributeError) as exc:
        raise ValueError(f"unreadable cart: {exc}") from exc

    merged: List[CartLine] = []
    for line in lines:
        if line.quantity <= 0:
            continue
        existing = next((m for m in merged if m.product_id == line.product_id), None)
        if existing:
            existing.quantity += line.quantity
        else:
            merged.append(line)
    return merged


class CartEngine:
    def __init__(
        self,
        kv: KeyValueStore,
        key: str = DEFAULT_CART_KEY,
        clock: Clock = utcnow,
        on_warning: Optional[WarningSink] = None,
    ) -> None:
        self._kv = kv
        self._key = key
        self._clock = clock
        self._on_warning = on_warning
        self._lines: List[CartLine] = []
        self._observers: List[CartObserver] = []
        # one mutation at a time, so a rollback never undoes another edit
        self._lock = asyncio.Lock()

    # ---------------------------
    # Reads
    # ---------------------------

    @property
    def lines(self) -> Tuple[CartLine, ...]:
        return tuple(copy.copy(line) for line in self._lines)

    def snapshot(self) -> Cart:
        """A deep copy, decoupled from later changes to this cart."""
        return Cart(lines=copy.deepcopy(self._lines))

    def find(self, product_id: int) -> Optional[CartLine]:
        for line in self._lines:
            if line.product_id == product_id:
                return copy.copy(line)
        return None

    def total(self) -> int:
        return sum(line.line_total for line in self._lines)

    def count(self) -> int:
        return sum(line.quantity for line in self._lines)

    @property
    def is_empty(self) -> bool:
        return not self._lines

    # ---------------------------
    # Observers
    # ---------------------------

    def subscribe(self, observer: CartObserver) -> Callable[[], None]:
        """Register a callback run after every change; returns an unsubscribe function."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _notify(self) -> None:
        for observer in list(self._observers):
            observer(self)

    # ---------------------------
    # Mutations
    # ---------------------------

    async def _commit(self, previous: List[CartLine]) -> None:
        try:
            await self._kv.set(self._key, encode_cart(self._lines))
        except BaseException:
            # failed or cancelled writes leave the cart as it was
            self._lines = previous
            raise
        self._notify()

    async def add_item(self, product: Product, quantity: int = 1) -> None:
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise InvalidQuantityError(quantity)

        async with self._lock:
            previous = copy.deepcopy(self._lines)
            existing = next(
                (line for line in self._lines if line.product_id == product.id), None
            )
            if existing:
                existing.quantity += quantity
            else:
                self._lines.append(
                    CartLine(
                        product_id=product.id,
                        title=product.title,
                        unit_price=effective_price(product, self._clock()),
                        image=product.image,
                        quantity=quantity,
                    )
                )
            await self._commit(previous)
        _logger.debug(f"Added {quantity} x {product.id} to cart.")

    async def remove_item(self, product_id: int) -> None:
        await self.set_quantity(product_id, 0)

    async def set_quantity(self, product_id: int, quantity: int) -> None:
        """Quantities of zero or less remove the line; unknown products are ignored."""
        async with self._lock:
            if not any(line.product_id == product_id for line in self._lines):
                return
            previous = copy.deepcopy(self._lines)
            if quantity <= 0:
                self._lines = [line for line in self._lines if line.product_id != product_id]
            else:
                for line in self._lines:
                    if line.product_id == product_id:
                        line.quantity = int(quantity)
            await self._commit(previous)

    async def clear(self) -> None:
        async with self._lock:
            previous = copy.deepcopy(self._lines)
            self._lines = []
            await self._commit(previous)

    async def restore(self) -> Cart:
        """Load the stored cart for this device, replacing the in-memory one."""
        try:
            raw = await self._kv.get(self._key)
            self._lines = decode_cart(raw) if raw else []
        except (PersistenceFailure, ValueError) as exc:
            text = f"Saved cart could not be loaded, starting empty: {exc}"
            _logger.warning(text)
            if self._on_warning:
                self._on_warning(text)
            self._lines = []
        self._notify()
        return self.snapshot()
