"""Order placement and the administrator's status changes."""

from __future__ import annotations

import dataclasses
import uuid
from datetime import datetime
from typing import Dict, FrozenSet, List, Optional, Union

from db import crud
from db.models import Cart, CustomerDetails, Order, OrderLine, OrderStatus, SalesSummary
from db.tables import TableStore
from shop.cart import CartEngine
from shop.catalog import Clock, WarningSink, utcnow
from shop.errors import (
    EmptyCartError,
    InvalidTransitionError,
    NotFoundError,
    PersistenceFailure,
)
from shop.session import SessionContext, require_staff
from utils.logger import get_logger

_logger = get_logger(__name__)

# only consulted when strict transitions are switched on
ALLOWED_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset(
        {OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.CANCELLED}
    ),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


def new_order_id() -> str:
    return f"ORD-{uuid.uuid4().hex[:12].upper()}"


def validate_customer(customer: CustomerDetails) -> CustomerDetails:
    cleaned = CustomerDetails(
        name=customer.name.strip(),
        phone=customer.phone.strip(),
        email=customer.email.strip(),
        address=customer.address.strip(),
        notes=customer.notes.strip(),
    )
    if not cleaned.name:
        raise ValueError("Customer name is required.")
    if not cleaned.phone:
        raise ValueError("Customer phone number is required.")
    return cleaned


def parse_status(status: Union[OrderStatus, str]) -> OrderStatus:
    if isinstance(status, OrderStatus):
        return status
    label = str(status).strip().lower()
    for candidate in OrderStatus:
        if candidate.value.lower() == label:
            return candidate
    raise ValueError(f"Unknown order status {status!r}.")


class OrderLifecycle:
    """
    Turns cart snapshots into persisted orders and lets administrators move
    them between statuses.

    Transitions are open by default (any status may follow any other); pass
    strict=True to enforce ALLOWED_TRANSITIONS.
    """

    def __init__(
        self,
        store: TableStore,
        clock: Clock = utcnow,
        strict: bool = False,
        on_warning: Optional[WarningSink] = None,
    ) -> None:
        self._store = store
        self._clock = clock
        self.strict = strict
        self._on_warning = on_warning

    def _warn(self, text: str) -> None:
        _logger.warning(text)
        if self._on_warning:
            self._on_warning(text)

    async def place_order(self, cart: Cart, customer: CustomerDetails) -> Order:
        if cart.is_empty:
            raise EmptyCartError()
        customer = validate_customer(customer)

        lines = tuple(
            OrderLine(
                product_id=line.product_id,
                title=line.title,
                unit_price=line.unit_price,
                image=line.image,
                quantity=line.quantity,
            )
            for line in cart.lines
        )
        order = Order(
            id=new_order_id(),
            created_at=self._clock(),
            status=OrderStatus.PENDING,
            customer=customer,
            lines=lines,
            total=cart.total(),
        )
        stored = await crud.insert_order(self._store, order)
        _logger.info(
            f"Order {stored.id} placed: {len(stored.lines)} line(s), total {stored.total}."
        )
        return stored

    async def checkout(self, cart: CartEngine, customer: CustomerDetails) -> Order:
        """Place an order from the cart, then clear the cart once the order is stored."""
        order = await self.place_order(cart.snapshot(), customer)
        try:
            await cart.clear()
        except PersistenceFailure as exc:
            _logger.error(f"Order {order.id} stored but the cart was not cleared: {exc}")
            self._warn(
                f"Order {order.id} was placed, but the cart could not be emptied."
            )
        return order

    async def get(self, order_id: str) -> Order:
        order = await crud.get_order(self._store, order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    async def list(self) -> List[Order]:
        """All orders, most recent first."""
        try:
            return await crud.list_orders(self._store)
        except PersistenceFailure as exc:
            self._warn(f"Orders unavailable: {exc}")
            return []

    async def set_status(
        self,
        session: SessionContext,
        order_id: str,
        status: Union[OrderStatus, str],
    ) -> Order:
        require_staff(session)
        new_status = parse_status(status)
        order = await self.get(order_id)
        if (
            self.strict
            and new_status != order.status
            and new_status not in ALLOWED_TRANSITIONS[order.status]
        ):
            raise InvalidTransitionError(order.status, new_status)

        if not await crud.update_order_status(self._store, order_id, new_status):
            raise NotFoundError("Order", order_id)
        _logger.info(f"Order {order_id}: {order.status.value} -> {new_status.value}.")
        return dataclasses.replace(order, status=new_status)

    async def summary(self, since: Optional[datetime] = None) -> SalesSummary:
        try:
            return await crud.sales_summary(self._store, since)
        except PersistenceFailure as exc:
            self._warn(f"Sales summary unavailable: {exc}")
            return SalesSummary(order_count=0, item_count=0, revenue=0, pending_count=0)
