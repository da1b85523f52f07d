# provide dataclass models
# amounts are integers in minor currency units, timestamps are aware UTC datetimes

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class Product:
    id: int
    title: str
    price: int
    stock: int
    category: str = ""
    image: str = ""
    offer_price: Optional[int] = None
    offer_expires_at: Optional[datetime] = None


@dataclass
class CartLine:
    product_id: int
    title: str
    unit_price: int  # resolved once, when the line was first added
    image: str
    quantity: int

    @property
    def line_total(self) -> int:
        return self.unit_price * self.quantity


@dataclass
class Cart:
    lines: List[CartLine] = field(default_factory=list)

    def find(self, product_id: int) -> Optional[CartLine]:
        for line in self.lines:
            if line.product_id == product_id:
                return line
        return None

    def total(self) -> int:
        return sum(line.line_total for line in self.lines)

    def count(self) -> int:
        return sum(line.quantity for line in self.lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines


class OrderStatus(str, Enum):
    PENDING = "Pending"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    CANCELLED = "Cancelled"


@dataclass(frozen=True)
class CustomerDetails:
    name: str
    phone: str
    email: str = ""
    address: str = ""
    notes: str = ""


@dataclass(frozen=True)
class OrderLine:
    product_id: int
    title: str
    unit_price: int
    image: str
    quantity: int

    @property
    def line_total(self) -> int:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class Order:
    id: str
    created_at: datetime
    status: OrderStatus
    customer: CustomerDetails
    lines: Tuple[OrderLine, ...]
    total: int


class Role(str, Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"
    OWNER = "owner"


@dataclass(frozen=True)
class User:
    email: str
    name: str
    role: Role
    approved: bool
    password_hash: str = field(repr=False, default="")
    phone: str = ""

    @property
    def identifier(self) -> str:
        return self.email

    @property
    def is_staff(self) -> bool:
        return self.role in (Role.ADMIN, Role.OWNER)


@dataclass(frozen=True)
class Message:
    id: str
    name: str
    email: str
    body: str
    created_at: datetime
    status: str  # "New" or "Read"


@dataclass(frozen=True)
class ProfileUpdate:
    id: str
    email: str
    changes: Dict[str, str]
    created_at: datetime


@dataclass(frozen=True)
class SalesSummary:
    order_count: int
    item_count: int
    revenue: int  # excludes cancelled orders
    pending_count: int
