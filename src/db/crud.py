# src/db/crud.py
# row <-> model mapping on top of a TableStore (local sqlite or supabase)
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from db import models
from db.tables import TableStore
from shop.errors import NotFoundError


def _to_int(val) -> Optional[int]:
    try:
        return int(val)
    except (TypeError, ValueError):
        return None


def _parse_ts(val) -> Optional[datetime]:
    """ISO string (or datetime) from either backend -> aware UTC datetime."""
    if val is None or val == "":
        return None
    if isinstance(val, datetime):
        ts = val
    else:
        ts = datetime.fromisoformat(str(val).replace("Z", "+00:00"))
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12].upper()}"


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


# ---------------------------
# Products
# ---------------------------


def _row_to_product(row: Mapping[str, Any]) -> models.Product:
    return models.Product(
        id=int(row["id"]),
        title=row["title"],
        price=int(row["price"]),
        stock=_to_int(row.get("stock")) or 0,
        category=row.get("category") or "",
        image=row.get("image_url") or "",
        offer_price=_to_int(row.get("offer_price")),
        offer_expires_at=_parse_ts(row.get("offer_expires")),
    )


def _product_to_row(product: models.Product) -> Dict[str, Any]:
    return {
        "title": product.title,
        "price": product.price,
        "offer_price": product.offer_price,
        "offer_expires": product.offer_expires_at,
        "image_url": product.image,
        "stock": product.stock,
        "category": product.category,
    }


async def list_products(store: TableStore) -> List[models.Product]:
    rows = await store.select("products", order_by="id")
    return [_row_to_product(row) for row in rows]


async def get_product(store: TableStore, pid: int) -> Optional[models.Product]:
    """Fetch a product by id."""
    row = await store.select_one("products", {"id": pid})
    return _row_to_product(row) if row else None


async def search_products(store: TableStore, query: str) -> List[models.Product]:
    """
    Case-insensitive search over title and category.
    Rules:
    - Empty string: return all products ordered by id.
    - Numeric only: id exact match first, falling back to keyword search.
    - Multiple words: exact phrase first, then each word individually;
      exact results come first, no duplicates.
    - Single non-numeric word: substring match.
    """
    phrase = (query or "").strip().lower()
    products = await list_products(store)
    if not phrase:
        return products

    def matches(p: models.Product, term: str) -> bool:
        return term in p.title.lower() or term in p.category.lower()

    if phrase.isdigit():
        exact = [p for p in products if p.id == int(phrase)]
        if exact:
            return exact

    results: List[models.Product] = []
    seen: set[int] = set()

    def add(found: List[models.Product]) -> None:
        for p in found:
            if p.id not in seen:
                seen.add(p.id)
                results.append(p)

    add([p for p in products if matches(p, phrase)])
    words = [w for w in phrase.split() if w]
    if len(words) > 1:
        for w in dict.fromkeys(words):
            add([p for p in products if matches(p, w)])
    return results


async def save_product(store: TableStore, product: models.Product) -> models.Product:
    """Insert when product.id is falsy, otherwise overwrite the stored row."""
    row = _product_to_row(product)
    if not product.id:
        stored = await store.insert("products", row)
        return _row_to_product(stored)

    if not await store.update("products", row, {"id": product.id}):
        raise NotFoundError("Product", product.id)
    return await get_product(store, product.id)


async def delete_product(store: TableStore, pid: int) -> bool:
    return await store.delete("products", {"id": pid}) > 0


async def update_product_price_stock(
    store: TableStore,
    pid: int,
    new_price: Optional[int],
    new_stock: Optional[int],
) -> bool:
    """
    Update price and/or stock (only provided fields). Return True if a row was updated.
    """
    values: Dict[str, Any] = {}
    if new_price is not None:
        values["price"] = new_price
    if new_stock is not None:
        values["stock"] = new_stock
    if not values:
        return False
    return await store.update("products", values, {"id": pid}) > 0


async def set_offer(
    store: TableStore, pid: int, offer_price: int, expires_at: datetime
) -> bool:
    return (
        await store.update(
            "products",
            {"offer_price": offer_price, "offer_expires": expires_at},
            {"id": pid},
        )
        > 0
    )


async def clear_offer(store: TableStore, pid: int) -> bool:
    return (
        await store.update(
            "products", {"offer_price": None, "offer_expires": None}, {"id": pid}
        )
        > 0
    )


# ---------------------------
# Users & profile updates
# ---------------------------


def _row_to_user(row: Mapping[str, Any]) -> models.User:
    return models.User(
        email=row["email"],
        name=row.get("name") or "",
        role=models.Role(row["role"]),
        approved=bool(row.get("approved")),
        password_hash=row.get("password_hash") or "",
        phone=row.get("phone") or "",
    )


async def get_user(store: TableStore, email: str) -> Optional[models.User]:
    """Return the User for the given email, or None if not found."""
    row = await store.select_one("users", {"email": _normalize_email(email)})
    return _row_to_user(row) if row else None


async def list_users(store: TableStore) -> List[models.User]:
    rows = await store.select("users", order_by="created_at")
    return [_row_to_user(row) for row in rows]


async def email_available(store: TableStore, email: str) -> bool:
    """True if no user already registered with the given email."""
    return await get_user(store, email) is None


async def insert_user(store: TableStore, user: models.User) -> models.User:
    stored = await store.insert(
        "users",
        {
            "email": _normalize_email(user.email),
            "name": user.name,
            "phone": user.phone,
            "password_hash": user.password_hash,
            "role": user.role.value,
            "approved": user.approved,
        },
    )
    return _row_to_user(stored)


USER_FIELDS = {"name", "phone", "role", "approved", "password_hash"}


async def update_user(store: TableStore, email: str, changes: Mapping[str, Any]) -> bool:
    """Apply the given field changes. Return True if a row was updated."""
    unknown = set(changes) - USER_FIELDS
    if unknown:
        raise ValueError(f"Cannot update user field(s) {sorted(unknown)}.")
    values = {
        k: v.value if isinstance(v, models.Role) else v for k, v in changes.items()
    }
    return await store.update("users", values, {"email": _normalize_email(email)}) > 0


def _row_to_profile_update(row: Mapping[str, Any]) -> models.ProfileUpdate:
    return models.ProfileUpdate(
        id=row["id"],
        email=row["email"],
        changes=dict(row.get("changes") or {}),
        created_at=_parse_ts(row["date"]),
    )


async def request_profile_update(
    store: TableStore, email: str, changes: Mapping[str, str], when: datetime
) -> models.ProfileUpdate:
    stored = await store.insert(
        "profile_updates",
        {
            "id": _new_id("UPD"),
            "email": _normalize_email(email),
            "changes": dict(changes),
            "date": when,
        },
    )
    return _row_to_profile_update(stored)


async def list_profile_updates(store: TableStore) -> List[models.ProfileUpdate]:
    rows = await store.select("profile_updates", order_by="date")
    return [_row_to_profile_update(row) for row in rows]


async def get_profile_update(
    store: TableStore, update_id: str
) -> Optional[models.ProfileUpdate]:
    row = await store.select_one("profile_updates", {"id": update_id})
    return _row_to_profile_update(row) if row else None


async def delete_profile_update(store: TableStore, update_id: str) -> bool:
    return await store.delete("profile_updates", {"id": update_id}) > 0


# ---------------------------
# Orders
# ---------------------------


def _line_to_item(line: models.OrderLine) -> Dict[str, Any]:
    return {
        "id": line.product_id,
        "title": line.title,
        "price": line.unit_price,
        "image": line.image,
        "quantity": line.quantity,
    }


def _item_to_line(item: Mapping[str, Any]) -> models.OrderLine:
    return models.OrderLine(
        product_id=int(item["id"]),
        title=item.get("title", ""),
        unit_price=int(item["price"]),
        image=item.get("image", ""),
        quantity=int(item["quantity"]),
    )


def _row_to_order(row: Mapping[str, Any]) -> models.Order:
    return models.Order(
        id=row["id"],
        created_at=_parse_ts(row["created_at"]),
        status=models.OrderStatus(row["status"]),
        customer=models.CustomerDetails(
            name=row.get("customer_name") or "",
            phone=row.get("customer_phone") or "",
            email=row.get("customer_email") or "",
            address=row.get("customer_address") or "",
            notes=row.get("notes") or "",
        ),
        lines=tuple(_item_to_line(item) for item in row.get("items") or []),
        total=int(row["total"]),
    )


async def insert_order(store: TableStore, order: models.Order) -> models.Order:
    stored = await store.insert(
        "orders",
        {
            "id": order.id,
            "created_at": order.created_at,
            "status": order.status.value,
            "customer_name": order.customer.name,
            "customer_phone": order.customer.phone,
            "customer_email": order.customer.email,
            "customer_address": order.customer.address,
            "notes": order.customer.notes,
            "items": [_line_to_item(line) for line in order.lines],
            "total": order.total,
        },
    )
    return _row_to_order(stored)


async def get_order(store: TableStore, order_id: str) -> Optional[models.Order]:
    row = await store.select_one("orders", {"id": order_id})
    return _row_to_order(row) if row else None


async def list_orders(store: TableStore) -> List[models.Order]:
    """All orders, most recent first."""
    rows = await store.select("orders", order_by="created_at", descending=True)
    orders = [_row_to_order(row) for row in rows]
    orders.sort(key=lambda o: o.created_at, reverse=True)
    return orders


async def update_order_status(
    store: TableStore, order_id: str, status: models.OrderStatus
) -> bool:
    return await store.update("orders", {"status": status.value}, {"id": order_id}) > 0


async def sales_summary(
    store: TableStore, since: Optional[datetime] = None
) -> models.SalesSummary:
    """
    Summarize orders created at or after `since` (all orders when None).
    Cancelled orders are counted but excluded from revenue and item count.
    """
    orders = [o for o in await list_orders(store) if since is None or o.created_at >= since]
    live = [o for o in orders if o.status != models.OrderStatus.CANCELLED]
    return models.SalesSummary(
        order_count=len(orders),
        item_count=sum(line.quantity for o in live for line in o.lines),
        revenue=sum(o.total for o in live),
        pending_count=sum(1 for o in orders if o.status == models.OrderStatus.PENDING),
    )


# ---------------------------
# Messages & content
# ---------------------------


def _row_to_message(row: Mapping[str, Any]) -> models.Message:
    return models.Message(
        id=row["id"],
        name=row["name"],
        email=row["email"],
        body=row["body"],
        created_at=_parse_ts(row["date"]),
        status=row.get("status") or "New",
    )


async def save_message(
    store: TableStore, name: str, email: str, body: str, when: datetime
) -> models.Message:
    stored = await store.insert(
        "messages",
        {
            "id": _new_id("MSG"),
            "name": name,
            "email": email,
            "body": body,
            "date": when,
            "status": "New",
        },
    )
    return _row_to_message(stored)


async def list_messages(store: TableStore) -> List[models.Message]:
    """Messages, newest first."""
    rows = await store.select("messages", order_by="date", descending=True)
    return [_row_to_message(row) for row in rows]


async def mark_message_read(store: TableStore, message_id: str) -> bool:
    return await store.update("messages", {"status": "Read"}, {"id": message_id}) > 0


CONTENT_FIELDS = ("about_us", "contact_info")


async def get_content(store: TableStore) -> Dict[str, str]:
    row = await store.select_one("content", {"id": 1})
    if not row:
        return {}
    return {k: row.get(k) or "" for k in CONTENT_FIELDS}


async def save_content(store: TableStore, fields: Mapping[str, str]) -> None:
    unknown = set(fields) - set(CONTENT_FIELDS)
    if unknown:
        raise ValueError(f"Unknown content field(s) {sorted(unknown)}.")
    if not await store.update("content", dict(fields), {"id": 1}):
        await store.insert("content", {"id": 1, **fields})
