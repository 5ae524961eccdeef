from __future__ import annotations

import logging
import random
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from ..catalog.store import CatalogStore
from ..errors import BadRequestError, ConflictError
from .models import (
    PRIORITY_RANK,
    Customization,
    Order,
    OrderCreate,
    OrderItem,
    OrderStatus,
    OrderUpdate,
)
from .store import OrderFilter, OrderStore

logger = logging.getLogger(__name__)

TAX_RATE = 0.08
PREPARATION_WINDOW = timedelta(minutes=30)
ORDER_NUMBER_SLOTS = 1000

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_order_number(now: datetime | None = None, suffix: int | None = None) -> str:
    """``ORD`` + yymmdd + three digits, random unless *suffix* is given."""
    now = now or _utcnow()
    if suffix is None:
        suffix = random.randrange(ORDER_NUMBER_SLOTS)
    return f"ORD{now:%y%m%d}{suffix:03d}"


def _unique_order_number(orders: OrderStore, now: datetime) -> str:
    taken = orders.order_numbers()
    suffixes = list(range(ORDER_NUMBER_SLOTS))
    random.shuffle(suffixes)
    for suffix in suffixes:
        number = generate_order_number(now, suffix)
        if number not in taken:
            return number
    raise ConflictError(f"No order numbers left for {now:%Y-%m-%d}")


def calculate_totals(items: list[OrderItem], tip: float) -> dict[str, float]:
    subtotal = sum(i.line_total for i in items)
    tax = subtotal * TAX_RATE
    return {
        "subtotal": round(subtotal, 2),
        "tax": round(tax, 2),
        "tip": round(tip, 2),
        "total": round(subtotal + tax + tip, 2),
    }


def _build_item(
    catalog: CatalogStore,
    menu_item_id: str,
    quantity: int,
    special_instructions: str | None,
    customization: list[Customization],
) -> OrderItem:
    menu_item = catalog.get(menu_item_id)
    if not menu_item.is_available():
        raise BadRequestError(f'Menu item "{menu_item.name}" is not available')
    return OrderItem(
        menu_item_id=menu_item.id,
        name=menu_item.name,
        category=menu_item.category,
        ingredients=menu_item.ingredient_names(),
        quantity=quantity,
        price=menu_item.price,
        special_instructions=special_instructions or "",
        customization=customization,
    )


def create_order(
    payload: OrderCreate,
    catalog: CatalogStore,
    orders: OrderStore,
    clock: Clock = _utcnow,
) -> Order:
    items = [
        _build_item(
            catalog, req.menu_item_id, req.quantity,
            req.special_instructions, req.customization,
        )
        for req in payload.items
    ]
    now = clock()
    order = Order(
        order_number=_unique_order_number(orders, now),
        customer=payload.customer,
        items=items,
        order_type=payload.order_type,
        table_number=payload.table_number,
        delivery_address=payload.delivery_address,
        notes=payload.notes or "",
        created_at=now,
        updated_at=now,
        **calculate_totals(items, payload.tip),
    )
    orders.save(order)

    for item in items:
        catalog.increment_popularity(item.menu_item_id)

    logger.info(
        "Created order %s with %d item(s), total %.2f",
        order.order_number, len(items), order.total,
    )
    return order


def update_status(
    orders: OrderStore,
    order_id: str,
    status: OrderStatus,
    notes: str | None = None,
    clock: Clock = _utcnow,
) -> Order:
    order = orders.get(order_id)
    now = clock()
    changes: dict[str, Any] = {"status": status, "updated_at": now}
    if notes:
        changes["notes"] = notes
    if status == OrderStatus.preparing:
        changes["estimated_delivery_time"] = now + PREPARATION_WINDOW
    elif status == OrderStatus.ready:
        changes["actual_delivery_time"] = now
    updated = order.model_copy(update=changes)
    orders.save(updated)
    logger.info("Order %s status -> %s", order.order_number, status.value)
    return updated


def update_order(
    orders: OrderStore,
    order_id: str,
    payload: OrderUpdate,
    clock: Clock = _utcnow,
) -> Order:
    order = orders.get(order_id)
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    changes["updated_at"] = clock()
    updated = order.model_copy(update=changes)
    orders.save(updated)
    return updated


def _require_pending(order: Order) -> None:
    if order.status != OrderStatus.pending:
        raise BadRequestError("Cannot modify order that is not pending")


def add_item(
    orders: OrderStore,
    catalog: CatalogStore,
    order_id: str,
    menu_item_id: str,
    quantity: int,
    special_instructions: str | None = None,
    customization: list[Customization] | None = None,
    clock: Clock = _utcnow,
) -> Order:
    order = orders.get(order_id)
    _require_pending(order)
    item = _build_item(catalog, menu_item_id, quantity, special_instructions, customization or [])
    items = [*order.items, item]
    updated = order.model_copy(
        update={"items": items, "updated_at": clock(), **calculate_totals(items, order.tip)}
    )
    orders.save(updated)
    return updated


def remove_item(
    orders: OrderStore,
    order_id: str,
    item_index: int,
    clock: Clock = _utcnow,
) -> Order:
    order = orders.get(order_id)
    _require_pending(order)
    if not 0 <= item_index < len(order.items):
        raise BadRequestError("Invalid item index")
    items = [item for i, item in enumerate(order.items) if i != item_index]
    updated = order.model_copy(
        update={"items": items, "updated_at": clock(), **calculate_totals(items, order.tip)}
    )
    orders.save(updated)
    return updated


def cancel_order(
    orders: OrderStore,
    order_id: str,
    reason: str | None = None,
    clock: Clock = _utcnow,
) -> Order:
    order = orders.get(order_id)
    if order.status == OrderStatus.delivered:
        raise BadRequestError("Cannot cancel delivered order")
    return update_status(
        orders, order_id, OrderStatus.cancelled, reason or "Order cancelled", clock=clock,
    )


def orders_for_customer(orders: OrderStore, identifier: str) -> list[Order]:
    """Orders placed under a phone number or email, newest first."""
    by_phone, _ = orders.find(OrderFilter(customer_phone=identifier))
    by_email, _ = orders.find(OrderFilter(customer_email=identifier))
    seen: set[str] = set()
    merged: list[Order] = []
    for order in sorted(by_phone + by_email, key=lambda o: o.created_at, reverse=True):
        if order.id not in seen:
            seen.add(order.id)
            merged.append(order)
    return merged


def kitchen_queue(orders: OrderStore) -> list[Order]:
    active, _ = orders.find(
        OrderFilter(statuses=[OrderStatus.confirmed.value, OrderStatus.preparing.value])
    )
    return sorted(active, key=lambda o: (PRIORITY_RANK[o.priority], o.created_at))


def summary_stats(
    orders: OrderStore,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> dict[str, Any]:
    df = orders.orders_frame(OrderFilter(start_date=start_date, end_date=end_date))
    if df.empty:
        return {
            "total_orders": 0,
            "total_revenue": 0.0,
            "average_order_value": 0.0,
            "status_breakdown": {},
        }
    return {
        "total_orders": int(len(df)),
        "total_revenue": round(float(df["total"].sum()), 2),
        "average_order_value": round(float(df["total"].mean()), 2),
        "status_breakdown": {str(k): int(v) for k, v in df["status"].value_counts().items()},
    }
