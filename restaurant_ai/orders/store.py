from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import pandas as pd

from ..errors import NotFoundError
from .models import Order

ORDER_COLUMNS = [
    "id",
    "order_number",
    "created_at",
    "status",
    "order_type",
    "subtotal",
    "total",
    "item_count",
    "customer_name",
    "customer_phone",
    "customer_email",
    "spice_level",
    "table_number",
    "actual_delivery_time",
    "priority",
]

ITEM_COLUMNS = [
    "order_id",
    "created_at",
    "status",
    "customer_phone",
    "menu_item_id",
    "name",
    "category",
    "ingredients",
    "quantity",
    "price",
    "revenue",
]

SORTABLE_FIELDS = {"created_at", "total", "status", "order_number", "updated_at"}


@dataclass
class OrderFilter:
    status: str | None = None
    statuses: list[str] = field(default_factory=list)
    exclude_status: str | None = None
    order_type: str | None = None
    customer_phone: str | None = None
    customer_email: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    end_exclusive: bool = False

    def to_mask(self, df: pd.DataFrame) -> pd.Series:
        mask = pd.Series(True, index=df.index)
        if self.status is not None:
            mask &= df["status"] == self.status
        if self.statuses:
            mask &= df["status"].isin(self.statuses)
        if self.exclude_status is not None:
            mask &= df["status"] != self.exclude_status
        if self.order_type is not None:
            mask &= df["order_type"] == self.order_type
        if self.customer_phone is not None:
            mask &= df["customer_phone"] == self.customer_phone
        if self.customer_email is not None:
            mask &= df["customer_email"] == self.customer_email.lower()
        if self.start_date is not None:
            mask &= df["created_at"] >= pd.Timestamp(self.start_date)
        if self.end_date is not None:
            end = pd.Timestamp(self.end_date)
            mask &= (df["created_at"] < end) if self.end_exclusive else (df["created_at"] <= end)
        return mask


def _order_row(order: Order) -> dict[str, Any]:
    return {
        "id": order.id,
        "order_number": order.order_number,
        "created_at": order.created_at,
        "status": order.status.value,
        "order_type": order.order_type.value,
        "subtotal": float(order.subtotal),
        "total": float(order.total),
        "item_count": order.item_count,
        "customer_name": order.customer.name,
        "customer_phone": order.customer.phone,
        "customer_email": order.customer.email,
        "spice_level": order.customer.preferences.spice_level.value,
        "table_number": order.table_number,
        "actual_delivery_time": order.actual_delivery_time,
        "priority": order.priority.value,
    }


def _item_rows(order: Order) -> list[dict[str, Any]]:
    return [
        {
            "order_id": order.id,
            "created_at": order.created_at,
            "status": order.status.value,
            "customer_phone": order.customer.phone,
            "menu_item_id": item.menu_item_id,
            "name": item.name,
            "category": item.category.value,
            "ingredients": list(item.ingredients),
            "quantity": item.quantity,
            "price": float(item.price),
            "revenue": float(item.price * item.quantity),
        }
        for item in order.items
    ]


class OrderStore:
    """In-process order collection with DataFrame views for aggregation."""

    def __init__(self, orders: list[Order] | None = None) -> None:
        self._orders: dict[str, Order] = {}
        self._lock = threading.RLock()
        for order in orders or []:
            self._orders[order.id] = order

    def __len__(self) -> int:
        return len(self._orders)

    def save(self, order: Order) -> Order:
        with self._lock:
            self._orders[order.id] = order
        return order

    def get(self, order_id: str) -> Order:
        order = self._orders.get(order_id)
        if order is None:
            raise NotFoundError("Order not found")
        return order

    def get_by_number(self, order_number: str) -> Order:
        for order in self._orders.values():
            if order.order_number == order_number:
                return order
        raise NotFoundError("Order not found")

    def order_numbers(self) -> set[str]:
        return {o.order_number for o in self._orders.values()}

    # ── Frames ───────────────────────────────────────────────────────────

    def orders_frame(self, order_filter: OrderFilter | None = None) -> pd.DataFrame:
        with self._lock:
            rows = [_order_row(o) for o in self._orders.values()]
        df = pd.DataFrame(rows, columns=ORDER_COLUMNS)
        if not df.empty:
            df["created_at"] = pd.to_datetime(df["created_at"], utc=True)
            df["actual_delivery_time"] = pd.to_datetime(df["actual_delivery_time"], utc=True)
        if order_filter is not None:
            df = df.loc[order_filter.to_mask(df)]
        return df

    def items_frame(self, order_filter: OrderFilter | None = None) -> pd.DataFrame:
        with self._lock:
            rows = [row for o in self._orders.values() for row in _item_rows(o)]
        df = pd.DataFrame(rows, columns=ITEM_COLUMNS)
        if not df.empty:
            df["created_at"] = pd.to_datetime(df["created_at"], utc=True)
        if order_filter is not None:
            # Item rows carry the columns the filter needs except order_type.
            orders = self.orders_frame(order_filter)
            df = df.loc[df["order_id"].isin(orders["id"])]
        return df

    # ── Query ────────────────────────────────────────────────────────────

    def find(
        self,
        order_filter: OrderFilter | None = None,
        sort_by: str = "created_at",
        descending: bool = True,
        skip: int = 0,
        limit: int | None = None,
    ) -> tuple[list[Order], int]:
        with self._lock:
            orders = list(self._orders.values())
        if order_filter is not None:
            keep = set(self.orders_frame(order_filter)["id"])
            orders = [o for o in orders if o.id in keep]
        total = len(orders)

        if sort_by not in SORTABLE_FIELDS:
            sort_by = "created_at"
        orders.sort(key=lambda o: getattr(o, sort_by), reverse=descending)

        end = skip + limit if limit is not None else None
        return orders[skip:end], total

    def count(self, order_filter: OrderFilter | None = None) -> int:
        if order_filter is None:
            return len(self._orders)
        return len(self.orders_frame(order_filter))
