from __future__ import annotations

from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, Query

from ..catalog.store import CatalogStore
from ..orders import service
from ..orders.models import (
    CancelRequest,
    OrderCreate,
    OrderItemRequest,
    OrderStatus,
    OrderType,
    OrderUpdate,
    StatusUpdate,
)
from ..orders.store import OrderFilter, OrderStore
from ..responses import ok, paginated
from .dependencies import Clock, as_utc, get_catalog, get_clock, get_orders

router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.post("", status_code=201)
def create_order(
    payload: OrderCreate,
    catalog: CatalogStore = Depends(get_catalog),
    orders: OrderStore = Depends(get_orders),
    clock: Clock = Depends(get_clock),
) -> dict:
    order = service.create_order(payload, catalog, orders, clock=clock)
    return ok(order, message="Order created successfully")


@router.get("")
def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: OrderStatus | None = None,
    order_type: OrderType | None = None,
    customer_phone: str | None = None,
    customer_email: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    sort_by: Literal["created_at", "updated_at", "total", "status", "order_number"] = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    orders: OrderStore = Depends(get_orders),
) -> dict:
    order_filter = OrderFilter(
        status=status.value if status else None,
        order_type=order_type.value if order_type else None,
        customer_phone=customer_phone,
        customer_email=customer_email,
        start_date=as_utc(start_date),
        end_date=as_utc(end_date),
    )
    found, total = orders.find(
        order_filter,
        sort_by=sort_by,
        descending=sort_order == "desc",
        skip=(page - 1) * limit,
        limit=limit,
    )
    return paginated(found, total, page, limit)


@router.get("/stats/summary")
def order_stats(
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    orders: OrderStore = Depends(get_orders),
) -> dict:
    return ok(service.summary_stats(orders, as_utc(start_date), as_utc(end_date)))


@router.get("/kitchen/display")
def kitchen_display(orders: OrderStore = Depends(get_orders)) -> dict:
    queue = service.kitchen_queue(orders)
    return ok(queue, count=len(queue))


@router.get("/number/{order_number}")
def get_order_by_number(order_number: str, orders: OrderStore = Depends(get_orders)) -> dict:
    return ok(orders.get_by_number(order_number))


@router.get("/customer/{identifier}")
def get_customer_orders(identifier: str, orders: OrderStore = Depends(get_orders)) -> dict:
    found = service.orders_for_customer(orders, identifier)
    return ok(found, count=len(found))


@router.get("/status/{status}")
def get_orders_by_status(status: OrderStatus, orders: OrderStore = Depends(get_orders)) -> dict:
    found, total = orders.find(OrderFilter(status=status.value), descending=False)
    return ok(found, count=total)


@router.get("/{order_id}")
def get_order(order_id: str, orders: OrderStore = Depends(get_orders)) -> dict:
    return ok(orders.get(order_id))


@router.patch("/{order_id}/status")
def update_order_status(
    order_id: str,
    payload: StatusUpdate,
    orders: OrderStore = Depends(get_orders),
    clock: Clock = Depends(get_clock),
) -> dict:
    order = service.update_status(orders, order_id, payload.status, payload.notes, clock=clock)
    return ok(order, message=f"Order status updated to {payload.status.value}")


@router.put("/{order_id}")
def update_order(
    order_id: str,
    payload: OrderUpdate,
    orders: OrderStore = Depends(get_orders),
    clock: Clock = Depends(get_clock),
) -> dict:
    return ok(service.update_order(orders, order_id, payload, clock=clock), message="Order updated successfully")


@router.post("/{order_id}/items")
def add_order_item(
    order_id: str,
    payload: OrderItemRequest,
    catalog: CatalogStore = Depends(get_catalog),
    orders: OrderStore = Depends(get_orders),
    clock: Clock = Depends(get_clock),
) -> dict:
    order = service.add_item(
        orders,
        catalog,
        order_id,
        payload.menu_item_id,
        payload.quantity,
        payload.special_instructions,
        payload.customization,
        clock=clock,
    )
    return ok(order, message="Item added to order")


@router.delete("/{order_id}/items/{item_index}")
def remove_order_item(
    order_id: str,
    item_index: int,
    orders: OrderStore = Depends(get_orders),
    clock: Clock = Depends(get_clock),
) -> dict:
    order = service.remove_item(orders, order_id, item_index, clock=clock)
    return ok(order, message="Item removed from order")


@router.patch("/{order_id}/cancel")
def cancel_order(
    order_id: str,
    payload: CancelRequest | None = None,
    orders: OrderStore = Depends(get_orders),
    clock: Clock = Depends(get_clock),
) -> dict:
    reason = payload.reason if payload else None
    order = service.cancel_order(orders, order_id, reason, clock=clock)
    return ok(order, message="Order cancelled successfully")
