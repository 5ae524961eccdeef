from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Literal

from fastapi import APIRouter, Depends, Query

from ..analytics import aggregator
from ..analytics.cache import TTLCache, make_key
from ..catalog.models import MenuCategory
from ..catalog.store import CatalogStore
from ..orders.store import OrderStore
from ..responses import ok
from .dependencies import Clock, as_utc, get_cache, get_catalog, get_clock, get_orders

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


def _cached(cache: TTLCache, name: str, params: dict[str, Any], compute: Callable[[], Any]) -> dict:
    key = make_key(name, params)
    data, cached = cache.get_or_compute(key, compute)
    created_at = cache.created_at(key)
    last_updated = (
        datetime.fromtimestamp(created_at, timezone.utc).isoformat() if created_at is not None else None
    )
    if not cached:
        logger.debug("Recomputed analytics aggregate %s", key)
    return ok(data, cached=cached, last_updated=last_updated)


@router.get("/sales")
def sales(
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    group_by: Literal["hour", "day", "week", "month"] = "day",
    include_breakdown: bool = True,
    orders: OrderStore = Depends(get_orders),
    cache: TTLCache = Depends(get_cache),
) -> dict:
    start, end = as_utc(start_date), as_utc(end_date)
    return _cached(
        cache,
        "sales",
        {"start": start, "end": end, "group_by": group_by, "breakdown": include_breakdown},
        lambda: aggregator.compute_sales(orders, start, end, group_by, include_breakdown),
    )


@router.get("/popular-items")
def popular_items(
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    limit: int = Query(20, ge=1, le=100),
    category: MenuCategory | None = None,
    include_trends: bool = True,
    orders: OrderStore = Depends(get_orders),
    catalog: CatalogStore = Depends(get_catalog),
    cache: TTLCache = Depends(get_cache),
    clock: Clock = Depends(get_clock),
) -> dict:
    start, end = as_utc(start_date), as_utc(end_date)
    category_value = category.value if category else None
    return _cached(
        cache,
        "popular_items",
        {
            "start": start,
            "end": end,
            "limit": limit,
            "category": category_value,
            "trends": include_trends,
        },
        lambda: aggregator.compute_popular_items(
            orders,
            catalog,
            now=clock(),
            start=start,
            end=end,
            limit=limit,
            category=category_value,
            include_trends=include_trends,
        ),
    )


@router.get("/customer-insights")
def customer_insights(
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    orders: OrderStore = Depends(get_orders),
    cache: TTLCache = Depends(get_cache),
) -> dict:
    start, end = as_utc(start_date), as_utc(end_date)
    return _cached(
        cache,
        "customer_insights",
        {"start": start, "end": end},
        lambda: aggregator.compute_customer_insights(orders, start, end),
    )


@router.get("/performance")
def performance(
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    orders: OrderStore = Depends(get_orders),
) -> dict:
    return ok(aggregator.compute_performance(orders, as_utc(start_date), as_utc(end_date)))


@router.get("/dashboard")
def dashboard(
    orders: OrderStore = Depends(get_orders),
    clock: Clock = Depends(get_clock),
) -> dict:
    return ok(aggregator.compute_dashboard(orders, clock()))


@router.delete("/cache")
def clear_cache(cache: TTLCache = Depends(get_cache)) -> dict:
    cache.clear()
    logger.info("Analytics cache cleared")
    return ok(message="Analytics cache cleared successfully")


@router.get("/cache/stats")
def cache_stats(cache: TTLCache = Depends(get_cache)) -> dict:
    return ok(cache.stats())
