from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

import pandas as pd

from ..catalog.store import CatalogStore
from ..errors import NotFoundError
from ..orders.models import OrderStatus
from ..orders.store import OrderFilter, OrderStore

_CANCELLED = OrderStatus.cancelled.value
_DELIVERED = OrderStatus.delivered.value

GROUPINGS: dict[str, list[str]] = {
    "hour": ["year", "month", "day", "hour"],
    "day": ["year", "month", "day"],
    "week": ["year", "week"],
    "month": ["year", "month"],
}

_SPICE_SCORES = {"mild": 1, "medium": 2, "hot": 3, "extra-hot": 4}


def _money(value: float) -> float:
    return round(float(value), 2)


def _iso(value: Any) -> str | None:
    if value is None or pd.isna(value):
        return None
    return pd.Timestamp(value).isoformat()


def _completed(start: datetime | None, end: datetime | None) -> OrderFilter:
    return OrderFilter(start_date=start, end_date=end, exclude_status=_CANCELLED)


def _add_period_columns(df: pd.DataFrame, group_by: str) -> list[str]:
    created = df["created_at"]
    if group_by == "week":
        iso = created.dt.isocalendar()
        df["year"] = iso["year"].astype(int)
        df["week"] = iso["week"].astype(int)
    else:
        df["year"] = created.dt.year
        df["month"] = created.dt.month
        df["day"] = created.dt.day
        df["hour"] = created.dt.hour
    return GROUPINGS[group_by]


# ── Sales ────────────────────────────────────────────────────────────────


def compute_sales(
    orders: OrderStore,
    start: datetime | None = None,
    end: datetime | None = None,
    group_by: str = "day",
    include_breakdown: bool = True,
) -> dict[str, Any]:
    df = orders.orders_frame(_completed(start, end)).copy()

    sales_data: list[dict[str, Any]] = []
    breakdown: list[dict[str, Any]] | None = [] if include_breakdown else None
    if not df.empty:
        keys = _add_period_columns(df, group_by)
        grouped = (
            df.groupby(keys, sort=True)
            .agg(
                total_orders=("id", "count"),
                total_revenue=("total", "sum"),
                total_items=("item_count", "sum"),
                average_order_value=("total", "mean"),
                average_items_per_order=("item_count", "mean"),
            )
            .reset_index()
        )
        for row in grouped.itertuples(index=False):
            sales_data.append({
                "period": {k: int(getattr(row, k)) for k in keys},
                "total_orders": int(row.total_orders),
                "total_revenue": _money(row.total_revenue),
                "total_items": int(row.total_items),
                "average_order_value": _money(row.average_order_value),
                "average_items_per_order": round(float(row.average_items_per_order), 2),
            })

        if include_breakdown:
            by_type = (
                df.groupby("order_type", sort=True)
                .agg(order_count=("id", "count"), revenue=("total", "sum"))
                .reset_index()
            )
            breakdown = [
                {"order_type": row.order_type, "count": int(row.order_count), "revenue": _money(row.revenue)}
                for row in by_type.itertuples(index=False)
            ]

    total_orders = sum(s["total_orders"] for s in sales_data)
    total_revenue = sum(s["total_revenue"] for s in sales_data)
    total_items = sum(s["total_items"] for s in sales_data)
    return {
        "sales_data": sales_data,
        "summary": {
            "total_orders": total_orders,
            "total_revenue": _money(total_revenue),
            "total_items": total_items,
            "average_order_value": _money(total_revenue / total_orders) if total_orders else 0.0,
            "average_items_per_order": round(total_items / total_orders, 2) if total_orders else 0.0,
        },
        "order_type_breakdown": breakdown,
        "group_by": group_by,
        "date_range": {"start_date": _iso(start), "end_date": _iso(end)},
    }


# ── Popular items ────────────────────────────────────────────────────────


def _item_totals(items: pd.DataFrame) -> pd.DataFrame:
    return (
        items.groupby("menu_item_id", sort=True)
        .agg(
            name=("name", "first"),
            total_orders=("order_id", "count"),
            total_quantity=("quantity", "sum"),
            total_revenue=("revenue", "sum"),
        )
        .reset_index()
    )


def _item_record(row: Any) -> dict[str, Any]:
    return {
        "menu_item_id": row.menu_item_id,
        "name": row.name,
        "total_orders": int(row.total_orders),
        "total_quantity": int(row.total_quantity),
        "total_revenue": _money(row.total_revenue),
    }


def _trending(items: pd.DataFrame, now: datetime) -> list[dict[str, Any]]:
    week_ago = pd.Timestamp(now - timedelta(days=7))
    two_weeks_ago = pd.Timestamp(now - timedelta(days=14))
    if items.empty:
        return []
    recent = items.loc[items["created_at"] >= week_ago].groupby("menu_item_id").size()
    previous = items.loc[
        (items["created_at"] >= two_weeks_ago) & (items["created_at"] < week_ago)
    ].groupby("menu_item_id").size()

    trending: list[dict[str, Any]] = []
    for item_id, recent_count in recent.items():
        previous_count = int(previous.get(item_id, 0))
        if previous_count > 0:
            growth = (recent_count - previous_count) / previous_count * 100
        else:
            growth = 100.0
        if growth > 20:
            trending.append({
                "menu_item_id": item_id,
                "recent_orders": int(recent_count),
                "previous_orders": previous_count,
                "growth": round(float(growth), 2),
            })
    trending.sort(key=lambda t: t["growth"], reverse=True)
    return trending[:10]


def compute_popular_items(
    orders: OrderStore,
    catalog: CatalogStore,
    now: datetime,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = 20,
    category: str | None = None,
    include_trends: bool = True,
) -> dict[str, Any]:
    items = orders.items_frame(_completed(start, end))
    if category is not None:
        items = items.loc[items["category"] == category]

    by_quantity: list[dict[str, Any]] = []
    by_revenue: list[dict[str, Any]] = []
    categories: list[dict[str, Any]] = []
    if not items.empty:
        totals = _item_totals(items)
        for row in totals.sort_values("total_quantity", ascending=False, kind="mergesort").head(limit).itertuples(index=False):
            try:
                menu_item = catalog.get(row.menu_item_id)
            except NotFoundError:
                continue
            record = _item_record(row)
            record["menu_item"] = {
                "id": menu_item.id,
                "name": menu_item.name,
                "category": menu_item.category.value,
                "price": menu_item.price,
                "rating": menu_item.rating.model_dump(),
                "image": menu_item.image,
            }
            by_quantity.append(record)

        by_revenue = [
            _item_record(row)
            for row in totals.sort_values("total_revenue", ascending=False, kind="mergesort")
            .head(limit).itertuples(index=False)
        ]

        by_category = (
            items.groupby("category", sort=True)
            .agg(total_orders=("order_id", "count"), total_revenue=("revenue", "sum"))
            .reset_index()
            .sort_values("total_revenue", ascending=False, kind="mergesort")
        )
        categories = [
            {
                "category": row.category,
                "total_orders": int(row.total_orders),
                "total_revenue": _money(row.total_revenue),
            }
            for row in by_category.itertuples(index=False)
        ]

    trending = None
    if include_trends:
        trending = _trending(orders.items_frame(OrderFilter(exclude_status=_CANCELLED)), now)

    return {
        "popular_by_quantity": by_quantity,
        "popular_by_revenue": by_revenue,
        "category_breakdown": categories,
        "trending_items": trending,
        "date_range": {"start_date": _iso(start), "end_date": _iso(end)},
    }


# ── Customers ────────────────────────────────────────────────────────────


def _segment(total_orders: int) -> str:
    if total_orders >= 10:
        return "vip"
    if total_orders >= 5:
        return "regular"
    if total_orders >= 2:
        return "occasional"
    return "new"


def compute_customer_insights(
    orders: OrderStore,
    start: datetime | None = None,
    end: datetime | None = None,
) -> dict[str, Any]:
    order_filter = _completed(start, end)
    df = orders.orders_frame(order_filter)
    df = df.loc[df["customer_phone"].notna()]

    frequency: list[dict[str, Any]] = []
    preferences: list[dict[str, Any]] = []
    retention: list[dict[str, Any]] = []
    if not df.empty:
        grouped = (
            df.groupby("customer_phone", sort=True)
            .agg(
                customer_name=("customer_name", "first"),
                customer_email=("customer_email", "first"),
                total_orders=("id", "count"),
                total_spent=("total", "sum"),
                first_order=("created_at", "min"),
                last_order=("created_at", "max"),
                average_order_value=("total", "mean"),
            )
            .reset_index()
            .sort_values("total_orders", ascending=False, kind="mergesort")
            .head(50)
        )
        for row in grouped.itertuples(index=False):
            frequency.append({
                "customer_phone": row.customer_phone,
                "customer_name": row.customer_name,
                "customer_email": None if pd.isna(row.customer_email) else row.customer_email,
                "total_orders": int(row.total_orders),
                "total_spent": _money(row.total_spent),
                "first_order": _iso(row.first_order),
                "last_order": _iso(row.last_order),
                "average_order_value": _money(row.average_order_value),
                "segment": _segment(int(row.total_orders)),
                "_span_days": (row.last_order - row.first_order).total_seconds() / 86400,
            })

        items = orders.items_frame(order_filter)
        spice = df.set_index("id")["spice_level"].map(_SPICE_SCORES)
        for phone, group in df.groupby("customer_phone", sort=True):
            lines = items.loc[items["order_id"].isin(group["id"])]
            preferences.append({
                "customer_phone": phone,
                "preferred_categories": sorted(set(lines["category"])),
                "preferred_ingredients": sorted({i for names in lines["ingredients"] for i in names}),
                "average_spice_level": round(float(spice.loc[group["id"]].mean()), 2),
            })
            dates = group["created_at"].sort_values().tolist()
            retention.append({
                "customer_phone": phone,
                "order_count": len(dates),
                "days_between_orders": [
                    round((b - a).total_seconds() / 86400, 2) for a, b in zip(dates, dates[1:])
                ],
            })

    segments: dict[str, list[dict[str, Any]]] = {"vip": [], "regular": [], "occasional": [], "new": []}
    lifetime_value: list[dict[str, Any]] = []
    for customer in frequency:
        span = customer.pop("_span_days")
        segments[customer["segment"]].append(customer)
        lifetime_value.append({
            **customer,
            "ltv": customer["total_spent"],
            "average_order_frequency": round(customer["total_orders"] / max(1.0, span), 4),
        })
    lifetime_value.sort(key=lambda c: c["ltv"], reverse=True)

    count = len(frequency)
    return {
        "customer_frequency": frequency,
        "customer_segments": segments,
        "customer_preferences": preferences,
        "customer_ltv": lifetime_value,
        "retention_data": retention,
        "summary": {
            "total_customers": count,
            "vip_customers": len(segments["vip"]),
            "regular_customers": len(segments["regular"]),
            "average_orders_per_customer": (
                round(sum(c["total_orders"] for c in frequency) / count, 2) if count else 0.0
            ),
            "average_customer_ltv": (
                _money(sum(c["ltv"] for c in lifetime_value) / count) if count else 0.0
            ),
        },
    }


# ── Operations ───────────────────────────────────────────────────────────


def compute_performance(
    orders: OrderStore,
    start: datetime | None = None,
    end: datetime | None = None,
) -> dict[str, Any]:
    all_orders = orders.orders_frame(OrderFilter(start_date=start, end_date=end))

    fulfillment: dict[str, float] = {}
    delivered = all_orders.loc[
        (all_orders["status"] == _DELIVERED) & all_orders["actual_delivery_time"].notna()
    ]
    if not delivered.empty:
        minutes = (
            delivered["actual_delivery_time"] - delivered["created_at"]
        ).dt.total_seconds() / 60
        fulfillment = {
            "average_fulfillment_time": round(float(minutes.mean()), 2),
            "min_fulfillment_time": round(float(minutes.min()), 2),
            "max_fulfillment_time": round(float(minutes.max()), 2),
        }

        dine_in = delivered.loc[
            (delivered["order_type"] == "dine-in") & delivered["table_number"].notna()
        ].assign(minutes=minutes)
        turnover = (
            dine_in.groupby("table_number", sort=True)
            .agg(total_orders=("id", "count"), average_turnover_time=("minutes", "mean"))
            .reset_index()
        )
        table_turnover = [
            {
                "table_number": int(row.table_number),
                "total_orders": int(row.total_orders),
                "average_turnover_time": round(float(row.average_turnover_time), 2),
            }
            for row in turnover.itertuples(index=False)
        ]
    else:
        table_turnover = []

    status_distribution = [
        {"status": str(status), "count": int(count)}
        for status, count in all_orders["status"].value_counts().sort_index().items()
    ]

    active = all_orders.loc[all_orders["status"] != _CANCELLED]
    peak_hours: list[dict[str, Any]] = []
    if not active.empty:
        hourly = (
            active.assign(hour=active["created_at"].dt.hour)
            .groupby("hour", sort=True)
            .agg(order_count=("id", "count"), total_revenue=("total", "sum"))
            .reset_index()
        )
        peak_hours = [
            {"hour": int(row.hour), "order_count": int(row.order_count), "total_revenue": _money(row.total_revenue)}
            for row in hourly.itertuples(index=False)
        ]

    total = len(all_orders)
    delivered_count = int((all_orders["status"] == _DELIVERED).sum()) if total else 0
    peak_hour = max(peak_hours, key=lambda h: h["order_count"], default=None)
    return {
        "fulfillment_time": fulfillment,
        "status_distribution": status_distribution,
        "peak_hours": peak_hours,
        "table_turnover": table_turnover,
        "operational_metrics": {
            "order_completion_rate": round(delivered_count / total, 4) if total else 0.0,
            "average_fulfillment_time": fulfillment.get("average_fulfillment_time", 0.0),
            "peak_hour": peak_hour,
        },
    }


def _window_metrics(df: pd.DataFrame, start: datetime, end: datetime | None = None) -> dict[str, Any]:
    mask = df["created_at"] >= pd.Timestamp(start)
    if end is not None:
        mask &= df["created_at"] < pd.Timestamp(end)
    window = df.loc[mask]
    return {
        "orders": int(len(window)),
        "revenue": _money(window["total"].sum()) if not window.empty else 0.0,
        "items": int(window["item_count"].sum()) if not window.empty else 0,
    }


def compute_dashboard(orders: OrderStore, now: datetime) -> dict[str, Any]:
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    yesterday = today - timedelta(days=1)
    week_start = today - timedelta(days=7)
    month_start = today.replace(day=1)

    active = orders.orders_frame(OrderFilter(exclude_status=_CANCELLED))
    recent, _ = orders.find(OrderFilter(exclude_status=_CANCELLED), limit=5)

    return {
        "today": _window_metrics(active, today),
        "yesterday": _window_metrics(active, yesterday, today),
        "this_week": _window_metrics(active, week_start),
        "this_month": _window_metrics(active, month_start),
        "current_status": {
            status.value: orders.count(OrderFilter(status=status.value))
            for status in (OrderStatus.pending, OrderStatus.confirmed, OrderStatus.preparing)
        },
        "recent_orders": [o.model_dump(mode="json") for o in recent],
        "last_updated": now.isoformat(),
    }
