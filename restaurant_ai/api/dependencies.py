from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

from fastapi import Request

from ..analytics.cache import TTLCache
from ..catalog.store import CatalogStore
from ..llm.config import LLMConfig
from ..orders.store import OrderStore


def get_catalog(request: Request) -> CatalogStore:
    return request.app.state.catalog


def get_orders(request: Request) -> OrderStore:
    return request.app.state.orders


def get_cache(request: Request) -> TTLCache:
    return request.app.state.analytics_cache


def get_llm_config(request: Request) -> LLMConfig:
    return request.app.state.llm_config


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive query datetimes as UTC so they compare with stored timestamps."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


Clock = Callable[[], datetime]


def get_clock(request: Request) -> Clock:
    return request.app.state.clock
