from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Callable

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware

from .analytics.cache import TTLCache
from .api import ai, analytics, menu, orders
from .catalog.seed import seed_catalog
from .catalog.store import CatalogStore
from .config import DEFAULT_APP_CONFIG, AppConfig
from .errors import register_error_handlers
from .llm.config import DEFAULT_LLM_CONFIG, LLMConfig
from .orders.store import OrderStore

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)
request_logger = logging.getLogger("restaurant_ai.requests")


def configure_logging(level: str) -> None:
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT)
    else:
        root.setLevel(level)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs every request with its status and elapsed time."""

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json"}

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start

        level = logging.WARNING if response.status_code >= 400 else logging.INFO
        request_logger.log(
            level,
            "%s %s - Status: %d - Time: %.3fs",
            request.method, request.url.path, response.status_code, elapsed,
        )
        return response


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def create_app(
    catalog: CatalogStore | None = None,
    order_store: OrderStore | None = None,
    cache: TTLCache | None = None,
    llm_config: LLMConfig = DEFAULT_LLM_CONFIG,
    config: AppConfig = DEFAULT_APP_CONFIG,
    clock: Callable[[], datetime] = _utcnow,
) -> FastAPI:
    configure_logging(config.log_level)

    app = FastAPI(title="Restaurant AI API", version="1.0.0")
    app.add_middleware(RequestLoggingMiddleware)
    register_error_handlers(app)

    if catalog is None:
        catalog = CatalogStore()
        if config.seed_on_startup:
            seed_catalog(catalog, config.seed_path)

    app.state.catalog = catalog
    app.state.orders = order_store if order_store is not None else OrderStore()
    app.state.analytics_cache = cache if cache is not None else TTLCache(ttl=config.analytics_cache_ttl)
    app.state.llm_config = llm_config
    app.state.clock = clock

    for router in (menu.router, orders.router, ai.router, analytics.router):
        app.include_router(router)

    @app.get("/health")
    def health() -> dict:
        return {
            "status": "OK",
            "timestamp": clock().isoformat(),
            "ai_service": "available" if llm_config.available else "unavailable",
        }

    logger.info(
        "Restaurant AI API ready: %d menu item(s), AI %s",
        len(catalog), "enabled" if llm_config.available else "disabled",
    )
    return app


app = create_app()
