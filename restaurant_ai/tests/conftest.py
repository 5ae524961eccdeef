from __future__ import annotations

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from restaurant_ai.analytics.cache import TTLCache
from restaurant_ai.app import create_app
from restaurant_ai.catalog.models import Ingredient, MenuItem
from restaurant_ai.catalog.seed import seed_catalog
from restaurant_ai.catalog.store import CatalogStore
from restaurant_ai.config import AppConfig
from restaurant_ai.llm.config import LLMConfig
from restaurant_ai.orders.store import OrderStore

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)

NO_SEED = AppConfig(seed_on_startup=False)
DISABLED_LLM = LLMConfig(api_key="", enabled=False)


class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_item(name: str, **overrides) -> MenuItem:
    ingredients = overrides.pop("ingredients", [])
    data = {
        "name": name,
        "description": f"{name} prepared fresh in our kitchen",
        "category": "main",
        "price": 10.0,
        "ingredients": [
            i if isinstance(i, Ingredient) else Ingredient(name=i) for i in ingredients
        ],
    }
    data.update(overrides)
    return MenuItem(**data)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def catalog() -> CatalogStore:
    return CatalogStore()


@pytest.fixture
def seeded_catalog() -> CatalogStore:
    store = CatalogStore()
    seed_catalog(store, AppConfig().seed_path)
    return store


@pytest.fixture
def order_store() -> OrderStore:
    return OrderStore()


def _client(catalog, order_store, fake_clock, llm_config=DISABLED_LLM) -> TestClient:
    app = create_app(
        catalog=catalog,
        order_store=order_store,
        cache=TTLCache(ttl=300, clock=fake_clock),
        llm_config=llm_config,
        config=NO_SEED,
        clock=lambda: NOW,
    )
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def client(catalog, order_store, fake_clock) -> TestClient:
    return _client(catalog, order_store, fake_clock)


@pytest.fixture
def seeded_client(seeded_catalog, order_store, fake_clock) -> TestClient:
    return _client(seeded_catalog, order_store, fake_clock)
