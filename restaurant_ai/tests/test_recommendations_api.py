from __future__ import annotations

from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient

from restaurant_ai.app import create_app
from restaurant_ai.llm.config import LLMConfig
from restaurant_ai.llm.groq_client import UNAVAILABLE_ANSWER
from restaurant_ai.orders.store import OrderStore

from conftest import NO_SEED


def _names(items):
    return [i["name"] for i in items]


def _mock_groq_response(content: str) -> MagicMock:
    message = MagicMock()
    message.content = content
    choice = MagicMock()
    choice.message = message
    response = MagicMock()
    response.choices = [choice]
    return response


def test_recommendations_vegetarian_price_window(seeded_client):
    resp = seeded_client.post(
        "/api/ai/recommendations",
        json={"dietary": {"vegetarian": True}, "price_range": {"min": 10, "max": 25}},
    )

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert set(_names(data["recommendations"])) == {"Vegetarian Pasta", "Chocolate Lava Cake"}
    assert data["count"] == 2
    assert data["relaxed"] is False
    assert data["personalized"] is False
    assert data["preferences"]["spice_level"] == "medium"


def test_recommendations_relax_when_nothing_matches(seeded_client):
    resp = seeded_client.post(
        "/api/ai/recommendations",
        json={"dietary": {"vegan": True}, "category": "dessert"},
    )

    data = resp.json()["data"]
    assert data["relaxed"] is True
    assert data["count"] == 9
    assert all(item["dietary"]["vegetarian"] for item in data["recommendations"])


def test_recommendations_reject_bad_preferences(seeded_client):
    resp = seeded_client.post("/api/ai/recommendations", json={"spice_level": "volcanic"})

    assert resp.status_code == 400
    assert resp.json()["error"] == "Validation error"


def test_inline_history_reorders_candidates(seeded_client):
    history = [
        {"items": [{"category": "dessert", "ingredients": ["Chocolate"], "price": 11.99}]}
        for _ in range(3)
    ]
    prefs = {"dietary": {"vegetarian": True}, "price_range": {"min": 10, "max": 25}}

    plain = seeded_client.post("/api/ai/recommendations", json=prefs).json()["data"]
    ranked = seeded_client.post(
        "/api/ai/recommendations", json={**prefs, "customer_history": history}
    ).json()["data"]

    assert _names(plain["recommendations"]) == ["Vegetarian Pasta", "Chocolate Lava Cake"]
    assert _names(ranked["recommendations"]) == ["Chocolate Lava Cake", "Vegetarian Pasta"]
    assert ranked["personalized"] is True
    assert "customer_history" not in ranked["preferences"]


def test_malformed_history_keeps_matcher_order(seeded_client):
    prefs = {"dietary": {"vegetarian": True}, "price_range": {"min": 10, "max": 25}}

    resp = seeded_client.post(
        "/api/ai/recommendations", json={**prefs, "customer_history": [{"oops": 1}]}
    )

    assert resp.status_code == 200
    assert _names(resp.json()["data"]["recommendations"]) == ["Vegetarian Pasta", "Chocolate Lava Cake"]


def test_history_loaded_from_order_store(seeded_client):
    cake_id = next(
        i["id"] for i in seeded_client.get("/api/menu/category/dessert").json()["data"]
        if i["name"] == "Chocolate Lava Cake"
    )
    seeded_client.post("/api/orders", json={
        "customer": {"name": "Ada Lovelace", "phone": "5551234567"},
        "items": [{"menu_item_id": cake_id, "quantity": 1}],
        "order_type": "takeaway",
    })

    data = seeded_client.post("/api/ai/recommendations", json={
        "dietary": {"vegetarian": True},
        "price_range": {"min": 10, "max": 25},
        "customer_identifier": "5551234567",
    }).json()["data"]

    assert data["personalized"] is True
    assert _names(data["recommendations"])[0] == "Chocolate Lava Cake"


def test_specials_fall_back_to_original_description(seeded_client):
    data = seeded_client.get("/api/ai/specials").json()["data"]

    assert data["count"] == 2
    assert _names(data["specials"]) == ["Chicken Wings", "Chocolate Lava Cake"]
    for special in data["specials"]:
        assert special["enhanced_description"] == special["description"]
        assert special["enhancement"] == {
            "outcome": "short_circuit", "source": "fallback", "fallback_used": True,
        }


@patch("restaurant_ai.llm.groq_client.Groq")
def test_specials_use_llm_when_configured(mock_groq_cls, seeded_catalog):
    mock_groq_cls.return_value.chat.completions.create.return_value = _mock_groq_response(
        "An irresistible house favourite."
    )
    app = create_app(
        catalog=seeded_catalog,
        order_store=OrderStore(),
        llm_config=LLMConfig(api_key="test-key", enabled=True),
        config=NO_SEED,
    )

    data = TestClient(app).get("/api/ai/specials").json()["data"]

    assert all(s["enhanced_description"] == "An irresistible house favourite." for s in data["specials"])
    assert all(s["enhancement"]["source"] == "ai" for s in data["specials"])


def test_ask_without_credentials_returns_fallback(seeded_client):
    resp = seeded_client.post(
        "/api/ai/ask",
        json={"question": "What vegan options do you have?", "context": {"category": "main"}},
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["data"] == {"answer": UNAVAILABLE_ANSWER, "source": "fallback", "outcome": "short_circuit"}
    assert body["question"] == "What vegan options do you have?"


@patch("restaurant_ai.llm.groq_client.Groq")
def test_ask_passes_menu_context_to_llm(mock_groq_cls, seeded_catalog):
    mock_groq_cls.return_value.chat.completions.create.return_value = _mock_groq_response(
        "Try the Vegetarian Pasta."
    )
    app = create_app(
        catalog=seeded_catalog,
        order_store=OrderStore(),
        llm_config=LLMConfig(api_key="test-key", enabled=True),
        config=NO_SEED,
    )

    body = TestClient(app).post("/api/ai/ask", json={
        "question": "Anything with basil?",
        "context": {"ingredients": ["basil"], "price_range": {"min": 0, "max": 20}},
    }).json()

    assert body["data"]["source"] == "ai"
    prompt = mock_groq_cls.return_value.chat.completions.create.call_args.kwargs["messages"][1]["content"]
    assert "Ingredients: basil - " in prompt
    assert "Vegetarian Pasta" in prompt
    assert "Price range: $0-$20" in prompt


def test_ask_validates_question_length(seeded_client):
    resp = seeded_client.post("/api/ai/ask", json={"question": "Hi"})

    assert resp.status_code == 400


def test_personalized_boosts_favourite_ingredients(seeded_client):
    data = seeded_client.post("/api/ai/personalized", json={
        "dietary_restrictions": ["vegetarian"],
        "favorite_ingredients": ["tomato"],
        "budget": {"min": 0, "max": 20},
    }).json()["data"]

    names = _names(data["suggestions"])
    assert set(names[:3]) == {"Bruschetta", "Vegetarian Pasta", "Garden Salad"}
    assert data["count"] == len(names) <= 10


def test_personalized_excludes_disliked_ingredients(seeded_client):
    data = seeded_client.post("/api/ai/personalized", json={
        "disliked_ingredients": ["flour", "dairy", "milk", "cheese", "yogurt"],
        "preferred_categories": ["appetizer", "dessert"],
        "budget": {"min": 0, "max": 50},
    }).json()["data"]

    assert set(_names(data["suggestions"])) == {"Bruschetta", "Guacamole & Chips"}


def test_ingredients_include_and_exclude(seeded_client):
    include = seeded_client.post("/api/ai/ingredients", json={"ingredients": ["basil"]}).json()["data"]
    exclude = seeded_client.post(
        "/api/ai/ingredients", json={"ingredients": ["basil"], "exclude": True}
    ).json()["data"]

    assert set(_names(include["items"])) == {"Bruschetta", "Vegetarian Pasta"}
    assert "Bruschetta" not in _names(exclude["items"])
    assert exclude["count"] == 11


def test_dietary_search(seeded_client):
    data = seeded_client.post("/api/ai/dietary", json={"gluten_free": True, "spicy": True}).json()["data"]

    assert _names(data["items"]) == ["Spicy Tacos"]


def test_price_range_sorted_by_price(seeded_client):
    data = seeded_client.post(
        "/api/ai/price-range", json={"min_price": 5, "max_price": 10, "sort_by": "price"}
    ).json()["data"]

    prices = [i["price"] for i in data["items"]]
    assert prices == sorted(prices)
    assert all(5 <= p <= 10 for p in prices)


def test_invalid_price_range_is_400(seeded_client):
    resp = seeded_client.post("/api/ai/price-range", json={"min_price": 30, "max_price": 10})

    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid price range"


def test_combination_search(seeded_client):
    data = seeded_client.post("/api/ai/combination", json={
        "category": "appetizer",
        "dietary": {"vegetarian": True},
        "exclude_ingredients": ["mozzarella"],
    }).json()["data"]

    assert _names(data["items"]) == ["Guacamole & Chips"]


def test_trending_orders_by_popularity(seeded_client):
    wings_id = next(
        i["id"] for i in seeded_client.get("/api/menu/category/appetizer").json()["data"]
        if i["name"] == "Chicken Wings"
    )
    seeded_client.post("/api/orders", json={
        "customer": {"name": "Ada Lovelace"},
        "items": [{"menu_item_id": wings_id, "quantity": 1}],
        "order_type": "takeaway",
    })

    data = seeded_client.get("/api/ai/trending", params={"limit": 3, "timeframe": "month"}).json()["data"]

    assert data["count"] == 3
    assert data["items"][0]["name"] == "Chicken Wings"
    assert data["timeframe"] == "month"


def test_ai_health_reports_configuration(seeded_client):
    body = seeded_client.get("/api/ai/health").json()

    assert body["success"] is True
    assert body["ai_service"] == "unavailable"
    assert body["model"]
