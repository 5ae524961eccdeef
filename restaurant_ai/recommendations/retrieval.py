from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from ..catalog.filters import BEST_FIRST, MOST_POPULAR_FIRST, MenuFilter
from ..catalog.models import Availability, MenuItem
from ..catalog.store import CatalogStore
from ..errors import BadRequestError
from ..llm.config import DEFAULT_LLM_CONFIG, LLMConfig
from ..llm.groq_client import EnrichmentResult, answer_question, enhance_description
from ..orders.service import orders_for_customer
from ..orders.store import OrderStore
from .matcher import match_preferences
from .models import (
    CombinationQuery,
    DietaryQuery,
    IngredientQuery,
    PersonalizedRequest,
    PriceRangeQuery,
    QuestionContext,
    RecommendationRequest,
)
from .ranker import rank_by_history

logger = logging.getLogger(__name__)

_AVAILABLE = Availability.available.value
_CONTEXT_ITEMS = 5
_TRENDING_WINDOWS = {
    "day": timedelta(days=1),
    "week": timedelta(days=7),
    "month": timedelta(days=30),
}
_PRICE_SORTS = {
    "price": [("price", False)],
    "rating": [("rating", True)],
    "popularity": [("popularity", True)],
    "name": [("name", False)],
}


def get_recommendations(
    request: RecommendationRequest,
    catalog: CatalogStore,
    orders: OrderStore | None = None,
) -> dict[str, Any]:
    match = match_preferences(catalog, request)
    items = match.items

    history = request.customer_history
    if not history and request.customer_identifier and orders is not None:
        history = [
            o.model_dump(mode="json")
            for o in orders_for_customer(orders, request.customer_identifier)
        ]

    personalized = bool(history) and bool(items)
    if personalized:
        items = rank_by_history(items, history)

    preferences = request.model_dump(
        mode="json", exclude={"customer_history", "customer_identifier"}
    )
    logger.info(
        "Recommendations: %d item(s), relaxed=%s, personalized=%s",
        len(items), match.relaxed, personalized,
    )
    return {
        "recommendations": items,
        "count": len(items),
        "relaxed": match.relaxed,
        "personalized": personalized,
        "preferences": preferences,
    }


def _enhanced(item: MenuItem, config: LLMConfig) -> dict[str, Any]:
    result: EnrichmentResult = enhance_description(
        item.description, item.ingredient_names(), config=config,
    )
    data = item.model_dump(mode="json")
    data["enhanced_description"] = result.value
    data["enhancement"] = result.to_dict()
    return data


def get_daily_specials(
    catalog: CatalogStore,
    config: LLMConfig = DEFAULT_LLM_CONFIG,
) -> list[dict[str, Any]]:
    specials, _ = catalog.find(
        MenuFilter(is_special=True, availability=_AVAILABLE), sort=[("name", False)],
    )
    return [_enhanced(item, config) for item in specials]


def build_menu_context(catalog: CatalogStore, context: QuestionContext) -> str:
    """Summarise catalog items relevant to a question, one line per facet."""
    lines: list[str] = []

    if context.category:
        items, _ = catalog.find(
            MenuFilter(category=context.category, availability=_AVAILABLE),
            limit=_CONTEXT_ITEMS,
        )
        lines.append(f"Category: {context.category} - {', '.join(i.name for i in items)}")

    if context.ingredients:
        items, _ = catalog.find(
            MenuFilter(ingredient_names_any=context.ingredients, availability=_AVAILABLE),
            limit=_CONTEXT_ITEMS,
        )
        lines.append(
            f"Ingredients: {', '.join(context.ingredients)} - "
            f"{', '.join(i.name for i in items)}"
        )

    if context.price_range:
        low, high = context.price_range.min, context.price_range.max
        items, _ = catalog.find(
            MenuFilter(min_price=low, max_price=high, availability=_AVAILABLE),
            limit=_CONTEXT_ITEMS,
        )
        lines.append(f"Price range: ${low:g}-${high:g} - {', '.join(i.name for i in items)}")

    return "\n".join(lines)


def ask(
    question: str,
    context: QuestionContext,
    catalog: CatalogStore,
    config: LLMConfig = DEFAULT_LLM_CONFIG,
) -> EnrichmentResult:
    return answer_question(question, build_menu_context(catalog, context), config=config)


def get_personalized_suggestions(
    request: PersonalizedRequest,
    catalog: CatalogStore,
) -> list[MenuItem]:
    restrictions = set(request.dietary_restrictions)
    menu_filter = MenuFilter(
        availability=_AVAILABLE,
        vegetarian=True if "vegetarian" in restrictions else None,
        vegan=True if "vegan" in restrictions else None,
        gluten_free=True if "gluten-free" in restrictions else None,
        dairy_free=True if "dairy-free" in restrictions else None,
        min_price=request.budget.min,
        max_price=request.budget.max,
        categories=[c.value for c in request.preferred_categories],
        exclude_ingredient_names=request.disliked_ingredients,
    )
    suggestions, _ = catalog.find(menu_filter, sort=BEST_FIRST, limit=15)

    favorites = [f.lower() for f in request.favorite_ingredients if f.strip()]
    if favorites:
        def boost(item: MenuItem) -> float:
            matches = sum(
                1 for ing in item.ingredients
                if any(fav in ing.name.lower() for fav in favorites)
            )
            return item.rating.average + matches * 0.5

        suggestions = sorted(suggestions, key=boost, reverse=True)

    return suggestions[:10]


def find_by_ingredients(query: IngredientQuery, catalog: CatalogStore) -> list[MenuItem]:
    if query.exclude:
        menu_filter = MenuFilter(availability=_AVAILABLE, exclude_ingredient_names=query.ingredients)
    else:
        menu_filter = MenuFilter(availability=_AVAILABLE, ingredient_names_any=query.ingredients)
    items, _ = catalog.find(menu_filter, sort=BEST_FIRST, limit=15)
    return items


def _dietary_filter(query: DietaryQuery, **extra: Any) -> MenuFilter:
    return MenuFilter(
        vegetarian=True if query.vegetarian else None,
        vegan=True if query.vegan else None,
        gluten_free=True if query.gluten_free else None,
        dairy_free=True if query.dairy_free else None,
        spicy=query.spicy,
        **extra,
    )


def find_by_dietary(query: DietaryQuery, catalog: CatalogStore) -> list[MenuItem]:
    items, _ = catalog.find(_dietary_filter(query, availability=_AVAILABLE), sort=BEST_FIRST, limit=20)
    return items


def find_by_price_range(query: PriceRangeQuery, catalog: CatalogStore) -> list[MenuItem]:
    if query.min_price < 0 or query.max_price < 0 or query.min_price > query.max_price:
        raise BadRequestError("Invalid price range")
    items, _ = catalog.find(
        MenuFilter(min_price=query.min_price, max_price=query.max_price, availability=_AVAILABLE),
        sort=_PRICE_SORTS[query.sort_by],
        limit=25,
    )
    return items


def find_combination(query: CombinationQuery, catalog: CatalogStore) -> list[MenuItem]:
    extra: dict[str, Any] = {
        "availability": _AVAILABLE,
        "category": query.category.value if query.category else None,
        "ingredient_names_any": query.ingredients,
        "exclude_ingredient_names": query.exclude_ingredients,
    }
    if query.price_range:
        extra["min_price"] = query.price_range.min
        extra["max_price"] = query.price_range.max
    menu_filter = _dietary_filter(query.dietary, **extra) if query.dietary else MenuFilter(**extra)
    items, _ = catalog.find(menu_filter, sort=BEST_FIRST, limit=query.limit)
    return items


def find_trending(
    catalog: CatalogStore,
    limit: int = 10,
    timeframe: str = "week",
    now: datetime | None = None,
) -> list[MenuItem]:
    window = _TRENDING_WINDOWS.get(timeframe)
    created_after = None
    if window is not None:
        created_after = (now or datetime.now(timezone.utc)) - window
    items, _ = catalog.find(
        MenuFilter(availability=_AVAILABLE, created_after=created_after),
        sort=MOST_POPULAR_FIRST,
        limit=limit,
    )
    return items
