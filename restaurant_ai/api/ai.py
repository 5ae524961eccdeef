from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Query

from ..catalog.store import CatalogStore
from ..llm.config import LLMConfig
from ..orders.store import OrderStore
from ..recommendations import retrieval
from ..recommendations.models import (
    CombinationQuery,
    DietaryQuery,
    IngredientQuery,
    PersonalizedRequest,
    PriceRangeQuery,
    QuestionRequest,
    RecommendationRequest,
)
from ..responses import ok
from .dependencies import Clock, get_catalog, get_clock, get_llm_config, get_orders

router = APIRouter(prefix="/api/ai", tags=["ai"])


@router.post("/recommendations")
def recommend(
    request: RecommendationRequest,
    catalog: CatalogStore = Depends(get_catalog),
    orders: OrderStore = Depends(get_orders),
) -> dict:
    result = retrieval.get_recommendations(request, catalog, orders)
    return ok(
        result,
        message=f"Found {result['count']} recommendations based on your preferences",
    )


@router.get("/specials")
def daily_specials(
    catalog: CatalogStore = Depends(get_catalog),
    config: LLMConfig = Depends(get_llm_config),
) -> dict:
    specials = retrieval.get_daily_specials(catalog, config)
    message = f"Found {len(specials)} specials today" if specials else "No specials available today"
    return ok({"specials": specials, "count": len(specials)}, message=message)


@router.post("/ask")
def ask_question(
    request: QuestionRequest,
    catalog: CatalogStore = Depends(get_catalog),
    config: LLMConfig = Depends(get_llm_config),
) -> dict:
    result = retrieval.ask(request.question, request.context, catalog, config)
    return ok(
        {"answer": result.value, "source": result.source, "outcome": result.outcome.value},
        question=request.question,
    )


@router.post("/personalized")
def personalized(
    request: PersonalizedRequest,
    catalog: CatalogStore = Depends(get_catalog),
) -> dict:
    suggestions = retrieval.get_personalized_suggestions(request, catalog)
    return ok(
        {"suggestions": suggestions, "count": len(suggestions)},
        message=f"Found {len(suggestions)} personalized suggestions",
    )


@router.post("/ingredients")
def by_ingredients(
    query: IngredientQuery,
    catalog: CatalogStore = Depends(get_catalog),
) -> dict:
    items = retrieval.find_by_ingredients(query, catalog)
    return ok({"items": items, "count": len(items), "ingredients": query.ingredients, "exclude": query.exclude})


@router.post("/dietary")
def by_dietary(query: DietaryQuery, catalog: CatalogStore = Depends(get_catalog)) -> dict:
    items = retrieval.find_by_dietary(query, catalog)
    return ok({"items": items, "count": len(items), "filters": query.model_dump()})


@router.post("/price-range")
def by_price_range(query: PriceRangeQuery, catalog: CatalogStore = Depends(get_catalog)) -> dict:
    items = retrieval.find_by_price_range(query, catalog)
    return ok({
        "items": items,
        "count": len(items),
        "price_range": {"min": query.min_price, "max": query.max_price},
        "sort_by": query.sort_by,
    })


@router.post("/combination")
def by_combination(query: CombinationQuery, catalog: CatalogStore = Depends(get_catalog)) -> dict:
    items = retrieval.find_combination(query, catalog)
    return ok({"items": items, "count": len(items), "criteria": query.model_dump(mode="json")})


@router.get("/trending")
def trending(
    limit: int = Query(10, ge=1, le=100),
    timeframe: Literal["day", "week", "month"] = "week",
    catalog: CatalogStore = Depends(get_catalog),
    clock: Clock = Depends(get_clock),
) -> dict:
    items = retrieval.find_trending(catalog, limit=limit, timeframe=timeframe, now=clock())
    return ok(
        {"items": items, "count": len(items), "timeframe": timeframe},
        message=f"Top {len(items)} trending items this {timeframe}",
    )


@router.get("/health")
def ai_health(
    config: LLMConfig = Depends(get_llm_config),
    clock: Clock = Depends(get_clock),
) -> dict:
    return ok(
        status="operational",
        ai_service="available" if config.available else "unavailable",
        model=config.model,
        timestamp=clock().isoformat(),
    )
