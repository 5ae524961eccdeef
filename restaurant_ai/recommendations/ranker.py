from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Mapping

from ..catalog.models import MenuItem
from .models import ScoredCandidate

logger = logging.getLogger(__name__)

TOP_CATEGORIES = 3
TOP_INGREDIENTS = 10

RATING_WEIGHT = 0.4
POPULARITY_WEIGHT = 0.1
CATEGORY_BONUS = 0.3
INGREDIENT_BONUS = 0.2
PRICE_BONUS = 0.2


@dataclass(frozen=True)
class HistorySignals:
    preferred_categories: list[str] = field(default_factory=list)
    preferred_ingredients: list[str] = field(default_factory=list)
    price_min: float = 0.0
    price_max: float = 100.0


def _ingredient_name(ingredient: Any) -> str:
    if isinstance(ingredient, Mapping):
        return str(ingredient["name"])
    return str(ingredient)


def _history_items(history: list[Mapping[str, Any]]):
    for order in history:
        for item in order["items"]:
            # Accept either a flat snapshot or one nested under ``menu_item``.
            yield item, item.get("menu_item") or item


def derive_signals(history: list[Mapping[str, Any]]) -> HistorySignals:
    """Favoured categories, ingredients and price band from past orders."""
    category_counts: Counter[str] = Counter()
    ingredient_counts: Counter[str] = Counter()
    prices: list[float] = []

    for item, snapshot in _history_items(history):
        category = snapshot.get("category")
        if category:
            category_counts[str(category)] += 1
        for ingredient in snapshot.get("ingredients") or []:
            ingredient_counts[_ingredient_name(ingredient).lower()] += 1
        if "price" in item:
            prices.append(float(item["price"]))

    band = (min(prices) * 0.8, max(prices) * 1.2) if prices else (0.0, 100.0)
    # most_common keeps first-seen order among equal counts
    return HistorySignals(
        preferred_categories=[c for c, _ in category_counts.most_common(TOP_CATEGORIES)],
        preferred_ingredients=[i for i, _ in ingredient_counts.most_common(TOP_INGREDIENTS)],
        price_min=band[0],
        price_max=band[1],
    )


def score_candidate(item: MenuItem, signals: HistorySignals) -> float:
    score = item.rating.average * RATING_WEIGHT + item.popularity * POPULARITY_WEIGHT
    if item.category.value in signals.preferred_categories:
        score += CATEGORY_BONUS
    matches = sum(
        1 for ing in item.ingredients if ing.name.lower() in signals.preferred_ingredients
    )
    score += matches * INGREDIENT_BONUS
    if signals.price_min <= item.price <= signals.price_max:
        score += PRICE_BONUS
    return score


def score_candidates(
    candidates: list[MenuItem],
    history: list[Mapping[str, Any]],
) -> list[ScoredCandidate]:
    """Scored candidates, best first; ties keep their incoming order."""
    signals = derive_signals(history)
    scored = [ScoredCandidate(item, score_candidate(item, signals)) for item in candidates]
    return sorted(scored, key=lambda s: s.score, reverse=True)


def rank_by_history(
    candidates: list[MenuItem],
    history: list[Mapping[str, Any]],
) -> list[MenuItem]:
    """
    Re-order candidates by how well they fit the customer's order history.

    Returns the candidates untouched when history is empty or scoring fails.
    """
    if not history or not candidates:
        return list(candidates)
    try:
        return [s.item for s in score_candidates(candidates, history)]
    except Exception:
        logger.warning("History ranking failed, keeping original order", exc_info=True)
        return list(candidates)
