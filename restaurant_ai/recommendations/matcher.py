from __future__ import annotations

import logging
from dataclasses import dataclass

from ..catalog.filters import BEST_FIRST, MenuFilter
from ..catalog.models import Availability, MenuItem
from ..catalog.store import CatalogStore
from ..orders.models import SpiceLevel
from .models import CustomerPreferences

logger = logging.getLogger(__name__)

MAX_CANDIDATES = 10


@dataclass(frozen=True)
class MatchResult:
    items: list[MenuItem]
    relaxed: bool


def _spicy_constraint(spice_level: SpiceLevel) -> bool | None:
    if spice_level == SpiceLevel.mild:
        return False
    if spice_level in (SpiceLevel.hot, SpiceLevel.extra_hot):
        return True
    return None


def build_preference_filter(prefs: CustomerPreferences) -> MenuFilter:
    """Primary filter: every stated preference must hold at once."""
    dietary = prefs.dietary
    return MenuFilter(
        availability=Availability.available.value,
        vegetarian=True if dietary.vegetarian else None,
        vegan=True if dietary.vegan else None,
        gluten_free=True if dietary.gluten_free else None,
        dairy_free=True if dietary.dairy_free else None,
        spicy=_spicy_constraint(prefs.spice_level),
        min_price=prefs.price_range.min,
        max_price=prefs.price_range.max,
        category=prefs.category.value if prefs.category else None,
        exclude_allergens=[a.value for a in prefs.allergies],
        ingredient_names_any=list(prefs.ingredients),
    )


def build_relaxed_filter(prefs: CustomerPreferences) -> MenuFilter:
    """Fallback filter: availability plus vegetarian when vegetarian or vegan was asked."""
    wants_meat_free = prefs.dietary.vegetarian or prefs.dietary.vegan
    return MenuFilter(
        availability=Availability.available.value,
        vegetarian=True if wants_meat_free else None,
    )


def match_preferences(
    catalog: CatalogStore,
    prefs: CustomerPreferences,
    limit: int = MAX_CANDIDATES,
) -> MatchResult:
    """Best-rated items satisfying *prefs*, relaxing once when nothing matches."""
    items, _ = catalog.find(build_preference_filter(prefs), sort=BEST_FIRST, limit=limit)
    if items:
        return MatchResult(items=items, relaxed=False)

    logger.info("No exact preference match, retrying with relaxed filter")
    items, _ = catalog.find(build_relaxed_filter(prefs), sort=BEST_FIRST, limit=limit)
    return MatchResult(items=items, relaxed=True)
