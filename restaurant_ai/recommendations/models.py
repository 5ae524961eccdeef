from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, Field

from ..catalog.models import Allergen, MenuCategory, MenuItem
from ..orders.models import SpiceLevel


class PriceRange(BaseModel):
    min: float = Field(default=0, ge=0, le=1000)
    max: float = Field(default=100, ge=0, le=1000)


class DietaryPreferences(BaseModel):
    vegetarian: bool = False
    vegan: bool = False
    gluten_free: bool = False
    dairy_free: bool = False


class CustomerPreferences(BaseModel):
    """Per-request preferences; never persisted."""

    dietary: DietaryPreferences = Field(default_factory=DietaryPreferences)
    allergies: list[Allergen] = Field(default_factory=list)
    spice_level: SpiceLevel = SpiceLevel.medium
    price_range: PriceRange = Field(default_factory=PriceRange)
    category: MenuCategory | None = None
    ingredients: list[str] = Field(default_factory=list)


class RecommendationRequest(CustomerPreferences):
    # Past orders, each ``{"items": [{"category", "ingredients", "price"}]}``.
    # Kept loose on purpose: a malformed entry only disables ranking.
    customer_history: list[dict[str, Any]] = Field(default_factory=list)
    customer_identifier: str | None = Field(
        default=None, description="Phone or email used to load order history"
    )


@dataclass(frozen=True)
class ScoredCandidate:
    item: MenuItem
    score: float


class QuestionContext(BaseModel):
    category: str | None = None
    ingredients: list[str] = Field(default_factory=list)
    price_range: PriceRange | None = None


class QuestionRequest(BaseModel):
    question: str = Field(..., min_length=5, max_length=500)
    context: QuestionContext = Field(default_factory=QuestionContext)


class Budget(BaseModel):
    min: float = Field(default=0, ge=0)
    max: float = Field(default=100, ge=0)


class PersonalizedRequest(BaseModel):
    dietary_restrictions: list[
        Literal["vegetarian", "vegan", "gluten-free", "dairy-free"]
    ] = Field(default_factory=list)
    favorite_ingredients: list[str] = Field(default_factory=list)
    disliked_ingredients: list[str] = Field(default_factory=list)
    preferred_categories: list[MenuCategory] = Field(default_factory=list)
    budget: Budget = Field(default_factory=Budget)


class IngredientQuery(BaseModel):
    ingredients: list[str] = Field(..., min_length=1)
    exclude: bool = False


class DietaryQuery(BaseModel):
    vegetarian: bool = False
    vegan: bool = False
    gluten_free: bool = False
    dairy_free: bool = False
    spicy: bool | None = None


class PriceRangeQuery(BaseModel):
    min_price: float = 0
    max_price: float = 100
    sort_by: Literal["price", "rating", "popularity", "name"] = "price"


class CombinationQuery(BaseModel):
    category: MenuCategory | None = None
    dietary: DietaryQuery | None = None
    price_range: PriceRange | None = None
    ingredients: list[str] = Field(default_factory=list)
    exclude_ingredients: list[str] = Field(default_factory=list)
    limit: int = Field(default=15, ge=1, le=100)
