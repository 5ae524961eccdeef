from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field


class MenuCategory(str, Enum):
    appetizer = "appetizer"
    main = "main"
    dessert = "dessert"
    beverage = "beverage"
    side = "side"
    salad = "salad"
    soup = "soup"


class IngredientCategory(str, Enum):
    vegetable = "vegetable"
    meat = "meat"
    dairy = "dairy"
    grain = "grain"
    spice = "spice"
    other = "other"


class Allergen(str, Enum):
    gluten = "gluten"
    dairy = "dairy"
    nuts = "nuts"
    shellfish = "shellfish"
    eggs = "eggs"
    soy = "soy"
    fish = "fish"
    wheat = "wheat"


class Availability(str, Enum):
    available = "available"
    limited = "limited"
    unavailable = "unavailable"


class NutritionalInfo(BaseModel):
    calories: float | None = Field(default=None, ge=0)
    protein: float | None = Field(default=None, ge=0)
    carbs: float | None = Field(default=None, ge=0)
    fat: float | None = Field(default=None, ge=0)
    fiber: float | None = Field(default=None, ge=0)


class Ingredient(BaseModel):
    name: str = Field(..., min_length=1)
    category: IngredientCategory = IngredientCategory.other
    allergens: list[Allergen] = Field(default_factory=list)
    nutritional_info: NutritionalInfo | None = None


class DietaryFlags(BaseModel):
    """Independent booleans; no cross-validation (vegan does not imply vegetarian)."""

    vegetarian: bool = False
    vegan: bool = False
    gluten_free: bool = False
    dairy_free: bool = False
    spicy: bool = False


class Rating(BaseModel):
    average: float = Field(default=0.0, ge=0.0, le=5.0)
    count: int = Field(default=0, ge=0)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MenuItemBase(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    description: str = Field(..., min_length=10, max_length=500)
    category: MenuCategory
    subcategory: str | None = Field(default=None, max_length=50)
    price: float = Field(..., ge=0, le=1000)
    ingredients: list[Ingredient] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    dietary: DietaryFlags = Field(default_factory=DietaryFlags)
    availability: Availability = Availability.available
    preparation_time: int = Field(default=15, ge=1, le=120)
    image: str | None = None
    is_special: bool = False
    special_description: str | None = Field(default=None, max_length=200)


class MenuItemCreate(MenuItemBase):
    pass


class MenuItemUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=100)
    description: str | None = Field(default=None, min_length=10, max_length=500)
    category: MenuCategory | None = None
    subcategory: str | None = Field(default=None, max_length=50)
    price: float | None = Field(default=None, ge=0, le=1000)
    ingredients: list[Ingredient] | None = None
    tags: list[str] | None = None
    dietary: DietaryFlags | None = None
    availability: Availability | None = None
    preparation_time: int | None = Field(default=None, ge=1, le=120)
    image: str | None = None
    is_special: bool | None = None
    special_description: str | None = Field(default=None, max_length=200)


class MenuItem(MenuItemBase):
    id: str = Field(default_factory=lambda: uuid4().hex)
    rating: Rating = Field(default_factory=Rating)
    popularity: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def is_available(self) -> bool:
        return self.availability == Availability.available

    def ingredient_names(self) -> list[str]:
        return [i.name for i in self.ingredients]


class AvailabilityUpdate(BaseModel):
    availability: Availability


class SpecialUpdate(BaseModel):
    is_special: bool
    special_description: str | None = Field(default=None, max_length=200)


class RatingSubmission(BaseModel):
    rating: float = Field(..., ge=1, le=5)
