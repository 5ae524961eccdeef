from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

import pandas as pd

# Maps public sort keys onto catalog frame columns.
SORT_COLUMNS: dict[str, str] = {
    "name": "name_lower",
    "price": "price",
    "rating": "rating_average",
    "popularity": "popularity",
    "created_at": "created_at",
}

# (key, descending) pairs
SortSpec = list[tuple[str, bool]]

BEST_FIRST: SortSpec = [("rating", True), ("popularity", True)]
MOST_POPULAR_FIRST: SortSpec = [("popularity", True), ("rating", True)]


def _contains_any(values: list[str], needles: list[str]) -> bool:
    return any(n in v for v in values for n in needles)


@dataclass
class MenuFilter:
    """Structured catalog query.

    Every field left as ``None`` (or empty) imposes no constraint. Text
    matching is case-insensitive substring matching.
    """

    availability: str | None = None
    category: str | None = None
    categories: list[str] = field(default_factory=list)
    subcategory: str | None = None
    vegetarian: bool | None = None
    vegan: bool | None = None
    gluten_free: bool | None = None
    dairy_free: bool | None = None
    spicy: bool | None = None
    min_price: float | None = None
    max_price: float | None = None
    exclude_allergens: list[str] = field(default_factory=list)
    ingredient_names_any: list[str] = field(default_factory=list)
    exclude_ingredient_names: list[str] = field(default_factory=list)
    search: str | None = None
    is_special: bool | None = None
    created_after: datetime | None = None

    def to_mask(self, df: pd.DataFrame) -> pd.Series:
        """Translate the filter into a boolean mask over the catalog frame."""
        mask = pd.Series(True, index=df.index)

        if self.availability is not None:
            mask &= df["availability"] == self.availability
        if self.category is not None:
            mask &= df["category"] == self.category
        if self.categories:
            mask &= df["category"].isin(self.categories)
        if self.subcategory is not None:
            mask &= df["subcategory"] == self.subcategory

        for flag in ("vegetarian", "vegan", "gluten_free", "dairy_free", "spicy"):
            wanted = getattr(self, flag)
            if wanted is not None:
                mask &= df[flag] == wanted

        if self.min_price is not None:
            mask &= df["price"] >= self.min_price
        if self.max_price is not None:
            mask &= df["price"] <= self.max_price

        if self.exclude_allergens:
            excluded = set(self.exclude_allergens)
            mask &= ~df["allergens"].apply(lambda a: bool(excluded & set(a))).astype(bool)

        if self.ingredient_names_any:
            needles = [n.strip().lower() for n in self.ingredient_names_any if n.strip()]
            if needles:
                mask &= df["ingredient_names"].apply(
                    lambda names: _contains_any(names, needles)
                ).astype(bool)

        if self.exclude_ingredient_names:
            needles = [n.strip().lower() for n in self.exclude_ingredient_names if n.strip()]
            if needles:
                mask &= ~df["ingredient_names"].apply(
                    lambda names: _contains_any(names, needles)
                ).astype(bool)

        if self.search:
            term = self.search.strip().lower()
            mask &= (
                df["name_lower"].str.contains(term, regex=False)
                | df["description_lower"].str.contains(term, regex=False)
                | df["tags"].apply(lambda tags: _contains_any(tags, [term])).astype(bool)
                | df["ingredient_names"].apply(
                    lambda names: _contains_any(names, [term])
                ).astype(bool)
            )

        if self.is_special is not None:
            mask &= df["is_special"] == self.is_special
        if self.created_after is not None:
            mask &= df["created_at"] >= pd.Timestamp(self.created_after)

        return mask
