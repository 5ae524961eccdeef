from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Any

import pandas as pd

from ..errors import ConflictError, NotFoundError
from .filters import BEST_FIRST, SORT_COLUMNS, MenuFilter, SortSpec
from .models import Availability, MenuItem, MenuItemCreate, MenuItemUpdate

logger = logging.getLogger(__name__)

_FRAME_COLUMNS = [
    "id",
    "name_lower",
    "description_lower",
    "category",
    "subcategory",
    "price",
    "availability",
    "vegetarian",
    "vegan",
    "gluten_free",
    "dairy_free",
    "spicy",
    "is_special",
    "rating_average",
    "popularity",
    "tags",
    "ingredient_names",
    "allergens",
    "created_at",
    "position",
]


def _row(item: MenuItem, position: int) -> dict[str, Any]:
    return {
        "id": item.id,
        "name_lower": item.name.lower(),
        "description_lower": item.description.lower(),
        "category": item.category.value,
        "subcategory": item.subcategory,
        "price": float(item.price),
        "availability": item.availability.value,
        "vegetarian": item.dietary.vegetarian,
        "vegan": item.dietary.vegan,
        "gluten_free": item.dietary.gluten_free,
        "dairy_free": item.dietary.dairy_free,
        "spicy": item.dietary.spicy,
        "is_special": item.is_special,
        "rating_average": float(item.rating.average),
        "popularity": int(item.popularity),
        "tags": [t.lower() for t in item.tags],
        "ingredient_names": [i.name.lower() for i in item.ingredients],
        "allergens": sorted({a.value for i in item.ingredients for a in i.allergens}),
        "created_at": item.created_at,
        "position": position,
    }


class CatalogStore:
    """In-process menu item collection queried through a DataFrame view.

    Documents are kept as pydantic models keyed by id; the frame is rebuilt
    lazily after any mutation.
    """

    def __init__(self, items: list[MenuItem] | None = None) -> None:
        self._items: dict[str, MenuItem] = {}
        self._frame: pd.DataFrame | None = None
        self._lock = threading.RLock()
        for item in items or []:
            self._items[item.id] = item

    def __len__(self) -> int:
        return len(self._items)

    # ── Query ────────────────────────────────────────────────────────────

    def _get_frame(self) -> pd.DataFrame:
        with self._lock:
            if self._frame is None:
                rows = [_row(item, pos) for pos, item in enumerate(self._items.values())]
                self._frame = pd.DataFrame(rows, columns=_FRAME_COLUMNS)
            return self._frame

    def _invalidate(self) -> None:
        self._frame = None

    def find(
        self,
        menu_filter: MenuFilter | None = None,
        sort: SortSpec | None = None,
        skip: int = 0,
        limit: int | None = None,
    ) -> tuple[list[MenuItem], int]:
        """Return the matching page of items plus the total match count."""
        df = self._get_frame()
        if menu_filter is not None:
            df = df.loc[menu_filter.to_mask(df)]
        total = len(df)

        sort = BEST_FIRST if sort is None else sort
        if sort and not df.empty:
            columns = [SORT_COLUMNS[key] for key, _ in sort] + ["position"]
            ascending = [not desc for _, desc in sort] + [True]
            df = df.sort_values(columns, ascending=ascending, kind="mergesort")

        ids = df["id"].tolist()
        if limit is not None:
            ids = ids[skip:skip + limit]
        else:
            ids = ids[skip:]
        with self._lock:
            return [self._items[i] for i in ids if i in self._items], total

    def count(self, menu_filter: MenuFilter | None = None) -> int:
        df = self._get_frame()
        if menu_filter is None:
            return len(df)
        return int(menu_filter.to_mask(df).sum())

    def get(self, item_id: str) -> MenuItem:
        item = self._items.get(item_id)
        if item is None:
            raise NotFoundError("Menu item not found")
        return item

    def find_by_name(self, name: str) -> MenuItem | None:
        for item in self._items.values():
            if item.name == name:
                return item
        return None

    def distinct(self, field_name: str) -> list[str]:
        values: list[str] = []
        for item in self._items.values():
            value = getattr(item, field_name)
            value = getattr(value, "value", value)
            if value and value not in values:
                values.append(value)
        return sorted(values)

    def all(self) -> list[MenuItem]:
        return list(self._items.values())

    # ── Mutation ─────────────────────────────────────────────────────────

    def create(self, payload: MenuItemCreate) -> MenuItem:
        with self._lock:
            if self.find_by_name(payload.name) is not None:
                raise ConflictError("Menu item with this name already exists")
            item = MenuItem(**payload.model_dump())
            self._items[item.id] = item
            self._invalidate()
        logger.info("Created menu item %s (%s)", item.name, item.id)
        return item

    def add(self, item: MenuItem) -> MenuItem:
        with self._lock:
            self._items[item.id] = item
            self._invalidate()
        return item

    def update(self, item_id: str, payload: MenuItemUpdate) -> MenuItem:
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        with self._lock:
            current = self.get(item_id)
            new_name = changes.get("name")
            if new_name:
                clash = self.find_by_name(new_name)
                if clash is not None and clash.id != item_id:
                    raise ConflictError("Menu item with this name already exists")
            data = current.model_dump()
            data.update(changes)
            data["updated_at"] = datetime.now(timezone.utc)
            updated = MenuItem(**data)
            self._items[item_id] = updated
            self._invalidate()
        return updated

    def _replace(self, item_id: str, **changes: Any) -> MenuItem:
        with self._lock:
            current = self.get(item_id)
            updated = current.model_copy(
                update={**changes, "updated_at": datetime.now(timezone.utc)}
            )
            self._items[item_id] = updated
            self._invalidate()
        return updated

    def delete(self, item_id: str) -> MenuItem:
        with self._lock:
            item = self._items.pop(item_id, None)
            if item is None:
                raise NotFoundError("Menu item not found")
            self._invalidate()
        logger.info("Deleted menu item %s (%s)", item.name, item_id)
        return item

    def set_availability(self, item_id: str, availability: Availability) -> MenuItem:
        return self._replace(item_id, availability=availability)

    def set_special(
        self, item_id: str, is_special: bool, special_description: str | None = None,
    ) -> MenuItem:
        changes: dict[str, Any] = {"is_special": is_special}
        if special_description is not None:
            changes["special_description"] = special_description
        return self._replace(item_id, **changes)

    def add_rating(self, item_id: str, value: float) -> MenuItem:
        """Fold one rating into the running average."""
        with self._lock:
            current = self.get(item_id)
            total = current.rating.average * current.rating.count + value
            count = current.rating.count + 1
            rating = current.rating.model_copy(
                update={"average": total / count, "count": count}
            )
            return self._replace(item_id, rating=rating)

    def increment_popularity(self, item_id: str, amount: int = 1) -> MenuItem:
        with self._lock:
            current = self.get(item_id)
            return self._replace(item_id, popularity=current.popularity + amount)
