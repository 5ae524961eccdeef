from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Query

from ..catalog.filters import BEST_FIRST, MenuFilter
from ..catalog.models import (
    Availability,
    AvailabilityUpdate,
    MenuCategory,
    MenuItemCreate,
    MenuItemUpdate,
    RatingSubmission,
    SpecialUpdate,
)
from ..catalog.store import CatalogStore
from ..errors import BadRequestError
from ..responses import ok, paginated
from .dependencies import get_catalog

router = APIRouter(prefix="/api/menu", tags=["menu"])

# Query-string spellings accepted for each dietary flag.
_DIETARY_FLAGS = {
    "vegetarian": "vegetarian",
    "vegan": "vegan",
    "gluten-free": "gluten_free",
    "gluten_free": "gluten_free",
    "dairy-free": "dairy_free",
    "dairy_free": "dairy_free",
    "spicy": "spicy",
}


def _parse_dietary(raw: str | None) -> dict[str, bool]:
    flags: dict[str, bool] = {}
    if not raw:
        return flags
    for token in raw.split(","):
        token = token.strip().lower()
        if not token:
            continue
        if token not in _DIETARY_FLAGS:
            raise BadRequestError(f"Unknown dietary flag: {token}")
        flags[_DIETARY_FLAGS[token]] = True
    return flags


@router.get("")
def list_menu_items(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    category: MenuCategory | None = None,
    subcategory: str | None = None,
    availability: Literal["available", "limited", "unavailable", "all"] = "available",
    min_price: float | None = Query(None, ge=0),
    max_price: float | None = Query(None, ge=0),
    dietary: str | None = Query(None, description="Comma-separated, e.g. vegan,gluten-free"),
    search: str | None = None,
    sort_by: Literal["name", "price", "rating", "popularity", "created_at"] = "name",
    sort_order: Literal["asc", "desc"] = "asc",
    catalog: CatalogStore = Depends(get_catalog),
) -> dict:
    menu_filter = MenuFilter(
        availability=None if availability == "all" else availability,
        category=category.value if category else None,
        subcategory=subcategory,
        min_price=min_price,
        max_price=max_price,
        search=search.strip() if search and search.strip() else None,
        **_parse_dietary(dietary),
    )
    items, total = catalog.find(
        menu_filter,
        sort=[(sort_by, sort_order == "desc")],
        skip=(page - 1) * limit,
        limit=limit,
    )
    return paginated(items, total, page, limit)


@router.get("/categories/list")
def list_categories(catalog: CatalogStore = Depends(get_catalog)) -> dict:
    return ok(catalog.distinct("category"))


@router.get("/subcategories/list")
def list_subcategories(catalog: CatalogStore = Depends(get_catalog)) -> dict:
    return ok(catalog.distinct("subcategory"))


@router.get("/search/query")
def search_menu(
    q: str | None = None,
    limit: int = Query(20, ge=1, le=100),
    catalog: CatalogStore = Depends(get_catalog),
) -> dict:
    if not q or not q.strip():
        raise BadRequestError("Search query is required")
    items, _ = catalog.find(
        MenuFilter(availability=Availability.available.value, search=q.strip()),
        sort=BEST_FIRST,
        limit=limit,
    )
    return ok(items, count=len(items), query=q.strip())


@router.get("/category/{category}")
def list_by_category(
    category: MenuCategory,
    catalog: CatalogStore = Depends(get_catalog),
) -> dict:
    items, _ = catalog.find(
        MenuFilter(category=category.value, availability=Availability.available.value),
        sort=BEST_FIRST,
    )
    return ok(items, count=len(items))


@router.get("/{item_id}")
def get_menu_item(item_id: str, catalog: CatalogStore = Depends(get_catalog)) -> dict:
    return ok(catalog.get(item_id))


@router.post("", status_code=201)
def create_menu_item(
    payload: MenuItemCreate,
    catalog: CatalogStore = Depends(get_catalog),
) -> dict:
    return ok(catalog.create(payload), message="Menu item created successfully")


@router.put("/{item_id}")
def update_menu_item(
    item_id: str,
    payload: MenuItemUpdate,
    catalog: CatalogStore = Depends(get_catalog),
) -> dict:
    return ok(catalog.update(item_id, payload), message="Menu item updated successfully")


@router.delete("/{item_id}")
def delete_menu_item(item_id: str, catalog: CatalogStore = Depends(get_catalog)) -> dict:
    catalog.delete(item_id)
    return ok(message="Menu item deleted successfully")


@router.patch("/{item_id}/availability")
def update_availability(
    item_id: str,
    payload: AvailabilityUpdate,
    catalog: CatalogStore = Depends(get_catalog),
) -> dict:
    item = catalog.set_availability(item_id, payload.availability)
    return ok(item, message=f"Availability set to {payload.availability.value}")


@router.patch("/{item_id}/special")
def update_special(
    item_id: str,
    payload: SpecialUpdate,
    catalog: CatalogStore = Depends(get_catalog),
) -> dict:
    item = catalog.set_special(item_id, payload.is_special, payload.special_description)
    state = "marked as special" if payload.is_special else "removed from specials"
    return ok(item, message=f"Menu item {state}")


@router.post("/{item_id}/rate")
def rate_menu_item(
    item_id: str,
    payload: RatingSubmission,
    catalog: CatalogStore = Depends(get_catalog),
) -> dict:
    item = catalog.add_rating(item_id, payload.rating)
    return ok(item, message="Rating submitted successfully")
