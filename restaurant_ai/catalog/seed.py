from __future__ import annotations

import json
import logging
from pathlib import Path

from .models import MenuItem, MenuItemCreate
from .store import CatalogStore

logger = logging.getLogger(__name__)


def load_seed_items(path: Path) -> list[MenuItem]:
    """Read a JSON array of menu item documents, validating each one."""
    raw = json.loads(path.read_text(encoding="utf-8"))
    return [MenuItem(**MenuItemCreate(**entry).model_dump()) for entry in raw]


def seed_catalog(catalog: CatalogStore, path: Path) -> int:
    """Add seed items to an empty catalog; a populated catalog is left alone."""
    if len(catalog):
        return 0
    if not path.exists():
        logger.warning("Seed file %s not found, starting with an empty menu", path)
        return 0
    items = load_seed_items(path)
    for item in items:
        catalog.add(item)
    logger.info("Seeded %d menu item(s) from %s", len(items), path.name)
    return len(items)
