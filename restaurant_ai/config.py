from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent / ".env")


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class AppConfig:
    seed_path: Path = Path(__file__).resolve().parent / "data" / "menu_seed.json"
    seed_on_startup: bool = _env_flag("RESTAURANT_SEED_DATA", "1")
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
    analytics_cache_ttl: float = 300.0  # 5 minutes


DEFAULT_APP_CONFIG = AppConfig()
