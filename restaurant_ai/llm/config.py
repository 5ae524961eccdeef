from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class LLMConfig:
    api_key: str = os.getenv("GROQ_API_KEY", "")
    model: str = os.getenv("AI_MODEL_NAME", "llama-3.3-70b-versatile")
    timeout: float = float(os.getenv("AI_TIMEOUT_SECONDS", "30"))
    description_max_tokens: int = 200
    answer_max_tokens: int = 500
    temperature: float = 0.7
    enabled: bool = os.getenv("AI_ENABLED", "true").strip().lower() in ("1", "true", "yes", "on")

    @property
    def available(self) -> bool:
        return self.enabled and bool(self.api_key)


DEFAULT_LLM_CONFIG = LLMConfig()
