from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from groq import APITimeoutError, Groq

from .config import DEFAULT_LLM_CONFIG, LLMConfig

logger = logging.getLogger(__name__)

DESCRIPTION_SYSTEM_PROMPT = (
    "You are a helpful assistant that enhances restaurant menu descriptions "
    "to make them more appealing and appetizing while keeping them accurate "
    "and concise."
)

QUESTION_SYSTEM_PROMPT = (
    "You are a helpful restaurant AI assistant. Your role is to answer "
    "customer questions about the menu items, ingredients, dietary "
    "restrictions, and recommendations. Be friendly, professional, and "
    "accurate. Use the menu context provided to give specific and helpful "
    "answers."
)

UNAVAILABLE_ANSWER = "AI service is not available. Please contact staff for assistance."
EMPTY_ANSWER = (
    "I apologize, but I couldn't process your question. "
    "Please ask our staff for assistance."
)
FAILED_ANSWER = (
    "I apologize, but I'm experiencing technical difficulties. "
    "Please ask our staff for assistance."
)


class Outcome(str, Enum):
    success = "success"
    short_circuit = "short_circuit"
    timeout = "timeout"
    error = "error"


@dataclass(frozen=True)
class EnrichmentResult:
    outcome: Outcome
    value: str
    fallback_used: bool

    @property
    def source(self) -> str:
        return "fallback" if self.fallback_used else "ai"

    def to_dict(self) -> dict[str, str | bool]:
        return {
            "outcome": self.outcome.value,
            "source": self.source,
            "fallback_used": self.fallback_used,
        }


def _build_description_prompt(description: str, ingredients: list[str]) -> str:
    return (
        "Enhance this restaurant dish description to make it more appealing: "
        f'"{description}".\n'
        f"Use these ingredients: {', '.join(ingredients)}.\n"
        "Make it sound delicious and highlight the key features. "
        "Keep it under 100 words."
    )


def _build_question_prompt(question: str, menu_context: str) -> str:
    return (
        f'Customer question: "{question}"\n\n'
        f"Menu context: {menu_context or 'General menu information'}\n\n"
        "Please provide a helpful, accurate answer based on the menu "
        "information. Be friendly and professional."
    )


def _complete(
    system_prompt: str,
    user_prompt: str,
    max_tokens: int,
    config: LLMConfig,
) -> str:
    # One attempt only; the client timeout bounds the whole call.
    client = Groq(api_key=config.api_key, timeout=config.timeout, max_retries=0)
    response = client.chat.completions.create(
        model=config.model,
        messages=[
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        max_tokens=max_tokens,
        temperature=config.temperature,
    )
    return (response.choices[0].message.content or "").strip()


def enhance_description(
    description: str,
    ingredients: list[str],
    config: LLMConfig = DEFAULT_LLM_CONFIG,
) -> EnrichmentResult:
    """
    Ask the LLM to rewrite a dish description.

    The original description comes back unchanged when no credential is
    configured, or on timeout, API error or an empty/malformed response.
    """
    if not config.available:
        return EnrichmentResult(Outcome.short_circuit, description, fallback_used=True)

    try:
        enhanced = _complete(
            DESCRIPTION_SYSTEM_PROMPT,
            _build_description_prompt(description, ingredients),
            config.description_max_tokens,
            config,
        )
    except APITimeoutError:
        logger.warning("Groq description request timed out after %ss", config.timeout)
        return EnrichmentResult(Outcome.timeout, description, fallback_used=True)
    except Exception:
        logger.warning("Groq description request failed, keeping original", exc_info=True)
        return EnrichmentResult(Outcome.error, description, fallback_used=True)

    if not enhanced:
        return EnrichmentResult(Outcome.error, description, fallback_used=True)
    return EnrichmentResult(Outcome.success, enhanced, fallback_used=False)


def answer_question(
    question: str,
    menu_context: str,
    config: LLMConfig = DEFAULT_LLM_CONFIG,
) -> EnrichmentResult:
    """
    Answer a customer question using the supplied menu context.

    Non-AI answers are one of the fixed apology messages and carry
    ``source == "fallback"``.
    """
    if not config.available:
        return EnrichmentResult(Outcome.short_circuit, UNAVAILABLE_ANSWER, fallback_used=True)

    try:
        answer = _complete(
            QUESTION_SYSTEM_PROMPT,
            _build_question_prompt(question, menu_context),
            config.answer_max_tokens,
            config,
        )
    except APITimeoutError:
        logger.warning("Groq question request timed out after %ss", config.timeout)
        return EnrichmentResult(Outcome.timeout, FAILED_ANSWER, fallback_used=True)
    except Exception:
        logger.warning("Groq question request failed, using fallback answer", exc_info=True)
        return EnrichmentResult(Outcome.error, FAILED_ANSWER, fallback_used=True)

    if not answer:
        return EnrichmentResult(Outcome.error, EMPTY_ANSWER, fallback_used=True)
    return EnrichmentResult(Outcome.success, answer, fallback_used=False)
