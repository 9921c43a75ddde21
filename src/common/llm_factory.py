"""
LLM Factory Module.

Provides a factory for chat model instances routed through OpenRouter.
Components should use it instead of instantiating ChatOpenAI directly so
model, key and base URL stay in one place.

Usage:
    from src.common.llm_factory import create_llm

    # Defaults: insight model at insight temperature
    llm = create_llm(max_tokens=100)

    # With custom parameters
    llm = create_llm(
        model="google/gemini-2.5-flash",
        temperature=0.1,
        max_tokens=50,
    )
"""

import logging
from typing import Any, Optional

from langchain_openai import ChatOpenAI

from src.common.config import Config

logger = logging.getLogger(__name__)


def create_llm(
    model: Optional[str] = None,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
    **kwargs: Any,
) -> ChatOpenAI:
    """
    Create a ChatOpenAI instance pointed at OpenRouter.

    Args:
        model: Model name (defaults to Config.INSIGHT_MODEL)
        temperature: Temperature (defaults to Config.INSIGHT_TEMPERATURE)
        max_tokens: Completion cap (None for provider default)
        **kwargs: Additional ChatOpenAI parameters

    Returns:
        ChatOpenAI instance
    """
    effective_model = model or Config.INSIGHT_MODEL
    effective_temperature = temperature if temperature is not None else Config.INSIGHT_TEMPERATURE

    llm = ChatOpenAI(
        model=effective_model,
        temperature=effective_temperature,
        max_tokens=max_tokens,
        api_key=Config.OPENROUTER_API_KEY or "missing-openrouter-key",
        base_url=Config.OPENROUTER_BASE_URL,
        timeout=Config.LLM_TIMEOUT_SECONDS,
        **kwargs,
    )

    logger.debug(f"Created OpenRouter LLM: model={effective_model}, temperature={effective_temperature}")

    return llm
