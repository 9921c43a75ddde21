"""
Text generation adapter.

Wraps a langchain chat model so the rest of the code only sees
``await generate(prompt) -> str``. Callers always hold a templated fallback;
this adapter raises TextGenerationError and never returns an empty string.
"""

import logging
from typing import Optional

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage

from src.common.config import Config
from src.common.error_handling import TextGenerationError
from src.common.llm_factory import create_llm

logger = logging.getLogger(__name__)


class TextGenerator:
    """
    Prompt-in, text-out facade over a chat model.

    Args:
        model: OpenRouter model name (defaults to the insight model)
        llm: Fixed chat model to use for every call; per-call temperature
            and max_tokens are then ignored
    """

    def __init__(self, model: Optional[str] = None, llm: Optional[BaseChatModel] = None):
        self.model = model or Config.INSIGHT_MODEL
        self.llm = llm

    def _model_for(self, temperature: Optional[float], max_tokens: Optional[int]) -> BaseChatModel:
        if self.llm is not None:
            return self.llm
        return create_llm(model=self.model, temperature=temperature, max_tokens=max_tokens)

    async def generate(
        self,
        prompt: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """Return the trimmed completion for ``prompt``."""
        try:
            model = self._model_for(temperature, max_tokens)
            response = await model.ainvoke([HumanMessage(content=prompt)])
        except Exception as e:
            logger.warning(f"Text generation failed ({self.model}): {e}")
            raise TextGenerationError(str(e)) from e

        text = response.content if isinstance(response.content, str) else str(response.content)
        text = text.strip()
        if not text:
            raise TextGenerationError("Model returned an empty completion")
        return text
