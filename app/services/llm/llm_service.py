"""
Generation client used by the chat pipeline.

Wraps the provider factory with the runtime `llm` settings and turns
throttling and context-length failures into canned answers instead of errors.
"""

from typing import Awaitable, Callable, Dict, List, Optional, Tuple
import logging
import re

import openai
from pydantic import BaseModel

from app.core.exceptions import GenerationError
from app.core.prompts import get_prompt
from app.schemas.settings import LLMSettings
from app.services.llm.factory import (
    CompletionOptions,
    LLMFactory,
    LLMProvider,
    Message,
    Role,
)
from app.services.rag.prompt_builder import BuiltPrompt

logger = logging.getLogger(__name__)

RATE_LIMIT = "rate_limit"
CONTEXT_LENGTH = "context_length"

APOLOGIES: Dict[str, Dict[str, str]] = {
    RATE_LIMIT: {
        "de": "Das System ist momentan überlastet. Bitte versuchen Sie es in einigen Sekunden erneut.",
        "en": "The system is currently overloaded. Please try again in a few seconds.",
    },
    CONTEXT_LENGTH: {
        "de": "Die Anfrage war zu lang. Bitte formulieren Sie Ihre Frage kürzer.",
        "en": "The request was too long. Please phrase your question more briefly.",
    },
}

_LIST_MARKER = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s*")


class GenerationResult(BaseModel):
    content: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    degraded: bool = False


def classify_error(error: Exception) -> Optional[str]:
    """Map a provider error to RATE_LIMIT, CONTEXT_LENGTH or None"""
    code = getattr(error, "code", None)
    if code == "context_length_exceeded":
        return CONTEXT_LENGTH
    if isinstance(error, openai.RateLimitError) or getattr(error, "status_code", None) == 429:
        return RATE_LIMIT

    message = str(error).lower()
    if "rate_limit" in message:
        return RATE_LIMIT
    if "context_length" in message:
        return CONTEXT_LENGTH
    return None


def apology_for(kind: str, language: str) -> str:
    messages = APOLOGIES[kind]
    return messages.get(language, messages["de"])


class LLMService:
    """Runs completions and embeddings against the configured providers"""

    def __init__(
        self,
        provider: Optional[LLMProvider] = None,
        embedder: Optional[Callable[[str], Awaitable[List[float]]]] = None
    ):
        self._provider = provider
        self._providers: Dict[Tuple[str, str], LLMProvider] = {}
        self._embedder = embedder or LLMFactory.embed_text

    def _get_provider(self, llm_settings: LLMSettings) -> LLMProvider:
        if self._provider is not None:
            return self._provider
        key = (llm_settings.provider, llm_settings.model)
        if key not in self._providers:
            self._providers[key] = LLMFactory.create(provider=llm_settings.provider, model=llm_settings.model)
        return self._providers[key]

    @staticmethod
    def _options(llm_settings: LLMSettings) -> CompletionOptions:
        return CompletionOptions(
            temperature=llm_settings.temperature,
            top_p=llm_settings.top_p,
            max_tokens=llm_settings.max_output_tokens,
            timeout=llm_settings.request_timeout / 1000,
            max_retries=llm_settings.retry_attempts,
        )

    async def generate(
        self,
        built_prompt: BuiltPrompt,
        llm_settings: LLMSettings,
        language: str = "de"
    ) -> GenerationResult:
        """
        Generate an answer for an assembled prompt.

        Rate-limit and context-length failures return a canned apology in
        `language` with zero token counts and degraded=True. Any other
        failure raises GenerationError.
        """
        messages = [Message(role=Role.SYSTEM, content=built_prompt.system_prompt)] + list(built_prompt.messages)

        try:
            result = await self._get_provider(llm_settings).complete(messages, self._options(llm_settings))
        except Exception as e:
            kind = classify_error(e)
            if kind is None:
                logger.error(f"Generation failed: {e}", exc_info=True)
                raise GenerationError("The answer could not be generated") from e
            logger.warning(f"Generation degraded ({kind}): {e}")
            return GenerationResult(content=apology_for(kind, language), degraded=True)

        prompt_tokens = result.usage.get("prompt_tokens", 0)
        completion_tokens = result.usage.get("completion_tokens", 0)
        logger.info(f"Generated answer with {llm_settings.model} ({prompt_tokens + completion_tokens} tokens)")
        return GenerationResult(
            content=result.content,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
        )

    async def suggest_questions(
        self,
        question: str,
        answer: str,
        count: int,
        llm_settings: LLMSettings
    ) -> List[str]:
        """Ask for up to `count` follow-up questions. Failures give []."""
        if count <= 0:
            return []
        prompt = get_prompt("follow_up", "suggest_questions", count=count, question=question, answer=answer)
        try:
            result = await self._get_provider(llm_settings).complete(
                [Message(role=Role.USER, content=prompt)],
                self._options(llm_settings),
            )
        except Exception as e:
            logger.warning(f"Follow-up suggestion failed: {e}")
            return []

        suggestions = []
        for line in result.content.splitlines():
            text = _LIST_MARKER.sub("", line).strip()
            if text:
                suggestions.append(text)
        return suggestions[:count]

    async def embed(self, text: str) -> List[float]:
        """Embed text with the configured embedding model. Errors propagate."""
        return await self._embedder(text)
