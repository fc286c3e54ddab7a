"""
LLM Factory for KnowledgeChat.

This module provides a factory for creating LLM clients that follow the OpenAI Chat Completions API pattern.
It abstracts away the specific LLM provider implementations to allow easy switching between providers.
"""

from typing import Dict, List, Any, Optional, Union, Literal
import logging
from enum import Enum
from abc import ABC, abstractmethod
from pydantic import BaseModel, Field

from app.core.config import settings

logger = logging.getLogger(__name__)

# ----- Type Definitions -----

class Role(str, Enum):
    """Message roles in the OpenAI Chat API format."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"

class Message(BaseModel):
    """Message in the OpenAI Chat API format."""
    role: Role
    content: str

class CompletionOptions(BaseModel):
    """Common options for completion requests across providers."""
    temperature: float = Field(default=0.3, ge=0, le=2)
    max_tokens: Optional[int] = None
    top_p: float = Field(default=1.0, ge=0, le=1)
    timeout: Optional[float] = Field(default=None, description="Request timeout in seconds")
    max_retries: int = Field(default=2, ge=0)
    stop: Optional[Union[str, List[str]]] = None

class CompletionResult(BaseModel):
    """Standardized result from any LLM provider."""
    content: str
    role: str = "assistant"
    finish_reason: Optional[str] = None
    model: str
    usage: Dict[str, int] = Field(default_factory=lambda: {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0})
    raw_response: Optional[Any] = None  # Provider-specific raw response

# ----- LLM Provider Interfaces -----

class LLMProvider(ABC):
    """Abstract base class for all LLM providers."""

    @abstractmethod
    async def complete(
        self,
        messages: List[Message],
        options: Optional[CompletionOptions] = None
    ) -> CompletionResult:
        """
        Send a completion request to the LLM provider.

        Args:
            messages: List of messages in the conversation
            options: Completion options

        Returns:
            CompletionResult with the LLM's response
        """
        pass

# ----- Provider Implementations -----

class GeminiProvider(LLMProvider):
    """Google Gemini implementation."""

    def __init__(self, api_key: Optional[str] = None, model: str = "gemini-2.0-flash"):
        """
        Initialize the Gemini provider.

        Args:
            api_key: Gemini API key (defaults to settings)
            model: Gemini model to use
        """
        import google.generativeai as genai

        self.api_key = api_key or settings.GEMINI_API_KEY
        genai.configure(api_key=self.api_key)
        self.model_name = model
        self.model = genai.GenerativeModel(model)
        logger.info(f"Initialized GeminiProvider with model: {model}")

    async def complete(
        self,
        messages: List[Message],
        options: Optional[CompletionOptions] = None
    ) -> CompletionResult:
        """
        Send a completion request to Gemini.

        System messages are folded into the first user turn, since Gemini
        only knows user and model roles.
        """
        if options is None:
            options = CompletionOptions()

        try:
            gemini_messages = []
            for msg in messages:
                if msg.role == Role.USER:
                    gemini_messages.append({"role": "user", "parts": [msg.content]})
                elif msg.role == Role.ASSISTANT:
                    gemini_messages.append({"role": "model", "parts": [msg.content]})

            system_messages = [msg for msg in messages if msg.role == Role.SYSTEM]
            if system_messages and gemini_messages and gemini_messages[0]["role"] == "user":
                system_content = "\n".join([msg.content for msg in system_messages])
                gemini_messages[0]["parts"][0] = f"{system_content}\n\n{gemini_messages[0]['parts'][0]}"

            generation_config = {
                "temperature": options.temperature,
                "top_p": options.top_p,
                "max_output_tokens": options.max_tokens,
                "stop_sequences": options.stop if isinstance(options.stop, list) else [options.stop] if options.stop else None
            }
            generation_config = {k: v for k, v in generation_config.items() if v is not None}
            request_options = {"timeout": options.timeout} if options.timeout else None

            chat = self.model.start_chat(history=gemini_messages[:-1])
            response = await chat.send_message_async(
                gemini_messages[-1]["parts"][0] if gemini_messages else "",
                generation_config=generation_config,
                request_options=request_options
            )

            usage_metadata = getattr(response, "usage_metadata", None)
            prompt_tokens = getattr(usage_metadata, "prompt_token_count", 0) or 0
            completion_tokens = getattr(usage_metadata, "candidates_token_count", 0) or 0

            return CompletionResult(
                content=response.text,
                model=self.model_name,
                finish_reason="stop",  # Gemini doesn't provide this explicitly
                usage={
                    "prompt_tokens": prompt_tokens,
                    "completion_tokens": completion_tokens,
                    "total_tokens": prompt_tokens + completion_tokens
                },
                raw_response=response
            )

        except Exception as e:
            logger.error(f"Error completing with Gemini: {e}", exc_info=True)
            raise

class OpenAIProvider(LLMProvider):
    """OpenAI ChatGPT implementation."""

    def __init__(self, api_key: Optional[str] = None, model: str = "gpt-4-turbo-preview"):
        """
        Initialize the OpenAI provider.

        Args:
            api_key: OpenAI API key (defaults to settings)
            model: OpenAI model to use
        """
        from openai import AsyncOpenAI

        self.api_key = api_key or settings.OPENAI_API_KEY
        self.model_name = model
        self.client = AsyncOpenAI(api_key=self.api_key)
        logger.info(f"Initialized OpenAIProvider with model: {model}")

    async def complete(
        self,
        messages: List[Message],
        options: Optional[CompletionOptions] = None
    ) -> CompletionResult:
        """
        Send a completion request to OpenAI.

        Args:
            messages: List of messages in the conversation
            options: Completion options

        Returns:
            CompletionResult with the LLM's response
        """
        if options is None:
            options = CompletionOptions()

        try:
            openai_messages = [{"role": msg.role.value, "content": msg.content} for msg in messages]

            client = self.client.with_options(timeout=options.timeout, max_retries=options.max_retries)
            response = await client.chat.completions.create(
                model=self.model_name,
                messages=openai_messages,
                temperature=options.temperature,
                max_tokens=options.max_tokens,
                top_p=options.top_p,
                stop=options.stop
            )

            choice = response.choices[0]
            usage = response.usage

            return CompletionResult(
                content=choice.message.content or "",
                model=self.model_name,
                finish_reason=choice.finish_reason,
                usage={
                    "prompt_tokens": usage.prompt_tokens if usage else 0,
                    "completion_tokens": usage.completion_tokens if usage else 0,
                    "total_tokens": usage.total_tokens if usage else 0
                },
                raw_response=response
            )

        except Exception as e:
            logger.error(f"Error completing with OpenAI: {e}", exc_info=True)
            raise

# ----- Factory Implementation -----

class LLMFactory:
    """Factory for creating LLM provider instances."""

    @staticmethod
    def create(
        provider: Literal["openai", "gemini"] = None,
        model: Optional[str] = None,
        api_key: Optional[str] = None
    ) -> LLMProvider:
        """
        Create an LLM provider instance.

        Args:
            provider: The LLM provider to use (defaults to settings.LLM_PROVIDER)
            model: The specific model to use (defaults to provider-specific default)
            api_key: API key for the provider (defaults to settings)

        Returns:
            An instance of the requested LLM provider
        """
        provider = provider or settings.LLM_PROVIDER

        if provider == "openai":
            return OpenAIProvider(api_key=api_key, model=model or "gpt-4-turbo-preview")
        elif provider == "gemini":
            return GeminiProvider(api_key=api_key, model=model or "gemini-2.0-flash")
        else:
            raise ValueError(f"Unsupported LLM provider: {provider}")

    @staticmethod
    async def embed_text(
        text: str,
        provider: Optional[str] = None,
        model: Optional[str] = None
    ) -> List[float]:
        """
        Generate an embedding for the provided text.

        Args:
            text: The text to embed
            provider: The provider to use for embeddings (defaults to settings.EMBEDDING_PROVIDER)
            model: The embedding model to use (defaults to settings.EMBEDDING_MODEL)

        Returns:
            List of floats representing the embedding

        Raises:
            Any provider error. Callers decide how to degrade.
        """
        provider = provider or settings.EMBEDDING_PROVIDER
        embedding_model = model or settings.EMBEDDING_MODEL
        logger.debug(f"Generating embedding using {provider} model: {embedding_model}")

        try:
            if provider == "openai":
                from openai import AsyncOpenAI

                client = AsyncOpenAI(api_key=settings.OPENAI_API_KEY)
                response = await client.embeddings.create(model=embedding_model, input=text)
                return list(response.data[0].embedding)

            if provider == "gemini":
                from google import genai

                client = genai.Client(api_key=settings.GEMINI_API_KEY)
                result = await client.aio.models.embed_content(model=embedding_model, contents=text)
                return list(result.embeddings[0].values)

            raise ValueError(f"Unsupported embedding provider: {provider}")

        except Exception as e:
            logger.error(f"Error generating embedding: {e}", exc_info=True)
            raise
