import pytest

from app.core.exceptions import GenerationError
from app.schemas.settings import LLMSettings
from app.services.llm.factory import Message, Role
from app.services.llm.llm_service import APOLOGIES, CONTEXT_LENGTH, RATE_LIMIT, classify_error
from app.services.rag.prompt_builder import BuiltPrompt


class ProviderError(Exception):
    def __init__(self, message, status_code=None, code=None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


def _prompt() -> BuiltPrompt:
    return BuiltPrompt(system_prompt="System", messages=[Message(role=Role.USER, content="Hello")])


def test_classify_error():
    assert classify_error(ProviderError("slow down", status_code=429)) == RATE_LIMIT
    assert classify_error(ProviderError("too long", code="context_length_exceeded")) == CONTEXT_LENGTH
    assert classify_error(ProviderError("Error: rate_limit reached")) == RATE_LIMIT
    assert classify_error(ProviderError("context_length exceeded")) == CONTEXT_LENGTH
    assert classify_error(ProviderError("internal server error", status_code=500)) is None


async def test_generate_prepends_system_message(llm_service, provider):
    result = await llm_service.generate(_prompt(), LLMSettings())

    sent = provider.calls[0]
    assert sent[0].role == Role.SYSTEM
    assert sent[0].content == "System"
    assert sent[1].content == "Hello"
    assert result.content == "Test answer"
    assert result.prompt_tokens == 12
    assert result.completion_tokens == 7
    assert result.degraded is False


async def test_generate_passes_timeout_in_seconds(llm_service, provider):
    await llm_service.generate(_prompt(), LLMSettings(request_timeout=30000, retry_attempts=1, max_output_tokens=500))

    options = provider.options[0]
    assert options.timeout == 30
    assert options.max_retries == 1
    assert options.max_tokens == 500


@pytest.mark.parametrize("error, kind", [
    (ProviderError("slow down", status_code=429), RATE_LIMIT),
    (ProviderError("too long", code="context_length_exceeded"), CONTEXT_LENGTH),
])
async def test_throttling_returns_apology(llm_service, provider, error, kind):
    provider.error = error

    result = await llm_service.generate(_prompt(), LLMSettings(), language="de")

    assert result.degraded is True
    assert result.content == APOLOGIES[kind]["de"]
    assert result.prompt_tokens == 0
    assert result.completion_tokens == 0


async def test_apology_follows_language(llm_service, provider):
    provider.error = ProviderError("slow down", status_code=429)

    result = await llm_service.generate(_prompt(), LLMSettings(), language="en")

    assert result.content == APOLOGIES[RATE_LIMIT]["en"]


async def test_hard_failure_raises(llm_service, provider):
    provider.error = ProviderError("internal server error", status_code=500)

    with pytest.raises(GenerationError):
        await llm_service.generate(_prompt(), LLMSettings())


async def test_suggest_questions_strips_markers_and_caps(llm_service, provider):
    provider.answers = ["1. First question?\n- Second question?\n\n* Third question?\nFourth question?"]

    questions = await llm_service.suggest_questions("Q", "A", 3, LLMSettings())

    assert questions == ["First question?", "Second question?", "Third question?"]


async def test_suggest_questions_failure_gives_empty_list(llm_service, provider):
    provider.error = ProviderError("internal server error", status_code=500)

    assert await llm_service.suggest_questions("Q", "A", 3, LLMSettings()) == []
