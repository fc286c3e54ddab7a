from typing import List, Sequence
import logging

from pydantic import BaseModel, Field

from app.core.prompts import get_prompt
from app.db.models.chat import ChatMessage, MessageRole
from app.db.models.knowledge import KnowledgeMode
from app.schemas.retrieval import RankedChunk
from app.services.llm.factory import Message, Role

logger = logging.getLogger(__name__)

MODE_ADDENDA = {
    KnowledgeMode.RAG_ONLY: "mode_rag_only",
    KnowledgeMode.LLM_ONLY: "mode_llm_only",
    KnowledgeMode.HYBRID: "mode_hybrid",
}


class BuiltPrompt(BaseModel):
    """System prompt plus the ordered user/assistant turns"""
    system_prompt: str
    messages: List[Message] = Field(default_factory=list)


def build_system_prompt(system_prompt_base: str, mode: KnowledgeMode) -> str:
    return f"{system_prompt_base}\n\n{get_prompt('chat', MODE_ADDENDA[mode])}"


def build_context(chunks: Sequence[RankedChunk], mode: KnowledgeMode) -> str:
    """Render the retrieved chunks, or "" in LLM_ONLY mode or without chunks"""
    if not chunks or mode == KnowledgeMode.LLM_ONLY:
        return ""
    return get_prompt("chat", "context_block", chunks=chunks)


def build(
    user_message: str,
    previous_messages: Sequence[ChatMessage],
    chunks: Sequence[RankedChunk],
    mode: KnowledgeMode,
    system_prompt_base: str,
    max_context_turns: int = 10
) -> BuiltPrompt:
    """
    Assemble the prompt for one chat turn.

    previous_messages must be ordered oldest first and must not include the
    current message. Only the last max_context_turns of them are kept.
    """
    messages = []
    recent = list(previous_messages)[-max_context_turns:] if max_context_turns > 0 else []
    for message in recent:
        role = Role.USER if message.role == MessageRole.USER.value else Role.ASSISTANT
        messages.append(Message(role=role, content=message.content))

    context = build_context(chunks, mode)
    if context:
        user_content = get_prompt("chat", "user_turn_with_context", context=context, message=user_message)
    else:
        user_content = user_message
    messages.append(Message(role=Role.USER, content=user_content))

    logger.debug(f"Built {mode.value} prompt with {len(recent)} history turns and {len(chunks)} chunks")
    return BuiltPrompt(system_prompt=build_system_prompt(system_prompt_base, mode), messages=messages)
