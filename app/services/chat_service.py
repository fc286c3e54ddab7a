from typing import List, Optional
import logging
import time

from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError, ValidationError
from app.db.base_class import utcnow
from app.db.models.chat import Chat, ChatMessage, MessageRole
from app.repositories.chat_repository import ChatRepository
from app.repositories.folder_repository import FolderRepository
from app.repositories.message_repository import MessageRepository
from app.schemas.chat import ChatResponse, Source
from app.schemas.retrieval import RankedChunk
from app.services.audit_service import AuditActions, AuditService, audit_service
from app.services.chunker import estimate_tokens
from app.services.llm.llm_service import LLMService
from app.services.prompt_service import PromptService
from app.services.rag import prompt_builder
from app.services.rag.mode_selector import select_mode
from app.services.rag.retrieval_service import RetrievalService
from app.services.settings_service import SettingsService

logger = logging.getLogger(__name__)

TITLE_LENGTH = 50
SNIPPET_LENGTH = 200


class ChatInput(BaseModel):
    user_id: str
    message: str
    chat_id: Optional[str] = None
    allowed_folder_ids: List[str] = Field(default_factory=list)
    is_admin: bool = False
    preview_user_id: Optional[str] = None


def make_title(message: str) -> str:
    if len(message) > TITLE_LENGTH:
        return message[:TITLE_LENGTH] + "..."
    return message


def extract_sources(chunks: List[RankedChunk]) -> List[Source]:
    return [
        Source(
            document_id=chunk.document_id,
            document_name=chunk.document_name or "Unknown",
            folder_path=chunk.folder_path,
            page_number=chunk.page_number,
            chunk_id=chunk.id,
            relevance_score=chunk.score,
            snippet=chunk.content[:SNIPPET_LENGTH],
        )
        for chunk in chunks
    ]


class ChatService:
    """
    Runs one chat turn end to end.

    The user message is persisted before retrieval. If anything fails after
    that point the user message stays, no assistant message is written and
    the error propagates. Concurrent turns in the same chat are not
    serialized.
    """

    def __init__(
        self,
        db: Session,
        llm_service: LLMService,
        retrieval_service: RetrievalService,
        audit: AuditService = audit_service
    ):
        self.db = db
        self.llm_service = llm_service
        self.retrieval_service = retrieval_service
        self.audit = audit
        self.settings_service = SettingsService(db, audit)
        self.prompt_service = PromptService(db, audit)

    async def _resolve_chat(self, chat_input: ChatInput, message: str) -> Chat:
        if chat_input.chat_id:
            chat = await ChatRepository.get_for_user(chat_input.chat_id, chat_input.user_id, self.db)
            if chat is None:
                raise NotFoundError("Chat not found")
            return chat
        return await ChatRepository.create(Chat(user_id=chat_input.user_id, title=make_title(message)), self.db)

    async def process_message(self, chat_input: ChatInput) -> ChatResponse:
        start_time = time.monotonic()

        message = chat_input.message.strip()
        if not message:
            raise ValidationError("Message must not be empty")

        settings = await self.settings_service.get_settings()
        if estimate_tokens(message) > settings.llm.max_input_tokens:
            raise ValidationError("Message is too long")

        chat = await self._resolve_chat(chat_input, message)

        user_message = await MessageRepository.create(
            ChatMessage(chat_id=chat.id, role=MessageRole.USER.value, content=message),
            self.db,
        )

        try:
            history = []
            if settings.chat.context_continue:
                history = await MessageRepository.list_recent(
                    chat.id, settings.chat.max_context_turns, self.db, exclude_id=user_message.id
                )

            retrieval = await self.retrieval_service.search(message, chat_input.allowed_folder_ids, settings.rag)
            chunks = retrieval.chunks

            policies = await FolderRepository.get_knowledge_modes({chunk.folder_id for chunk in chunks}, self.db)
            mode = select_mode(chat_input.allowed_folder_ids, chunks, policies)

            system_prompt = await self.prompt_service.get_active_system_prompt(settings.general)
            built = prompt_builder.build(
                message,
                history,
                chunks,
                mode,
                system_prompt.content,
                settings.chat.max_context_turns,
            )

            generation = await self.llm_service.generate(built, settings.llm, settings.general.default_language)
            sources = extract_sources(chunks)

            suggested_questions: List[str] = []
            if settings.chat.suggest_follow_up and not generation.degraded:
                suggested_questions = await self.llm_service.suggest_questions(
                    message, generation.content, settings.chat.follow_up_count, settings.llm
                )

            assistant_message = await MessageRepository.create(
                ChatMessage(
                    chat_id=chat.id,
                    role=MessageRole.ASSISTANT.value,
                    content=generation.content,
                    mode=mode.value,
                    sources=[source.model_dump() for source in sources] or None,
                    prompt_tokens=generation.prompt_tokens,
                    completion_tokens=generation.completion_tokens,
                ),
                self.db,
            )
            await ChatRepository.update(chat, {"updated_at": utcnow()}, self.db)
        except Exception as e:
            logger.error(f"Error processing message in chat {chat.id}: {e}")
            raise

        elapsed_ms = int((time.monotonic() - start_time) * 1000)
        self.audit.record(
            chat_input.user_id,
            AuditActions.CHAT_MESSAGE,
            "CHAT",
            chat.id,
            {
                "mode": mode.value,
                "source_count": len(sources),
                "response_time": elapsed_ms,
                "is_admin": chat_input.is_admin,
                "preview_user_id": chat_input.preview_user_id,
                "degraded": generation.degraded,
            },
        )
        logger.info(f"Chat response generated in {elapsed_ms}ms (mode: {mode.value}, sources: {len(sources)})")

        return ChatResponse(
            chat_id=chat.id,
            message_id=assistant_message.id,
            content=generation.content,
            mode=mode,
            sources=sources,
            suggested_questions=suggested_questions,
            degraded=generation.degraded,
        )
