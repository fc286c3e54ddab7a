from typing import Any, Dict, List, Optional
import logging
import math

from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError
from app.db.models.chat import Chat, MessageRole
from app.repositories.chat_repository import ChatRepository
from app.repositories.message_repository import MessageRepository
from app.schemas.chat import (
    ChatDetailResponse,
    ChatListItem,
    ChatListResponse,
    ChatMessageResponse,
    ChatSummaryResponse,
    ChatUpdate,
    FeedbackRequest,
    MessageSearchResult,
    Pagination,
)
from app.services.audit_service import AuditActions, AuditService, audit_service

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 100
SEARCH_SNIPPET_LENGTH = 200
MIN_SEARCH_LENGTH = 2

DEFAULT_CHAT_TITLES = {
    "de": "Neuer Chat",
    "en": "New Chat",
}


class ChatHistoryService:
    """A user's own chats: listing, search, edits, feedback and export"""

    def __init__(self, db: Session, audit: AuditService = audit_service):
        self.db = db
        self.audit = audit

    async def _get_chat(self, chat_id: str, user_id: str) -> Chat:
        chat = await ChatRepository.get_for_user(chat_id, user_id, self.db)
        if chat is None:
            raise NotFoundError("Chat not found")
        return chat

    async def create_chat(self, user_id: str, title: Optional[str] = None, language: str = "de") -> ChatSummaryResponse:
        chat = await ChatRepository.create(
            Chat(user_id=user_id, title=title or DEFAULT_CHAT_TITLES.get(language, DEFAULT_CHAT_TITLES["de"])),
            self.db,
        )
        return ChatSummaryResponse.model_validate(chat)

    async def list_chats(
        self,
        user_id: str,
        page: int = 1,
        limit: int = 20,
        archived: Optional[bool] = None
    ) -> ChatListResponse:
        page = max(page, 1)
        limit = max(limit, 1)
        chats, total = await ChatRepository.list_by_user(
            user_id, self.db, archived=archived, skip=(page - 1) * limit, limit=limit
        )
        counts = await ChatRepository.count_messages([chat.id for chat in chats], self.db)

        items = []
        for chat in chats:
            first = await MessageRepository.first_message(chat.id, self.db)
            items.append(ChatListItem(
                id=chat.id,
                title=chat.title,
                is_archived=chat.is_archived,
                created_at=chat.created_at,
                updated_at=chat.updated_at,
                message_count=counts.get(chat.id, 0),
                preview=first.content[:PREVIEW_LENGTH] if first else "",
            ))

        return ChatListResponse(
            chats=items,
            pagination=Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit)),
        )

    async def search_messages(self, user_id: str, query: str, limit: int = 20) -> List[MessageSearchResult]:
        query = (query or "").strip()
        if len(query) < MIN_SEARCH_LENGTH:
            return []

        messages = await MessageRepository.search_for_user(user_id, query, limit, self.db)
        return [
            MessageSearchResult(
                message_id=message.id,
                chat_id=message.chat_id,
                chat_title=message.chat.title,
                content=message.content[:SEARCH_SNIPPET_LENGTH],
                role=message.role,
                timestamp=message.created_at,
            )
            for message in messages
        ]

    async def get_chat(self, chat_id: str, user_id: str) -> ChatDetailResponse:
        chat = await self._get_chat(chat_id, user_id)
        messages = await MessageRepository.list_by_chat(chat.id, self.db)
        return ChatDetailResponse(
            id=chat.id,
            title=chat.title,
            is_archived=chat.is_archived,
            created_at=chat.created_at,
            updated_at=chat.updated_at,
            messages=[ChatMessageResponse.model_validate(message) for message in messages],
        )

    async def update_chat(self, chat_id: str, user_id: str, data: ChatUpdate) -> ChatSummaryResponse:
        chat = await self._get_chat(chat_id, user_id)
        update_data = data.model_dump(exclude_unset=True, exclude_none=True)
        if update_data:
            chat = await ChatRepository.update(chat, update_data, self.db)
        return ChatSummaryResponse.model_validate(chat)

    async def delete_chat(self, chat_id: str, user_id: str) -> None:
        chat = await self._get_chat(chat_id, user_id)
        await ChatRepository.delete(chat, self.db)

    async def submit_feedback(self, chat_id: str, user_id: str, feedback: FeedbackRequest) -> ChatMessageResponse:
        chat = await self._get_chat(chat_id, user_id)
        message = await MessageRepository.get_in_chat(feedback.message_id, chat.id, self.db)
        if message is None:
            raise NotFoundError("Message not found")

        message = await MessageRepository.set_feedback(message, feedback.feedback.value, feedback.comment, self.db)
        self.audit.record(
            user_id,
            AuditActions.CHAT_FEEDBACK,
            "CHAT_MESSAGE",
            message.id,
            {"chat_id": chat.id, "feedback": feedback.feedback.value},
        )
        return ChatMessageResponse.model_validate(message)

    async def export_json(self, user_id: str, chat_ids: Optional[List[str]] = None) -> List[Dict[str, Any]]:
        chats = await ChatRepository.list_for_export(user_id, self.db, chat_ids)
        exported = []
        for chat in chats:
            messages = await MessageRepository.list_by_chat(chat.id, self.db)
            exported.append({
                **ChatSummaryResponse.model_validate(chat).model_dump(mode="json"),
                "messages": [ChatMessageResponse.model_validate(m).model_dump(mode="json") for m in messages],
            })
        return exported

    async def export_markdown(self, user_id: str, chat_ids: Optional[List[str]] = None, assistant_name: str = "KnowledgeChat") -> str:
        chats = await ChatRepository.list_for_export(user_id, self.db, chat_ids)
        lines = ["# Chat Export", ""]
        for chat in chats:
            lines.append(f"## {chat.title or 'Untitled Chat'}")
            lines.append(f"*Created: {chat.created_at.isoformat()}*")
            lines.append("")
            for message in await MessageRepository.list_by_chat(chat.id, self.db):
                speaker = "**You:**" if message.role == MessageRole.USER.value else f"**{assistant_name}:**"
                lines.append(speaker)
                lines.append(message.content)
                lines.append("")
            lines.append("---")
            lines.append("")
        return "\n".join(lines)
