from typing import List, Optional, Dict, Any
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field

from app.db.models.chat import Feedback, MessageRole
from app.db.models.knowledge import KnowledgeMode


class Source(BaseModel):
    """Document chunk cited by an assistant message"""
    document_id: str = Field(..., description="ID of the source document")
    document_name: str = Field(..., description="Name of the source document")
    folder_path: str = Field(..., description="Path of the folder the document lives in")
    page_number: Optional[int] = Field(None, description="Page number if known")
    chunk_id: str = Field(..., description="ID of the cited chunk")
    relevance_score: float = Field(..., description="Relevance score of the chunk")
    snippet: str = Field("", description="First characters of the chunk")


class ChatMessageRequest(BaseModel):
    """Attributes for sending a message"""
    message: str = Field(..., description="The user's question")
    chat_id: Optional[str] = Field(None, description="Existing chat to continue, a new chat is created if omitted")


class PreviewChatRequest(ChatMessageRequest):
    """Admin preview: answer as if asked by another user"""
    preview_user_id: str = Field(..., description="User whose folder access is used")


class ChatResponse(BaseModel):
    """Response for a processed chat message"""
    chat_id: str
    message_id: str
    content: str
    mode: KnowledgeMode
    sources: List[Source] = Field(default_factory=list)
    suggested_questions: List[str] = Field(default_factory=list)
    degraded: bool = Field(False, description="True when the answer is a canned fallback")


class ChatCreate(BaseModel):
    title: Optional[str] = None


class ChatUpdate(BaseModel):
    title: Optional[str] = Field(None, description="New title for the chat")
    is_archived: Optional[bool] = Field(None, description="Archive or restore the chat")


class FeedbackRequest(BaseModel):
    message_id: str
    feedback: Feedback
    comment: Optional[str] = None


class ChatMessageResponse(BaseModel):
    id: str
    chat_id: str
    role: MessageRole
    content: str
    mode: Optional[KnowledgeMode] = None
    sources: Optional[List[Source]] = None
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    feedback: Optional[Feedback] = None
    feedback_comment: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ChatSummaryResponse(BaseModel):
    id: str
    title: str
    is_archived: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ChatDetailResponse(ChatSummaryResponse):
    messages: List[ChatMessageResponse] = Field(default_factory=list)


class ChatListItem(ChatSummaryResponse):
    message_count: int = 0
    preview: str = ""


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class ChatListResponse(BaseModel):
    chats: List[ChatListItem]
    pagination: Pagination


class MessageSearchResult(BaseModel):
    message_id: str
    chat_id: str
    chat_title: str
    content: str
    role: MessageRole
    timestamp: datetime


class ExportRequest(BaseModel):
    chat_ids: Optional[List[str]] = None
    format: str = Field("json", pattern="^(json|markdown)$")


class ExportResponse(BaseModel):
    format: str
    chats: Optional[List[Dict[str, Any]]] = None
    content: Optional[str] = None
