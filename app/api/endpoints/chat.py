from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_access_service, get_audit_service, get_chat_service
from app.core.permissions import Permission, check_permission, is_admin
from app.db.database import get_db
from app.schemas.chat import (
    ChatCreate,
    ChatDetailResponse,
    ChatMessageRequest,
    ChatMessageResponse,
    ChatResponse,
    ChatSummaryResponse,
    ChatUpdate,
    FeedbackRequest,
)
from app.schemas.user import UserResponse
from app.services.access_service import AccessService
from app.services.audit_service import AuditService
from app.services.chat_history_service import ChatHistoryService
from app.services.chat_service import ChatInput, ChatService
from app.services.settings_service import SettingsService

router = APIRouter()


def get_chat_history_service(
    db: Session = Depends(get_db),
    audit: AuditService = Depends(get_audit_service)
) -> ChatHistoryService:
    return ChatHistoryService(db, audit)


@router.post("/message", response_model=ChatResponse)
async def send_message(
    request: ChatMessageRequest,
    current_user: UserResponse = Depends(check_permission(Permission.CHAT)),
    chat_service: ChatService = Depends(get_chat_service),
    access_service: AccessService = Depends(get_access_service)
):
    """
    Answer a message using the folders the current user may read.
    A new chat is created when no chat_id is given.
    """
    allowed_folder_ids = await access_service.resolve_readable_folders(current_user.id)
    return await chat_service.process_message(ChatInput(
        user_id=current_user.id,
        message=request.message,
        chat_id=request.chat_id,
        allowed_folder_ids=sorted(allowed_folder_ids),
        is_admin=is_admin(current_user.role),
    ))


@router.post("/new", response_model=ChatSummaryResponse)
async def create_chat(
    request: ChatCreate,
    current_user: UserResponse = Depends(check_permission(Permission.CHAT)),
    history_service: ChatHistoryService = Depends(get_chat_history_service),
    db: Session = Depends(get_db)
):
    settings = await SettingsService(db).get_settings()
    return await history_service.create_chat(current_user.id, request.title, settings.general.default_language)


@router.get("/{chat_id}", response_model=ChatDetailResponse)
async def get_chat(
    chat_id: str,
    current_user: UserResponse = Depends(check_permission(Permission.VIEW_OWN_HISTORY)),
    history_service: ChatHistoryService = Depends(get_chat_history_service)
):
    return await history_service.get_chat(chat_id, current_user.id)


@router.put("/{chat_id}", response_model=ChatSummaryResponse)
async def update_chat(
    chat_id: str,
    request: ChatUpdate,
    current_user: UserResponse = Depends(check_permission(Permission.VIEW_OWN_HISTORY)),
    history_service: ChatHistoryService = Depends(get_chat_history_service)
):
    """
    Rename or archive a chat.
    """
    return await history_service.update_chat(chat_id, current_user.id, request)


@router.delete("/{chat_id}", status_code=204)
async def delete_chat(
    chat_id: str,
    current_user: UserResponse = Depends(check_permission(Permission.VIEW_OWN_HISTORY)),
    history_service: ChatHistoryService = Depends(get_chat_history_service)
):
    await history_service.delete_chat(chat_id, current_user.id)


@router.post("/{chat_id}/feedback", response_model=ChatMessageResponse)
async def submit_feedback(
    chat_id: str,
    request: FeedbackRequest,
    current_user: UserResponse = Depends(check_permission(Permission.CHAT)),
    history_service: ChatHistoryService = Depends(get_chat_history_service)
):
    return await history_service.submit_feedback(chat_id, current_user.id, request)
