from typing import List, Optional
from fastapi import APIRouter, Depends, Query

from app.api.endpoints.chat import get_chat_history_service
from app.core.config import settings
from app.core.permissions import Permission, check_permission
from app.schemas.chat import ChatListResponse, ExportRequest, ExportResponse, MessageSearchResult
from app.schemas.user import UserResponse
from app.services.chat_history_service import ChatHistoryService

router = APIRouter()


@router.get("", response_model=ChatListResponse)
async def list_chats(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    archived: Optional[bool] = Query(None),
    current_user: UserResponse = Depends(check_permission(Permission.VIEW_OWN_HISTORY)),
    history_service: ChatHistoryService = Depends(get_chat_history_service)
):
    """
    List the current user's chats, most recently updated first.
    """
    return await history_service.list_chats(current_user.id, page, limit, archived)


@router.get("/search", response_model=List[MessageSearchResult])
async def search_messages(
    q: str = Query(..., description="Text to look for in message content"),
    limit: int = Query(20, ge=1, le=100),
    current_user: UserResponse = Depends(check_permission(Permission.VIEW_OWN_HISTORY)),
    history_service: ChatHistoryService = Depends(get_chat_history_service)
):
    return await history_service.search_messages(current_user.id, q, limit)


@router.post("/export", response_model=ExportResponse)
async def export_chats(
    request: ExportRequest,
    current_user: UserResponse = Depends(check_permission(Permission.VIEW_OWN_HISTORY)),
    history_service: ChatHistoryService = Depends(get_chat_history_service)
):
    """
    Export chats as JSON, or as a single markdown document.
    """
    if request.format == "markdown":
        content = await history_service.export_markdown(current_user.id, request.chat_ids, settings.APP_NAME)
        return ExportResponse(format="markdown", content=content)
    return ExportResponse(format="json", chats=await history_service.export_json(current_user.id, request.chat_ids))
