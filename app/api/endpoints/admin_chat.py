from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_access_service, get_chat_service
from app.core.exceptions import NotFoundError
from app.core.permissions import Permission, check_permission
from app.db.database import get_db
from app.repositories.user_repository import UserRepository
from app.schemas.chat import ChatResponse, PreviewChatRequest
from app.schemas.user import UserResponse
from app.services.access_service import AccessService
from app.services.chat_service import ChatInput, ChatService

router = APIRouter()


@router.post("/preview", response_model=ChatResponse)
async def preview_chat(
    request: PreviewChatRequest,
    current_user: UserResponse = Depends(check_permission(Permission.PREVIEW_CHAT)),
    chat_service: ChatService = Depends(get_chat_service),
    access_service: AccessService = Depends(get_access_service),
    db: Session = Depends(get_db)
):
    """
    Answer as the target user would see it. The chat belongs to the admin,
    retrieval is limited to the target user's folders.
    """
    if not await UserRepository.get_by_id(request.preview_user_id, db):
        raise NotFoundError("Preview user not found")

    allowed_folder_ids = await access_service.resolve_readable_folders(request.preview_user_id)
    return await chat_service.process_message(ChatInput(
        user_id=current_user.id,
        message=request.message,
        chat_id=request.chat_id,
        allowed_folder_ids=sorted(allowed_folder_ids),
        is_admin=True,
        preview_user_id=request.preview_user_id,
    ))
