from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.schemas.knowledge import FolderResponse
from app.schemas.user import UserResponse, UserWithPermissions
from app.services.access_service import AccessService
from app.api.deps import get_access_service, get_current_user
from app.core.permissions import get_permissions_for_role

router = APIRouter()

@router.get("/me", response_model=UserWithPermissions)
async def get_current_user_info(
    current_user: UserResponse = Depends(get_current_user)
):
    """
    Get current user information with permissions.
    Returns detailed information about the current user, including their role and permissions.
    """
    permissions = [perm.value for perm in get_permissions_for_role(current_user.role)]
    return UserWithPermissions(**current_user.model_dump(), permissions=permissions)

@router.get("/me/folders", response_model=List[FolderResponse])
async def list_my_folders(
    current_user: UserResponse = Depends(get_current_user),
    access_service: AccessService = Depends(get_access_service)
):
    """
    List the folders the current user may read.
    """
    return await access_service.list_readable_folders(current_user.id)
