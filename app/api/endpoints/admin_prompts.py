from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_audit_service
from app.core.permissions import Permission, check_permission
from app.db.database import get_db
from app.db.models.prompt import PromptType
from app.schemas.prompt import PromptCreate, PromptResponse, PromptUpdate
from app.schemas.user import UserResponse
from app.services.audit_service import AuditService
from app.services.prompt_service import PromptService
from app.services.settings_service import SettingsService

router = APIRouter()


def get_prompt_service(
    db: Session = Depends(get_db),
    audit: AuditService = Depends(get_audit_service)
) -> PromptService:
    return PromptService(db, audit)


@router.get("", response_model=List[PromptResponse])
async def list_prompts(
    type: Optional[PromptType] = Query(None),
    active: Optional[bool] = Query(None),
    _: UserResponse = Depends(check_permission(Permission.VIEW_PROMPTS)),
    prompt_service: PromptService = Depends(get_prompt_service)
):
    return await prompt_service.list_prompts(type, active)


@router.get("/active/system", response_model=PromptResponse)
async def get_active_system_prompt(
    _: UserResponse = Depends(check_permission(Permission.VIEW_PROMPTS)),
    prompt_service: PromptService = Depends(get_prompt_service),
    db: Session = Depends(get_db)
):
    """
    The SYSTEM prompt the chat pipeline currently uses.
    """
    settings = await SettingsService(db).get_settings()
    return await prompt_service.get_active_system_prompt(settings.general)


@router.get("/{prompt_id}", response_model=PromptResponse)
async def get_prompt(
    prompt_id: str,
    _: UserResponse = Depends(check_permission(Permission.VIEW_PROMPTS)),
    prompt_service: PromptService = Depends(get_prompt_service)
):
    return await prompt_service.get_prompt(prompt_id)


@router.post("", response_model=PromptResponse, status_code=201)
async def create_prompt(
    request: PromptCreate,
    current_user: UserResponse = Depends(check_permission(Permission.MANAGE_PROMPTS)),
    prompt_service: PromptService = Depends(get_prompt_service)
):
    return await prompt_service.create_prompt(request, current_user.id)


@router.put("/{prompt_id}", response_model=PromptResponse)
async def update_prompt(
    prompt_id: str,
    request: PromptUpdate,
    current_user: UserResponse = Depends(check_permission(Permission.MANAGE_PROMPTS)),
    prompt_service: PromptService = Depends(get_prompt_service)
):
    return await prompt_service.update_prompt(prompt_id, request, current_user.id)


@router.delete("/{prompt_id}", status_code=204)
async def delete_prompt(
    prompt_id: str,
    current_user: UserResponse = Depends(check_permission(Permission.MANAGE_PROMPTS)),
    prompt_service: PromptService = Depends(get_prompt_service)
):
    await prompt_service.delete_prompt(prompt_id, current_user.id)
