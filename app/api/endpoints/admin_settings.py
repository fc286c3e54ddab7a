from typing import Any, Dict
from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_audit_service
from app.core.permissions import Permission, check_permission
from app.db.database import get_db
from app.schemas.settings import SettingsResponse, SettingsUpdate
from app.schemas.user import UserResponse
from app.services.audit_service import AuditService
from app.services.settings_service import SettingsService

router = APIRouter()


def get_settings_service(
    db: Session = Depends(get_db),
    audit: AuditService = Depends(get_audit_service)
) -> SettingsService:
    return SettingsService(db, audit)


@router.get("", response_model=SettingsResponse)
async def get_settings(
    _: UserResponse = Depends(check_permission(Permission.VIEW_SETTINGS)),
    settings_service: SettingsService = Depends(get_settings_service)
):
    return SettingsResponse(settings=await settings_service.get_settings())


@router.get("/defaults", response_model=SettingsResponse)
async def get_default_settings(
    _: UserResponse = Depends(check_permission(Permission.VIEW_SETTINGS))
):
    return SettingsResponse(settings=SettingsService.get_defaults())


@router.put("", response_model=SettingsResponse)
async def update_settings(
    request: SettingsUpdate,
    current_user: UserResponse = Depends(check_permission(Permission.MANAGE_SETTINGS)),
    settings_service: SettingsService = Depends(get_settings_service)
):
    """
    Merge the given sections into the stored settings (SUPER_ADMIN only).
    """
    return SettingsResponse(settings=await settings_service.update_settings(request.settings, current_user.id))


@router.put("/{section}", response_model=SettingsResponse)
async def update_settings_section(
    section: str,
    data: Dict[str, Any] = Body(...),
    current_user: UserResponse = Depends(check_permission(Permission.MANAGE_SETTINGS)),
    settings_service: SettingsService = Depends(get_settings_service)
):
    return SettingsResponse(settings=await settings_service.update_section(section, data, current_user.id))
