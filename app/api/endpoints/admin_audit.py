from datetime import datetime
from typing import Dict, List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.permissions import Permission, check_permission
from app.db.database import get_db
from app.schemas.audit import AuditExportResponse, AuditLogListResponse
from app.schemas.user import UserResponse
from app.services.audit_log_service import AuditLogService

router = APIRouter()


def get_audit_log_service(db: Session = Depends(get_db)) -> AuditLogService:
    return AuditLogService(db)


@router.get("", response_model=AuditLogListResponse)
async def list_audit_logs(
    action: Optional[str] = Query(None),
    entity_type: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    _: UserResponse = Depends(check_permission(Permission.VIEW_AUDIT)),
    audit_log_service: AuditLogService = Depends(get_audit_log_service)
):
    """
    List audit entries, newest first, filtered by action, entity type,
    actor and time range.
    """
    return await audit_log_service.list_logs(page, limit, action, entity_type, user_id, start_date, end_date)


@router.get("/actions")
async def list_actions(
    _: UserResponse = Depends(check_permission(Permission.VIEW_AUDIT)),
    audit_log_service: AuditLogService = Depends(get_audit_log_service)
) -> Dict[str, List[str]]:
    return {"actions": await audit_log_service.list_actions()}


@router.get("/entity-types")
async def list_entity_types(
    _: UserResponse = Depends(check_permission(Permission.VIEW_AUDIT)),
    audit_log_service: AuditLogService = Depends(get_audit_log_service)
) -> Dict[str, List[str]]:
    return {"entity_types": await audit_log_service.list_entity_types()}


@router.get("/export", response_model=AuditExportResponse)
async def export_audit_logs(
    format: str = Query("json", pattern="^(json|csv)$"),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    _: UserResponse = Depends(check_permission(Permission.VIEW_AUDIT)),
    audit_log_service: AuditLogService = Depends(get_audit_log_service)
):
    return await audit_log_service.export(format, start_date, end_date)
