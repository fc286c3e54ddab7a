from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_audit_service, get_retrieval_service
from app.core.permissions import Permission, check_permission
from app.db.database import get_db
from app.schemas.knowledge import (
    DocumentCreate,
    DocumentResponse,
    FolderAssignment,
    FolderCreate,
    FolderResponse,
    FolderUpdate,
    GroupMembership,
)
from app.schemas.user import GroupCreate, GroupResponse, UserCreate, UserResponse
from app.services.audit_service import AuditService
from app.services.ingest_service import IngestService
from app.services.knowledge_service import KnowledgeService
from app.services.rag.retrieval_service import RetrievalService
from app.services.user_service import UserService

router = APIRouter()


def get_knowledge_service(
    db: Session = Depends(get_db),
    retrieval_service: RetrievalService = Depends(get_retrieval_service),
    audit: AuditService = Depends(get_audit_service)
) -> KnowledgeService:
    return KnowledgeService(db, IngestService(db, retrieval_service), audit=audit)


def get_user_service(
    db: Session = Depends(get_db),
    audit: AuditService = Depends(get_audit_service)
) -> UserService:
    return UserService(db, audit)


# ----- Folders -----

@router.get("/folders", response_model=List[FolderResponse])
async def list_folders(
    _: UserResponse = Depends(check_permission(Permission.VIEW_KNOWLEDGE)),
    knowledge_service: KnowledgeService = Depends(get_knowledge_service)
):
    return await knowledge_service.list_folders()


@router.post("/folders", response_model=FolderResponse, status_code=201)
async def create_folder(
    request: FolderCreate,
    current_user: UserResponse = Depends(check_permission(Permission.MANAGE_KNOWLEDGE)),
    knowledge_service: KnowledgeService = Depends(get_knowledge_service)
):
    return await knowledge_service.create_folder(request, current_user.id)


@router.put("/folders/{folder_id}", response_model=FolderResponse)
async def update_folder(
    folder_id: str,
    request: FolderUpdate,
    current_user: UserResponse = Depends(check_permission(Permission.MANAGE_KNOWLEDGE)),
    knowledge_service: KnowledgeService = Depends(get_knowledge_service)
):
    return await knowledge_service.update_folder(folder_id, request, current_user.id)


@router.delete("/folders/{folder_id}", status_code=204)
async def delete_folder(
    folder_id: str,
    current_user: UserResponse = Depends(check_permission(Permission.MANAGE_KNOWLEDGE)),
    knowledge_service: KnowledgeService = Depends(get_knowledge_service)
):
    await knowledge_service.delete_folder(folder_id, current_user.id)


@router.get("/folders/{folder_id}/documents", response_model=List[DocumentResponse])
async def list_documents(
    folder_id: str,
    _: UserResponse = Depends(check_permission(Permission.VIEW_KNOWLEDGE)),
    knowledge_service: KnowledgeService = Depends(get_knowledge_service)
):
    return await knowledge_service.list_documents(folder_id)


# ----- Documents -----

@router.post("/documents", response_model=DocumentResponse, status_code=201)
async def register_document(
    request: DocumentCreate,
    current_user: UserResponse = Depends(check_permission(Permission.MANAGE_KNOWLEDGE)),
    knowledge_service: KnowledgeService = Depends(get_knowledge_service)
):
    """
    Store a plain-text document and queue it for ingestion.
    """
    return await knowledge_service.register_document(request, current_user.id)


@router.post("/documents/{document_id}/reindex", response_model=DocumentResponse)
async def reindex_document(
    document_id: str,
    current_user: UserResponse = Depends(check_permission(Permission.MANAGE_KNOWLEDGE)),
    knowledge_service: KnowledgeService = Depends(get_knowledge_service)
):
    return await knowledge_service.reindex_document(document_id, current_user.id)


@router.delete("/documents/{document_id}", status_code=204)
async def delete_document(
    document_id: str,
    current_user: UserResponse = Depends(check_permission(Permission.MANAGE_KNOWLEDGE)),
    knowledge_service: KnowledgeService = Depends(get_knowledge_service)
):
    await knowledge_service.delete_document(document_id, current_user.id)


# ----- Users, groups and assignments -----

@router.get("/users", response_model=List[UserResponse])
async def list_users(
    _: UserResponse = Depends(check_permission(Permission.ASSIGN_FOLDERS)),
    user_service: UserService = Depends(get_user_service)
):
    return await user_service.list_users()


@router.post("/users", response_model=UserResponse, status_code=201)
async def create_user(
    request: UserCreate,
    current_user: UserResponse = Depends(check_permission(Permission.ASSIGN_FOLDERS)),
    user_service: UserService = Depends(get_user_service)
):
    return await user_service.create_user(request, current_user.id)


@router.get("/groups", response_model=List[GroupResponse])
async def list_groups(
    _: UserResponse = Depends(check_permission(Permission.ASSIGN_FOLDERS)),
    user_service: UserService = Depends(get_user_service)
):
    return await user_service.list_groups()


@router.post("/groups", response_model=GroupResponse, status_code=201)
async def create_group(
    request: GroupCreate,
    current_user: UserResponse = Depends(check_permission(Permission.ASSIGN_FOLDERS)),
    user_service: UserService = Depends(get_user_service)
):
    return await user_service.create_group(request, current_user.id)


@router.post("/users/{user_id}/folders")
async def assign_folder_to_user(
    user_id: str,
    request: FolderAssignment,
    current_user: UserResponse = Depends(check_permission(Permission.ASSIGN_FOLDERS)),
    knowledge_service: KnowledgeService = Depends(get_knowledge_service)
):
    assigned = await knowledge_service.assign_folder_to_user(user_id, request.folder_id, current_user.id)
    return {"assigned": assigned}


@router.post("/groups/{group_id}/folders")
async def assign_folder_to_group(
    group_id: str,
    request: FolderAssignment,
    current_user: UserResponse = Depends(check_permission(Permission.ASSIGN_FOLDERS)),
    knowledge_service: KnowledgeService = Depends(get_knowledge_service)
):
    assigned = await knowledge_service.assign_folder_to_group(group_id, request.folder_id, current_user.id)
    return {"assigned": assigned}


@router.post("/users/{user_id}/groups")
async def add_user_to_group(
    user_id: str,
    request: GroupMembership,
    current_user: UserResponse = Depends(check_permission(Permission.ASSIGN_FOLDERS)),
    knowledge_service: KnowledgeService = Depends(get_knowledge_service)
):
    added = await knowledge_service.add_user_to_group(user_id, request.group_id, current_user.id)
    return {"added": added}
