from typing import Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field

from app.db.models.knowledge import DocumentStatus, FolderStatus, KnowledgeMode


class FolderCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    path: str = Field(..., min_length=1, max_length=512, description="Unique folder path, e.g. /hr/policies")
    description: Optional[str] = None
    parent_id: Optional[str] = None
    knowledge_mode: KnowledgeMode = KnowledgeMode.HYBRID
    prompt_override: Optional[str] = None
    priority: int = 0


class FolderUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    knowledge_mode: Optional[KnowledgeMode] = None
    prompt_override: Optional[str] = None
    status: Optional[FolderStatus] = None
    priority: Optional[int] = None


class FolderResponse(BaseModel):
    id: str
    name: str
    path: str
    description: Optional[str] = None
    parent_id: Optional[str] = None
    knowledge_mode: KnowledgeMode
    prompt_override: Optional[str] = None
    status: FolderStatus
    priority: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DocumentCreate(BaseModel):
    """A plain-text document to store in a folder and ingest"""
    folder_id: str
    name: str = Field(..., min_length=1, max_length=255)
    file_type: str = Field("txt", min_length=1, max_length=20)
    content: str = Field(..., min_length=1)


class DocumentResponse(BaseModel):
    id: str
    folder_id: str
    name: str
    file_type: str
    content_hash: Optional[str] = None
    size_bytes: int
    status: DocumentStatus
    error_message: Optional[str] = None
    processed_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class FolderAssignment(BaseModel):
    folder_id: str


class GroupMembership(BaseModel):
    group_id: str
