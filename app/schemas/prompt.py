from typing import Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field

from app.db.models.prompt import PromptType


class PromptCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    type: PromptType
    content: str = Field(..., min_length=1)
    folder_id: Optional[str] = None
    is_active: bool = True


class PromptUpdate(BaseModel):
    content: Optional[str] = Field(None, min_length=1, description="New content, bumps the version when changed")
    is_active: Optional[bool] = None


class PromptResponse(BaseModel):
    id: Optional[str] = None
    name: str
    type: PromptType
    content: str
    version: int
    is_active: bool
    folder_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
