from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field
from app.db.models.user import UserRole

class UserBase(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    email: Optional[str] = Field(default=None)
    first_name: Optional[str] = Field(default=None)
    last_name: Optional[str] = Field(default=None)
    role: UserRole = Field(default=UserRole.USER)

class UserCreate(UserBase):
    password: str = Field(..., min_length=8)

class Token(BaseModel):
    access_token: str = Field(..., alias="access_token")
    token_type: str = Field(default="bearer", alias="token_type")

class UserResponse(UserBase):
    id: str = Field(..., alias="id")
    is_active: bool = Field(..., alias="is_active")

    model_config = ConfigDict(from_attributes=True)

class UserWithPermissions(UserResponse):
    """User response with permissions information"""
    permissions: List[str] = Field(..., description="List of permissions the user has based on their role")

    model_config = ConfigDict(from_attributes=True)

class GroupCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None

class GroupResponse(GroupCreate):
    id: str

    model_config = ConfigDict(from_attributes=True)
