from enum import Enum
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Table, Text
from sqlalchemy.orm import relationship

from app.db.base_class import BaseModel, utcnow

class UserRole(str, Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    USER = "USER"

# Folder access association tables
user_folders = Table(
    "user_folders",
    BaseModel.metadata,
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("folder_id", String(36), ForeignKey("folders.id", ondelete="CASCADE"), primary_key=True),
    Column("created_at", DateTime, default=utcnow),
)

user_groups = Table(
    "user_groups",
    BaseModel.metadata,
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("group_id", String(36), ForeignKey("groups.id", ondelete="CASCADE"), primary_key=True),
    Column("created_at", DateTime, default=utcnow),
)

group_folders = Table(
    "group_folders",
    BaseModel.metadata,
    Column("group_id", String(36), ForeignKey("groups.id", ondelete="CASCADE"), primary_key=True),
    Column("folder_id", String(36), ForeignKey("folders.id", ondelete="CASCADE"), primary_key=True),
    Column("created_at", DateTime, default=utcnow),
)

# SQLAlchemy User model
class User(BaseModel):
    """User SQLAlchemy model"""
    __tablename__ = "users"

    username = Column(String(100), unique=True, nullable=False, index=True)
    email = Column(String(255), nullable=True)
    hashed_password = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    role = Column(String(20), nullable=False, default=UserRole.USER.value)
    is_active = Column(Boolean, default=True)

    # Relationships
    folders = relationship("Folder", secondary=user_folders)
    groups = relationship("Group", secondary=user_groups, back_populates="members")
    chats = relationship("Chat", back_populates="user", cascade="all, delete-orphan")

class Group(BaseModel):
    """Group of users sharing folder assignments"""
    __tablename__ = "groups"

    name = Column(String(255), unique=True, nullable=False)
    description = Column(Text, nullable=True)

    members = relationship("User", secondary=user_groups, back_populates="groups")
    folders = relationship("Folder", secondary=group_folders)
