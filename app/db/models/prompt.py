from sqlalchemy import Column, String, Text, ForeignKey, Boolean, Integer
import enum

from app.db.base_class import BaseModel

class PromptType(str, enum.Enum):
    SYSTEM = "SYSTEM"
    FOLDER = "FOLDER"
    FOLLOW_UP = "FOLLOW_UP"

class Prompt(BaseModel):
    """Named, versioned prompt text"""
    __tablename__ = "prompts"

    name = Column(String(255), unique=True, nullable=False)
    type = Column(String(20), nullable=False, index=True)
    content = Column(Text, nullable=False)
    version = Column(Integer, nullable=False, default=1)
    is_active = Column(Boolean, nullable=False, default=True)
    folder_id = Column(String(36), ForeignKey("folders.id", ondelete="SET NULL"), nullable=True)
