from sqlalchemy import Column, String, Text, ForeignKey, Boolean, Integer, JSON
from sqlalchemy.orm import relationship
import enum

from app.db.base_class import BaseModel

class MessageRole(str, enum.Enum):
    USER = "USER"
    ASSISTANT = "ASSISTANT"

class Feedback(str, enum.Enum):
    POSITIVE = "POSITIVE"
    NEGATIVE = "NEGATIVE"

class Chat(BaseModel):
    """Chat SQLAlchemy model"""
    __tablename__ = "chats"

    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    is_archived = Column(Boolean, default=False)

    # Relationships
    user = relationship("User", back_populates="chats")
    messages = relationship(
        "ChatMessage",
        back_populates="chat",
        cascade="all, delete-orphan",
        order_by="ChatMessage.sequence",
    )

class ChatMessage(BaseModel):
    """Chat message. Only the feedback fields change after creation."""
    __tablename__ = "chat_messages"

    chat_id = Column(String(36), ForeignKey("chats.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(20), nullable=False)
    content = Column(Text, nullable=False)
    # Position within the chat, assigned on insert; timestamps can tie
    sequence = Column(Integer, nullable=False, default=0)

    # Assistant-only fields
    mode = Column(String(20), nullable=True)
    sources = Column(JSON, nullable=True)
    prompt_tokens = Column(Integer, nullable=True)
    completion_tokens = Column(Integer, nullable=True)
    feedback = Column(String(20), nullable=True)
    feedback_comment = Column(Text, nullable=True)

    chat = relationship("Chat", back_populates="messages")
