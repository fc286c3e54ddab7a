from typing import List, Optional
import logging
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from app.db.models.chat import Chat, ChatMessage

logger = logging.getLogger(__name__)


class MessageRepository:
    @staticmethod
    async def create(message: ChatMessage, db: Session) -> ChatMessage:
        """Create a new message at the end of its chat"""
        try:
            last = (
                db.query(func.max(ChatMessage.sequence))
                .filter(ChatMessage.chat_id == message.chat_id)
                .scalar()
            )
            message.sequence = 0 if last is None else last + 1
            db.add(message)
            db.commit()
            db.refresh(message)
            return message
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to create message: {e}")
            raise

    @staticmethod
    async def get_in_chat(message_id: str, chat_id: str, db: Session) -> Optional[ChatMessage]:
        return (
            db.query(ChatMessage)
            .filter(ChatMessage.id == message_id, ChatMessage.chat_id == chat_id)
            .first()
        )

    @staticmethod
    async def list_by_chat(chat_id: str, db: Session) -> List[ChatMessage]:
        """List all messages in a chat, oldest first"""
        return (
            db.query(ChatMessage)
            .filter(ChatMessage.chat_id == chat_id)
            .order_by(ChatMessage.sequence)
            .all()
        )

    @staticmethod
    async def list_recent(
        chat_id: str,
        limit: int,
        db: Session,
        exclude_id: Optional[str] = None
    ) -> List[ChatMessage]:
        """The latest `limit` messages of a chat, returned oldest first"""
        if limit <= 0:
            return []
        query = db.query(ChatMessage).filter(ChatMessage.chat_id == chat_id)
        if exclude_id:
            query = query.filter(ChatMessage.id != exclude_id)
        messages = query.order_by(ChatMessage.sequence.desc()).limit(limit).all()
        return list(reversed(messages))

    @staticmethod
    async def count_by_chat(chat_id: str, db: Session) -> int:
        return db.query(ChatMessage).filter(ChatMessage.chat_id == chat_id).count()

    @staticmethod
    async def first_message(chat_id: str, db: Session) -> Optional[ChatMessage]:
        return (
            db.query(ChatMessage)
            .filter(ChatMessage.chat_id == chat_id)
            .order_by(ChatMessage.sequence)
            .first()
        )

    @staticmethod
    async def search_for_user(user_id: str, text: str, limit: int, db: Session) -> List[ChatMessage]:
        """Case-insensitive search over a user's messages, newest first"""
        return (
            db.query(ChatMessage)
            .join(Chat, ChatMessage.chat_id == Chat.id)
            .options(joinedload(ChatMessage.chat))
            .filter(Chat.user_id == user_id, func.lower(ChatMessage.content).contains(text.lower(), autoescape=True))
            .order_by(ChatMessage.created_at.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    async def set_feedback(
        message: ChatMessage,
        feedback: str,
        comment: Optional[str],
        db: Session
    ) -> ChatMessage:
        """Set feedback fields, the only mutable part of a message"""
        try:
            message.feedback = feedback
            message.feedback_comment = comment
            db.commit()
            db.refresh(message)
            return message
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to set feedback on message {message.id}: {e}")
            raise
