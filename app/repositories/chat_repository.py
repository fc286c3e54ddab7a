from typing import List, Optional, Tuple, Dict, Any
import logging
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.db.models.chat import Chat, ChatMessage

logger = logging.getLogger(__name__)

class ChatRepository:
    @staticmethod
    async def create(chat: Chat, db: Session) -> Chat:
        """Create a new chat"""
        try:
            db.add(chat)
            db.commit()
            db.refresh(chat)
            return chat
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to create chat: {e}")
            raise

    @staticmethod
    async def get_for_user(chat_id: str, user_id: str, db: Session) -> Optional[Chat]:
        """Get chat by ID, only if it belongs to the user"""
        return db.query(Chat).filter(Chat.id == chat_id, Chat.user_id == user_id).first()

    @staticmethod
    async def list_by_user(
        user_id: str,
        db: Session,
        archived: Optional[bool] = None,
        skip: int = 0,
        limit: int = 20
    ) -> Tuple[List[Chat], int]:
        """List a user's chats, newest activity first, with the total count"""
        query = db.query(Chat).filter(Chat.user_id == user_id)
        if archived is not None:
            query = query.filter(Chat.is_archived == archived)
        total = query.count()
        chats = query.order_by(Chat.updated_at.desc()).offset(skip).limit(limit).all()
        logger.info(f"Found {len(chats)} of {total} chats for user {user_id}")
        return chats, total

    @staticmethod
    async def list_for_export(user_id: str, db: Session, chat_ids: Optional[List[str]] = None) -> List[Chat]:
        query = db.query(Chat).filter(Chat.user_id == user_id)
        if chat_ids:
            query = query.filter(Chat.id.in_(chat_ids))
        return query.order_by(Chat.created_at).all()

    @staticmethod
    async def count_messages(chat_ids: List[str], db: Session) -> Dict[str, int]:
        if not chat_ids:
            return {}
        rows = (
            db.query(ChatMessage.chat_id, func.count(ChatMessage.id))
            .filter(ChatMessage.chat_id.in_(chat_ids))
            .group_by(ChatMessage.chat_id)
            .all()
        )
        return {chat_id: count for chat_id, count in rows}

    @staticmethod
    async def update(chat: Chat, update_data: Dict[str, Any], db: Session) -> Chat:
        """Update chat details"""
        try:
            for key, value in update_data.items():
                setattr(chat, key, value)
            db.commit()
            db.refresh(chat)
            return chat
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to update chat {chat.id}: {e}")
            raise

    @staticmethod
    async def delete(chat: Chat, db: Session) -> None:
        """Delete a chat and all its messages"""
        chat_id = chat.id
        try:
            db.delete(chat)
            db.commit()
            logger.info(f"Deleted chat {chat_id} and its messages")
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to delete chat {chat_id}: {e}")
            raise
