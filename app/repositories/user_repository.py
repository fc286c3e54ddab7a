from typing import List, Optional, Dict, Any
import logging
from sqlalchemy.orm import Session
from app.db.models.user import User, user_groups

logger = logging.getLogger(__name__)

class UserRepository:
    @staticmethod
    async def create(user: User, db: Session) -> User:
        """Create a new user"""
        try:
            db.add(user)
            db.commit()
            db.refresh(user)
            return user
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to create user: {e}")
            raise

    @staticmethod
    async def get_by_id(user_id: str, db: Session) -> Optional[User]:
        """Get user by ID"""
        try:
            return db.query(User).filter(User.id == user_id).first()
        except Exception as e:
            logger.error(f"Failed to get user by ID {user_id}: {e}")
            raise

    @staticmethod
    async def get_by_username(username: str, db: Session) -> Optional[User]:
        """Get user by username"""
        try:
            return db.query(User).filter(User.username == username).first()
        except Exception as e:
            logger.error(f"Failed to get user by username {username}: {e}")
            raise

    @staticmethod
    async def list_all(db: Session) -> List[User]:
        """List all users"""
        return db.query(User).order_by(User.username).all()

    @staticmethod
    async def update(user: User, update_data: Dict[str, Any], db: Session) -> User:
        """Update user"""
        try:
            for key, value in update_data.items():
                setattr(user, key, value)
            db.commit()
            db.refresh(user)
            return user
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to update user {user.id}: {e}")
            raise

    @staticmethod
    async def add_to_group(user_id: str, group_id: str, db: Session) -> bool:
        """Add a user to a group. Returns False if already a member."""
        try:
            exists = db.query(user_groups).filter(
                user_groups.c.user_id == user_id, user_groups.c.group_id == group_id
            ).first()
            if exists:
                return False
            db.execute(user_groups.insert().values(user_id=user_id, group_id=group_id))
            db.commit()
            return True
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to add user {user_id} to group {group_id}: {e}")
            raise
