from typing import List, Optional
import logging
from sqlalchemy.orm import Session

from app.db.models.user import Group

logger = logging.getLogger(__name__)

class GroupRepository:
    @staticmethod
    async def create(group: Group, db: Session) -> Group:
        try:
            db.add(group)
            db.commit()
            db.refresh(group)
            return group
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to create group: {e}")
            raise

    @staticmethod
    async def get_by_id(group_id: str, db: Session) -> Optional[Group]:
        return db.query(Group).filter(Group.id == group_id).first()

    @staticmethod
    async def get_by_name(name: str, db: Session) -> Optional[Group]:
        return db.query(Group).filter(Group.name == name).first()

    @staticmethod
    async def list_all(db: Session) -> List[Group]:
        return db.query(Group).order_by(Group.name).all()
