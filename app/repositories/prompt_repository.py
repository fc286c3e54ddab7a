from typing import List, Optional, Dict, Any
import logging
from sqlalchemy.orm import Session

from app.db.models.prompt import Prompt, PromptType

logger = logging.getLogger(__name__)

class PromptRepository:
    @staticmethod
    async def create(prompt: Prompt, db: Session) -> Prompt:
        try:
            db.add(prompt)
            db.commit()
            db.refresh(prompt)
            return prompt
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to create prompt: {e}")
            raise

    @staticmethod
    async def get_by_id(prompt_id: str, db: Session) -> Optional[Prompt]:
        return db.query(Prompt).filter(Prompt.id == prompt_id).first()

    @staticmethod
    async def get_by_name(name: str, db: Session) -> Optional[Prompt]:
        return db.query(Prompt).filter(Prompt.name == name).first()

    @staticmethod
    async def get_active_system(db: Session) -> Optional[Prompt]:
        """Highest-version active SYSTEM prompt"""
        return (
            db.query(Prompt)
            .filter(Prompt.type == PromptType.SYSTEM.value, Prompt.is_active.is_(True))
            .order_by(Prompt.version.desc(), Prompt.updated_at.desc())
            .first()
        )

    @staticmethod
    async def list_all(db: Session, type: Optional[str] = None, active: Optional[bool] = None) -> List[Prompt]:
        query = db.query(Prompt)
        if type:
            query = query.filter(Prompt.type == type)
        if active is not None:
            query = query.filter(Prompt.is_active.is_(active))
        return query.order_by(Prompt.type, Prompt.name).all()

    @staticmethod
    async def update(prompt: Prompt, update_data: Dict[str, Any], db: Session) -> Prompt:
        try:
            for key, value in update_data.items():
                setattr(prompt, key, value)
            db.commit()
            db.refresh(prompt)
            return prompt
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to update prompt {prompt.id}: {e}")
            raise

    @staticmethod
    async def delete(prompt: Prompt, db: Session) -> None:
        try:
            db.delete(prompt)
            db.commit()
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to delete prompt {prompt.id}: {e}")
            raise
