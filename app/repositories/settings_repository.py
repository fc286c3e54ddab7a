from typing import Optional, Dict, Any
import logging
from sqlalchemy.orm import Session

from app.db.models.system_settings import SystemSettings, SETTINGS_SINGLETON_ID

logger = logging.getLogger(__name__)

class SettingsRepository:
    @staticmethod
    async def get(db: Session) -> Optional[SystemSettings]:
        """Point read of the singleton settings record"""
        return db.query(SystemSettings).filter(SystemSettings.id == SETTINGS_SINGLETON_ID).first()

    @staticmethod
    async def upsert(settings: Dict[str, Any], updated_by: Optional[str], db: Session) -> SystemSettings:
        """Replace the stored settings document"""
        try:
            record = db.query(SystemSettings).filter(SystemSettings.id == SETTINGS_SINGLETON_ID).first()
            if record is None:
                record = SystemSettings(id=SETTINGS_SINGLETON_ID, settings=settings, updated_by=updated_by)
                db.add(record)
            else:
                record.settings = settings
                record.updated_by = updated_by
            db.commit()
            db.refresh(record)
            return record
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to save system settings: {e}")
            raise
