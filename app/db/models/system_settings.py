from sqlalchemy import Column, String, JSON

from app.db.base_class import BaseModel

SETTINGS_SINGLETON_ID = "singleton"

class SystemSettings(BaseModel):
    """Process-wide settings record, one row keyed by SETTINGS_SINGLETON_ID"""
    __tablename__ = "system_settings"

    settings = Column(JSON, nullable=False, default=dict)
    updated_by = Column(String(36), nullable=True)
