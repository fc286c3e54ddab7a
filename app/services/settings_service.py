from typing import Any, Dict, Optional
import logging

import pydantic
from sqlalchemy.orm import Session

from app.core.exceptions import ValidationError
from app.repositories.settings_repository import SettingsRepository
from app.schemas.settings import SETTINGS_SECTIONS, SystemSettingsSchema
from app.services.audit_service import AuditActions, AuditService, audit_service

logger = logging.getLogger(__name__)


def _section_model(section: str):
    return SystemSettingsSchema.model_fields[section].annotation


def merge_settings(stored: Optional[Dict[str, Any]]) -> SystemSettingsSchema:
    """Overlay stored sections on the defaults. Invalid sections fall back to defaults."""
    defaults = SystemSettingsSchema()
    stored = stored or {}
    sections = {}
    for section in SETTINGS_SECTIONS:
        base = getattr(defaults, section).model_dump()
        overrides = stored.get(section) or {}
        try:
            sections[section] = _section_model(section)(**{**base, **overrides})
        except pydantic.ValidationError as e:
            logger.warning(f"Stored settings section '{section}' is invalid, using defaults: {e}")
            sections[section] = getattr(defaults, section)
    return SystemSettingsSchema(**sections)


class SettingsService:
    """Runtime system settings backed by the singleton settings record"""

    def __init__(self, db: Session, audit: AuditService = audit_service):
        self.db = db
        self.audit = audit

    async def get_settings(self) -> SystemSettingsSchema:
        """Fresh read of the stored settings merged over the defaults"""
        record = await SettingsRepository.get(self.db)
        return merge_settings(record.settings if record else None)

    @staticmethod
    def get_defaults() -> SystemSettingsSchema:
        return SystemSettingsSchema()

    async def update_settings(self, partial: Dict[str, Dict[str, Any]], actor_id: Optional[str]) -> SystemSettingsSchema:
        """Merge the given sections into the current settings and persist them"""
        unknown = [section for section in partial if section not in SETTINGS_SECTIONS]
        if unknown:
            raise ValidationError(f"Unknown settings sections: {', '.join(sorted(unknown))}")

        current = await self.get_settings()
        sections = {section: getattr(current, section) for section in SETTINGS_SECTIONS}
        for section, data in partial.items():
            if not isinstance(data, dict):
                raise ValidationError(f"Settings section '{section}' must be an object")
            merged = {**sections[section].model_dump(), **data}
            try:
                sections[section] = _section_model(section)(**merged)
            except pydantic.ValidationError as e:
                raise ValidationError(f"Invalid value in settings section '{section}': {e.errors()[0]['msg']}")

        updated = SystemSettingsSchema(**sections)
        await SettingsRepository.upsert(updated.model_dump(mode="json"), actor_id, self.db)
        logger.info(f"System settings updated by {actor_id}: {', '.join(partial)}")

        self.audit.record(
            actor_id,
            AuditActions.SETTINGS_UPDATE,
            "SETTINGS",
            "singleton",
            {"sections": list(partial)},
        )
        return updated

    async def update_section(self, section: str, data: Dict[str, Any], actor_id: Optional[str]) -> SystemSettingsSchema:
        if section not in SETTINGS_SECTIONS:
            raise ValidationError(f"Unknown settings section: {section}")
        return await self.update_settings({section: data}, actor_id)
