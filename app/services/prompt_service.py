from typing import List, Optional
import logging

from sqlalchemy.orm import Session

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.prompts import default_system_prompt
from app.db.models.prompt import Prompt, PromptType
from app.repositories.prompt_repository import PromptRepository
from app.schemas.prompt import PromptCreate, PromptResponse, PromptUpdate
from app.schemas.settings import GeneralSettings
from app.services.audit_service import AuditActions, AuditService, audit_service

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT_NAME = "default_system"


class PromptService:
    def __init__(self, db: Session, audit: AuditService = audit_service):
        self.db = db
        self.audit = audit

    async def get_active_system_prompt(self, general: Optional[GeneralSettings] = None) -> PromptResponse:
        """
        The highest-version active SYSTEM prompt.

        Falls back to the built-in prompt (version 0) rendered for the
        configured system name and language.
        """
        prompt = await PromptRepository.get_active_system(self.db)
        if prompt is not None:
            return PromptResponse.model_validate(prompt)

        general = general or GeneralSettings()
        return PromptResponse(
            name=DEFAULT_SYSTEM_PROMPT_NAME,
            type=PromptType.SYSTEM,
            content=default_system_prompt(general.system_name, general.default_language),
            version=0,
            is_active=True,
        )

    async def list_prompts(self, type: Optional[PromptType] = None, active: Optional[bool] = None) -> List[PromptResponse]:
        prompts = await PromptRepository.list_all(self.db, type=type.value if type else None, active=active)
        return [PromptResponse.model_validate(prompt) for prompt in prompts]

    async def _get_or_404(self, prompt_id: str) -> Prompt:
        prompt = await PromptRepository.get_by_id(prompt_id, self.db)
        if prompt is None:
            raise NotFoundError("Prompt not found")
        return prompt

    async def get_prompt(self, prompt_id: str) -> PromptResponse:
        return PromptResponse.model_validate(await self._get_or_404(prompt_id))

    async def create_prompt(self, data: PromptCreate, actor_id: str) -> PromptResponse:
        if await PromptRepository.get_by_name(data.name, self.db):
            raise ConflictError("Prompt name already exists")

        prompt = await PromptRepository.create(
            Prompt(
                name=data.name,
                type=data.type.value,
                content=data.content,
                folder_id=data.folder_id,
                is_active=data.is_active,
                version=1,
            ),
            self.db,
        )
        logger.info(f"Prompt {prompt.name} created by {actor_id}")
        self.audit.record(actor_id, AuditActions.PROMPT_UPDATE, "PROMPT", prompt.id, {"name": prompt.name, "type": prompt.type})
        return PromptResponse.model_validate(prompt)

    async def update_prompt(self, prompt_id: str, data: PromptUpdate, actor_id: str) -> PromptResponse:
        """Update content or activity. A content change increments the version."""
        prompt = await self._get_or_404(prompt_id)

        update_data = {}
        if data.content is not None and data.content != prompt.content:
            update_data["content"] = data.content
            update_data["version"] = prompt.version + 1
        if data.is_active is not None:
            update_data["is_active"] = data.is_active

        if update_data:
            prompt = await PromptRepository.update(prompt, update_data, self.db)
        self.audit.record(actor_id, AuditActions.PROMPT_UPDATE, "PROMPT", prompt.id, {"name": prompt.name, "new_version": prompt.version})
        return PromptResponse.model_validate(prompt)

    async def delete_prompt(self, prompt_id: str, actor_id: str) -> None:
        prompt = await self._get_or_404(prompt_id)
        if prompt.name == DEFAULT_SYSTEM_PROMPT_NAME:
            raise ValidationError("Cannot delete the default system prompt")

        name = prompt.name
        await PromptRepository.delete(prompt, self.db)
        logger.info(f"Prompt {name} deleted by {actor_id}")
        self.audit.record(actor_id, AuditActions.PROMPT_UPDATE, "PROMPT", prompt_id, {"name": name, "deleted": True})
