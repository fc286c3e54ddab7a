import pytest

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.db.models.prompt import PromptType
from app.schemas.prompt import PromptCreate, PromptUpdate
from app.schemas.settings import GeneralSettings
from app.services.audit_service import AuditActions
from app.services.prompt_service import DEFAULT_SYSTEM_PROMPT_NAME, PromptService


async def test_builtin_prompt_when_none_is_stored(db, audit):
    prompt = await PromptService(db, audit).get_active_system_prompt(GeneralSettings(system_name="Acme", default_language="en"))

    assert prompt.version == 0
    assert prompt.name == DEFAULT_SYSTEM_PROMPT_NAME
    assert "You are Acme" in prompt.content
    assert "Always answer in English" in prompt.content


async def test_highest_active_version_wins(db, audit):
    service = PromptService(db, audit)
    await service.create_prompt(PromptCreate(name="old", type=PromptType.SYSTEM, content="old prompt"), "admin")
    newer = await service.create_prompt(PromptCreate(name="newer", type=PromptType.SYSTEM, content="v1"), "admin")
    await service.update_prompt(newer.id, PromptUpdate(content="v2"), "admin")
    await service.create_prompt(PromptCreate(name="inactive", type=PromptType.SYSTEM, content="off", is_active=False), "admin")

    active = await service.get_active_system_prompt()

    assert active.name == "newer"
    assert active.content == "v2"
    assert active.version == 2


async def test_update_without_content_change_keeps_version(db, audit):
    service = PromptService(db, audit)
    prompt = await service.create_prompt(PromptCreate(name="p", type=PromptType.FOLDER, content="same"), "admin")

    updated = await service.update_prompt(prompt.id, PromptUpdate(content="same", is_active=False), "admin")

    assert updated.version == 1
    assert updated.is_active is False


async def test_names_are_unique(db, audit):
    service = PromptService(db, audit)
    await service.create_prompt(PromptCreate(name="p", type=PromptType.SYSTEM, content="a"), "admin")

    with pytest.raises(ConflictError):
        await service.create_prompt(PromptCreate(name="p", type=PromptType.SYSTEM, content="b"), "admin")


async def test_list_filters(db, audit):
    service = PromptService(db, audit)
    await service.create_prompt(PromptCreate(name="s", type=PromptType.SYSTEM, content="a"), "admin")
    await service.create_prompt(PromptCreate(name="f", type=PromptType.FOLDER, content="b", is_active=False), "admin")

    assert [p.name for p in await service.list_prompts(type=PromptType.FOLDER)] == ["f"]
    assert [p.name for p in await service.list_prompts(active=True)] == ["s"]
    assert len(await service.list_prompts()) == 2


async def test_default_system_prompt_cannot_be_deleted(db, audit):
    service = PromptService(db, audit)
    default = await service.create_prompt(PromptCreate(name=DEFAULT_SYSTEM_PROMPT_NAME, type=PromptType.SYSTEM, content="x"), "admin")
    other = await service.create_prompt(PromptCreate(name="other", type=PromptType.SYSTEM, content="y"), "admin")

    with pytest.raises(ValidationError):
        await service.delete_prompt(default.id, "admin")

    await service.delete_prompt(other.id, "admin")
    with pytest.raises(NotFoundError):
        await service.get_prompt(other.id)

    assert set(audit.actions()) == {AuditActions.PROMPT_UPDATE}
    assert audit.events[-1]["details"] == {"name": "other", "deleted": True}
