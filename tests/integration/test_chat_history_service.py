from datetime import datetime

import pytest

from app.core.exceptions import NotFoundError
from app.db.models import Chat, ChatMessage, Feedback, MessageRole
from app.repositories.message_repository import MessageRepository
from app.schemas.chat import ChatUpdate, FeedbackRequest
from app.services.audit_service import AuditActions
from app.services.chat_history_service import ChatHistoryService
from app.services.chat_service import ChatInput, ChatService


@pytest.fixture
def history_service(db, audit):
    return ChatHistoryService(db, audit)


@pytest.fixture
def ask(db, llm_service, retrieval_service, audit):
    service = ChatService(db, llm_service, retrieval_service, audit)

    async def _ask(user_id, message, chat_id=None):
        return await service.process_message(ChatInput(user_id=user_id, message=message, chat_id=chat_id))
    return _ask


async def test_list_chats_with_preview_and_count(history_service, ask, make_user):
    user = make_user()
    first = await ask(user.id, "Where is the office?")
    await ask(user.id, "And the parking?", chat_id=first.chat_id)
    second = await ask(user.id, "Who approves travel?")

    listing = await history_service.list_chats(user.id, page=1, limit=10)

    assert listing.pagination.total == 2
    assert [c.id for c in listing.chats] == [second.chat_id, first.chat_id]
    assert listing.chats[1].message_count == 4
    assert listing.chats[1].preview == "Where is the office?"


async def test_pagination_and_archive_filter(history_service, ask, make_user):
    user = make_user()
    responses = [await ask(user.id, f"Question {i}") for i in range(3)]
    await history_service.update_chat(responses[0].chat_id, user.id, ChatUpdate(is_archived=True))

    page = await history_service.list_chats(user.id, page=2, limit=2)
    assert page.pagination.pages == 2
    assert len(page.chats) == 1

    archived = await history_service.list_chats(user.id, archived=True)
    assert [c.id for c in archived.chats] == [responses[0].chat_id]


async def test_chats_are_private(history_service, ask, make_user):
    owner = make_user("owner")
    other = make_user("other")
    response = await ask(owner.id, "My question")

    with pytest.raises(NotFoundError):
        await history_service.get_chat(response.chat_id, other.id)
    with pytest.raises(NotFoundError):
        await history_service.delete_chat(response.chat_id, other.id)
    assert (await history_service.list_chats(other.id)).chats == []


async def test_search_messages(history_service, ask, make_user):
    user = make_user()
    await ask(user.id, "Tell me about the Expense Report process")
    await ask(user.id, "Something else")

    results = await history_service.search_messages(user.id, "expense report")

    assert len(results) == 1
    assert results[0].content == "Tell me about the Expense Report process"
    assert await history_service.search_messages(user.id, "e") == []


async def test_feedback_is_stored_and_audited(history_service, ask, make_user, audit):
    user = make_user()
    response = await ask(user.id, "Question")

    message = await history_service.submit_feedback(
        response.chat_id, user.id, FeedbackRequest(message_id=response.message_id, feedback=Feedback.NEGATIVE, comment="Outdated")
    )

    assert message.feedback == Feedback.NEGATIVE
    assert message.feedback_comment == "Outdated"
    assert audit.events[-1]["action"] == AuditActions.CHAT_FEEDBACK
    with pytest.raises(NotFoundError):
        await history_service.submit_feedback(
            response.chat_id, user.id, FeedbackRequest(message_id="missing", feedback=Feedback.POSITIVE)
        )


async def test_rename_and_delete(history_service, ask, make_user):
    user = make_user()
    response = await ask(user.id, "Question")

    renamed = await history_service.update_chat(response.chat_id, user.id, ChatUpdate(title="Renamed"))
    assert renamed.title == "Renamed"

    await history_service.delete_chat(response.chat_id, user.id)
    with pytest.raises(NotFoundError):
        await history_service.get_chat(response.chat_id, user.id)


async def test_export(history_service, ask, make_user):
    user = make_user()
    response = await ask(user.id, "Exported question")

    exported = await history_service.export_json(user.id)
    assert len(exported) == 1
    assert exported[0]["id"] == response.chat_id
    assert [m["role"] for m in exported[0]["messages"]] == ["USER", "ASSISTANT"]

    markdown = await history_service.export_markdown(user.id, [response.chat_id], assistant_name="Acme")
    assert markdown.startswith("# Chat Export")
    assert "**You:**\nExported question" in markdown
    assert "**Acme:**\nTest answer" in markdown


async def test_create_chat_uses_language_default_title(history_service, make_user):
    user = make_user()

    assert (await history_service.create_chat(user.id)).title == "Neuer Chat"
    assert (await history_service.create_chat(user.id, language="en")).title == "New Chat"
    assert (await history_service.create_chat(user.id, title="Custom")).title == "Custom"


async def test_messages_with_equal_timestamps_keep_insertion_order(db, history_service, make_user):
    user = make_user()
    chat = Chat(user_id=user.id, title="Same second")
    db.add(chat)
    db.commit()

    # Whole-second timestamps, as stored by a DATETIME column without fractions
    stamp = datetime(2026, 3, 2, 9, 30, 0)
    contents = ["first question", "first answer", "second question", "second answer"]
    for position, content in enumerate(contents):
        role = MessageRole.USER if position % 2 == 0 else MessageRole.ASSISTANT
        await MessageRepository.create(
            ChatMessage(chat_id=chat.id, role=role.value, content=content, created_at=stamp, updated_at=stamp),
            db,
        )

    recent = await MessageRepository.list_recent(chat.id, 3, db)
    detail = await history_service.get_chat(chat.id, user.id)

    assert [message.content for message in recent] == contents[1:]
    assert [message.content for message in detail.messages] == contents
    assert [message.sequence for message in recent] == [1, 2, 3]
