from typing import Any, Callable, Dict, Optional, Set
import asyncio
import json
import logging

from sqlalchemy.orm import Session

from app.db.database import SessionLocal
from app.db.models.audit_log import AuditLog
from app.repositories.audit_repository import AuditRepository

logger = logging.getLogger(__name__)


class AuditActions:
    """Audit action names"""
    # Auth
    LOGIN = "LOGIN"
    LOGIN_FAILED = "LOGIN_FAILED"

    # Users and groups
    USER_CREATE = "USER_CREATE"
    USER_FOLDER_ASSIGN = "USER_FOLDER_ASSIGN"
    USER_GROUP_ASSIGN = "USER_GROUP_ASSIGN"
    GROUP_CREATE = "GROUP_CREATE"
    GROUP_UPDATE = "GROUP_UPDATE"

    # Knowledge
    FOLDER_CREATE = "FOLDER_CREATE"
    FOLDER_UPDATE = "FOLDER_UPDATE"
    FOLDER_DELETE = "FOLDER_DELETE"
    DOCUMENT_UPLOAD = "DOCUMENT_UPLOAD"
    DOCUMENT_DELETE = "DOCUMENT_DELETE"
    DOCUMENT_REINDEX = "DOCUMENT_REINDEX"

    # Chat
    CHAT_MESSAGE = "CHAT_MESSAGE"
    CHAT_FEEDBACK = "CHAT_FEEDBACK"

    # Settings
    SETTINGS_UPDATE = "SETTINGS_UPDATE"
    PROMPT_UPDATE = "PROMPT_UPDATE"


class AuditService:
    """
    Fire-and-forget audit sink.

    record() schedules the write on the running event loop and returns
    immediately. The write uses its own session, and any failure is logged
    without reaching the caller.
    """

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self._session_factory = session_factory
        self._pending: Set[asyncio.Task] = set()

    def record(
        self,
        actor_id: Optional[str],
        action: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> asyncio.Task:
        entry = AuditLog(
            user_id=actor_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            # Round-trip through JSON so the column only ever sees plain types
            details=json.loads(json.dumps(details, default=str)) if details else None,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        task = asyncio.get_running_loop().create_task(self._write(entry))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _write(self, entry: AuditLog) -> None:
        db = self._session_factory()
        try:
            await AuditRepository.create(entry, db)
        except Exception as e:
            logger.error(f"Failed to write audit event {entry.action}: {e}")
        finally:
            db.close()

    async def drain(self) -> None:
        """Wait for all scheduled writes to finish"""
        if self._pending:
            await asyncio.gather(*list(self._pending))


audit_service = AuditService()
