from datetime import datetime
from typing import List, Optional, Tuple
import logging
from sqlalchemy.orm import Query, Session

from app.db.models.audit_log import AuditLog
from app.db.models.user import User

logger = logging.getLogger(__name__)

class AuditRepository:
    @staticmethod
    async def create(entry: AuditLog, db: Session) -> AuditLog:
        try:
            db.add(entry)
            db.commit()
            db.refresh(entry)
            return entry
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to write audit entry {entry.action}: {e}")
            raise

    @staticmethod
    async def list_recent(db: Session, action: Optional[str] = None, limit: int = 100) -> List[AuditLog]:
        query = db.query(AuditLog)
        if action:
            query = query.filter(AuditLog.action == action)
        return query.order_by(AuditLog.created_at.desc()).limit(limit).all()

    @staticmethod
    def _filtered(
        query: Query,
        action: Optional[str] = None,
        entity_type: Optional[str] = None,
        user_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> Query:
        if action:
            query = query.filter(AuditLog.action == action)
        if entity_type:
            query = query.filter(AuditLog.entity_type == entity_type)
        if user_id:
            query = query.filter(AuditLog.user_id == user_id)
        if start:
            query = query.filter(AuditLog.created_at >= start)
        if end:
            query = query.filter(AuditLog.created_at <= end)
        return query

    @staticmethod
    async def search(
        db: Session,
        action: Optional[str] = None,
        entity_type: Optional[str] = None,
        user_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        skip: int = 0,
        limit: Optional[int] = None
    ) -> Tuple[List[Tuple[AuditLog, Optional[str]]], int]:
        """
        Filtered audit entries, newest first, paired with the actor's username.

        Returns the requested page and the total number of matching entries.
        """
        filters = dict(action=action, entity_type=entity_type, user_id=user_id, start=start, end=end)
        total = AuditRepository._filtered(db.query(AuditLog), **filters).count()

        query = AuditRepository._filtered(
            db.query(AuditLog, User.username).outerjoin(User, User.id == AuditLog.user_id),
            **filters,
        ).order_by(AuditLog.created_at.desc()).offset(skip)
        if limit is not None:
            query = query.limit(limit)
        return [(entry, username) for entry, username in query.all()], total

    @staticmethod
    async def distinct_actions(db: Session) -> List[str]:
        rows = db.query(AuditLog.action).distinct().order_by(AuditLog.action).all()
        return [row[0] for row in rows]

    @staticmethod
    async def distinct_entity_types(db: Session) -> List[str]:
        rows = db.query(AuditLog.entity_type).distinct().order_by(AuditLog.entity_type).all()
        return [row[0] for row in rows if row[0] is not None]
