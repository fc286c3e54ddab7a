from datetime import datetime
from typing import List, Optional, Tuple
import csv
import io
import json
import logging
import math

from sqlalchemy.orm import Session

from app.core.exceptions import ValidationError
from app.db.models.audit_log import AuditLog
from app.repositories.audit_repository import AuditRepository
from app.schemas.audit import AuditExportResponse, AuditLogListResponse, AuditLogResponse
from app.schemas.chat import Pagination

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("json", "csv")
CSV_HEADER = ["ID", "Timestamp", "User", "Action", "EntityType", "EntityID", "Details", "IP"]


def _to_response(entry: AuditLog, username: Optional[str]) -> AuditLogResponse:
    response = AuditLogResponse.model_validate(entry)
    return response.model_copy(update={"username": username})


class AuditLogService:
    """Read side of the audit trail for administrators"""

    def __init__(self, db: Session):
        self.db = db

    async def list_logs(
        self,
        page: int = 1,
        limit: int = 50,
        action: Optional[str] = None,
        entity_type: Optional[str] = None,
        user_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> AuditLogListResponse:
        rows, total = await AuditRepository.search(
            self.db,
            action=action,
            entity_type=entity_type,
            user_id=user_id,
            start=start,
            end=end,
            skip=(page - 1) * limit,
            limit=limit,
        )
        return AuditLogListResponse(
            logs=[_to_response(entry, username) for entry, username in rows],
            pagination=Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit)),
        )

    async def list_actions(self) -> List[str]:
        return await AuditRepository.distinct_actions(self.db)

    async def list_entity_types(self) -> List[str]:
        return await AuditRepository.distinct_entity_types(self.db)

    async def export(
        self,
        format: str = "json",
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> AuditExportResponse:
        """
        Export every entry in the time range, newest first.

        CSV rows name the actor by username, or "System" for entries
        without one.
        """
        if format not in EXPORT_FORMATS:
            raise ValidationError(f"Unsupported export format '{format}'")

        rows, total = await AuditRepository.search(self.db, start=start, end=end)
        logger.info(f"Exporting {total} audit entries as {format}")
        if format == "csv":
            return AuditExportResponse(format="csv", content=self._to_csv(rows))
        return AuditExportResponse(format="json", logs=[_to_response(entry, username) for entry, username in rows])

    @staticmethod
    def _to_csv(rows: List[Tuple[AuditLog, Optional[str]]]) -> str:
        output = io.StringIO()
        writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerow(CSV_HEADER)
        for entry, username in rows:
            writer.writerow([
                entry.id,
                entry.created_at.isoformat(),
                username or "System",
                entry.action,
                entry.entity_type or "",
                entry.entity_id or "",
                json.dumps(entry.details or {}),
                entry.ip_address or "",
            ])
        return output.getvalue()
