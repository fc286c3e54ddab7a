from typing import Callable, List, Optional
import hashlib
import logging
import os
import uuid

import aiofiles
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.db.models.knowledge import Document, DocumentStatus, Folder
from app.repositories.document_repository import DocumentRepository
from app.repositories.folder_repository import FolderRepository
from app.repositories.group_repository import GroupRepository
from app.repositories.user_repository import UserRepository
from app.schemas.knowledge import (
    DocumentCreate,
    DocumentResponse,
    FolderCreate,
    FolderResponse,
    FolderUpdate,
)
from app.services.audit_service import AuditActions, AuditService, audit_service
from app.services.ingest_service import IngestService
from app.services.settings_service import SettingsService

logger = logging.getLogger(__name__)

INGEST_TASK = "app.worker.tasks.initiate_document_ingestion"
REINDEX_TASK = "app.worker.tasks.reindex_document"

TaskDispatcher = Callable[[str, List[str]], None]


def send_celery_task(task_name: str, args: List[str]) -> None:
    from app.worker.celery import celery_app

    celery_app.send_task(task_name, args=args)


class FileStorage:
    """Stores uploaded document text under the upload directory"""

    def __init__(self, upload_dir: Optional[str] = None):
        self.upload_dir = upload_dir or settings.UPLOAD_DIR

    async def save_text(self, document_id: str, file_type: str, content: str) -> str:
        os.makedirs(self.upload_dir, exist_ok=True)
        file_path = os.path.join(self.upload_dir, f"{document_id}.{file_type}")
        async with aiofiles.open(file_path, "w", encoding="utf-8") as f:
            await f.write(content)
        return file_path


class KnowledgeService:
    """Admin operations on folders, documents and folder access"""

    def __init__(
        self,
        db: Session,
        ingest_service: IngestService,
        file_storage: Optional[FileStorage] = None,
        dispatch: TaskDispatcher = send_celery_task,
        audit: AuditService = audit_service
    ):
        self.db = db
        self.ingest_service = ingest_service
        self.file_storage = file_storage or FileStorage()
        self.dispatch = dispatch
        self.audit = audit

    # ----- Folders -----

    async def list_folders(self) -> List[FolderResponse]:
        return [FolderResponse.model_validate(folder) for folder in await FolderRepository.list_all(self.db)]

    async def get_folder(self, folder_id: str) -> Folder:
        folder = await FolderRepository.get_by_id(folder_id, self.db)
        if folder is None:
            raise NotFoundError("Folder not found")
        return folder

    async def create_folder(self, data: FolderCreate, actor_id: str) -> FolderResponse:
        if await FolderRepository.get_by_path(data.path, self.db):
            raise ConflictError("Folder path already exists")
        if data.parent_id and not await FolderRepository.get_by_id(data.parent_id, self.db):
            raise ValidationError("Parent folder not found")

        folder = await FolderRepository.create(
            Folder(
                name=data.name,
                path=data.path,
                description=data.description,
                parent_id=data.parent_id,
                knowledge_mode=data.knowledge_mode.value,
                prompt_override=data.prompt_override,
                priority=data.priority,
            ),
            self.db,
        )
        logger.info(f"Folder {folder.path} created by {actor_id}")
        self.audit.record(actor_id, AuditActions.FOLDER_CREATE, "FOLDER", folder.id, {"name": folder.name, "path": folder.path})
        return FolderResponse.model_validate(folder)

    async def update_folder(self, folder_id: str, data: FolderUpdate, actor_id: str) -> FolderResponse:
        folder = await self.get_folder(folder_id)
        update_data = data.model_dump(exclude_unset=True, exclude_none=True, mode="json")
        if update_data:
            folder = await FolderRepository.update(folder, update_data, self.db)
        self.audit.record(actor_id, AuditActions.FOLDER_UPDATE, "FOLDER", folder.id, {"changes": sorted(update_data)})
        return FolderResponse.model_validate(folder)

    async def delete_folder(self, folder_id: str, actor_id: str) -> None:
        """
        Delete a folder with all its subfolders and documents.

        Every document goes through the ingest service first so its vector
        points and stored file are removed along with the rows.
        """
        folder = await self.get_folder(folder_id)
        name = folder.name

        subtree = await FolderRepository.get_subtree_ids(folder_id, self.db)
        document_ids = await DocumentRepository.list_ids_by_folders(subtree, self.db)
        for document_id in document_ids:
            await self.ingest_service.delete_document(document_id)
        await FolderRepository.delete_many(subtree, self.db)

        logger.info(f"Folder {name} deleted by {actor_id} ({len(subtree) - 1} subfolders, {len(document_ids)} documents)")
        self.audit.record(actor_id, AuditActions.FOLDER_DELETE, "FOLDER", folder_id, {
            "name": name,
            "children_deleted": len(subtree) - 1,
            "documents_deleted": len(document_ids),
        })

    # ----- Documents -----

    async def list_documents(self, folder_id: str) -> List[DocumentResponse]:
        await self.get_folder(folder_id)
        documents = await DocumentRepository.list_by_folder(folder_id, self.db)
        return [DocumentResponse.model_validate(document) for document in documents]

    async def register_document(self, data: DocumentCreate, actor_id: str) -> DocumentResponse:
        """Store plain text as a new PENDING document and queue it for ingestion"""
        await self.get_folder(data.folder_id)

        ingest = (await SettingsService(self.db, self.audit).get_settings()).ingest
        file_type = data.file_type.lower().lstrip(".")
        if file_type not in {parser.lower() for parser in ingest.enabled_parsers}:
            raise ValidationError(f"File type '{file_type}' is not enabled for ingestion")

        document_id = str(uuid.uuid4())
        encoded = data.content.encode("utf-8")
        file_path = await self.file_storage.save_text(document_id, file_type, data.content)

        document = await DocumentRepository.create(
            Document(
                id=document_id,
                folder_id=data.folder_id,
                name=data.name,
                file_type=file_type,
                file_path=file_path,
                content_hash=hashlib.sha256(encoded).hexdigest(),
                size_bytes=len(encoded),
                status=DocumentStatus.PENDING.value,
            ),
            self.db,
        )

        if ingest.auto_ingest:
            self.dispatch(INGEST_TASK, [document.id])
            logger.info(f"Queued document {document.id} for ingestion")

        self.audit.record(actor_id, AuditActions.DOCUMENT_UPLOAD, "DOCUMENT", document.id, {"name": document.name, "folder_id": document.folder_id})
        return DocumentResponse.model_validate(document)

    async def reindex_document(self, document_id: str, actor_id: str) -> DocumentResponse:
        document = await DocumentRepository.get_by_id(document_id, self.db)
        if document is None:
            raise NotFoundError("Document not found")

        self.dispatch(REINDEX_TASK, [document.id])
        logger.info(f"Queued document {document.id} for reindexing")
        self.audit.record(actor_id, AuditActions.DOCUMENT_REINDEX, "DOCUMENT", document.id, {"name": document.name})
        return DocumentResponse.model_validate(document)

    async def delete_document(self, document_id: str, actor_id: str) -> None:
        document = await DocumentRepository.get_by_id(document_id, self.db)
        if document is None:
            raise NotFoundError("Document not found")
        name = document.name

        await self.ingest_service.delete_document(document_id)
        self.audit.record(actor_id, AuditActions.DOCUMENT_DELETE, "DOCUMENT", document_id, {"name": name})

    # ----- Access assignments -----

    async def assign_folder_to_user(self, user_id: str, folder_id: str, actor_id: str) -> bool:
        if not await UserRepository.get_by_id(user_id, self.db):
            raise NotFoundError("User not found")
        await self.get_folder(folder_id)

        assigned = await FolderRepository.assign_to_user(user_id, folder_id, self.db)
        self.audit.record(actor_id, AuditActions.USER_FOLDER_ASSIGN, "USER", user_id, {"folder_id": folder_id})
        return assigned

    async def assign_folder_to_group(self, group_id: str, folder_id: str, actor_id: str) -> bool:
        if not await GroupRepository.get_by_id(group_id, self.db):
            raise NotFoundError("Group not found")
        await self.get_folder(folder_id)

        assigned = await FolderRepository.assign_to_group(group_id, folder_id, self.db)
        self.audit.record(actor_id, AuditActions.GROUP_UPDATE, "GROUP", group_id, {"folder_id": folder_id})
        return assigned

    async def add_user_to_group(self, user_id: str, group_id: str, actor_id: str) -> bool:
        if not await UserRepository.get_by_id(user_id, self.db):
            raise NotFoundError("User not found")
        if not await GroupRepository.get_by_id(group_id, self.db):
            raise NotFoundError("Group not found")

        added = await UserRepository.add_to_group(user_id, group_id, self.db)
        self.audit.record(actor_id, AuditActions.USER_GROUP_ASSIGN, "USER", user_id, {"group_id": group_id})
        return added
