from typing import List, Literal, Optional, Protocol
import logging
import os

import aiofiles
import aiofiles.os
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.db.models.knowledge import Chunk, Document, DocumentStatus
from app.repositories.chunk_repository import ChunkRepository
from app.repositories.document_repository import DocumentRepository
from app.schemas.settings import IngestSettings
from app.services.chunker import chunk_text, estimate_tokens
from app.services.rag.retrieval_service import RetrievalService
from app.services.settings_service import SettingsService

logger = logging.getLogger(__name__)


class IngestResult(BaseModel):
    document_id: str
    chunks_created: int = 0
    status: Literal["success", "error"]
    error: Optional[str] = None


class TextSource(Protocol):
    """Produces the plain text of a document"""

    async def read_text(self, document: Document, enabled_parsers: List[str]) -> str:
        ...


class FileTextSource:
    """Reads a document's stored file as UTF-8 text"""

    async def read_text(self, document: Document, enabled_parsers: List[str]) -> str:
        file_type = (document.file_type or "").lower()
        if file_type not in {parser.lower() for parser in enabled_parsers}:
            raise ValueError(f"Parser for file type '{file_type}' is disabled")
        if not document.file_path:
            raise ValueError("Document has no stored file")
        if not os.path.exists(document.file_path):
            raise FileNotFoundError(f"File not found: {document.file_path}")

        async with aiofiles.open(document.file_path, "r", encoding="utf-8") as f:
            return await f.read()


class IngestService:
    """
    Turns stored documents into persisted, indexed chunks.

    Chunk rows and vector points share the same ID. A document is only
    INDEXED once every chunk has been persisted and indexed.
    """

    def __init__(
        self,
        db: Session,
        retrieval_service: RetrievalService,
        text_source: Optional[TextSource] = None
    ):
        self.db = db
        self.retrieval_service = retrieval_service
        self.text_source = text_source or FileTextSource()

    async def _ingest_settings(self, ingest_settings: Optional[IngestSettings]) -> IngestSettings:
        if ingest_settings is not None:
            return ingest_settings
        return (await SettingsService(self.db).get_settings()).ingest

    async def process_document(self, document_id: str, ingest_settings: Optional[IngestSettings] = None) -> IngestResult:
        logger.info(f"Starting document ingestion: {document_id}")

        document = await DocumentRepository.get_by_id(document_id, self.db)
        if document is None:
            logger.error(f"Document {document_id} not found for ingestion")
            return IngestResult(document_id=document_id, status="error", error="Document not found")

        created_ids: List[str] = []
        try:
            ingest = await self._ingest_settings(ingest_settings)
            await DocumentRepository.set_processing(document_id, self.db)

            text = await self.text_source.read_text(document, ingest.enabled_parsers)
            if not text.strip():
                raise ValueError("Document has no content")

            pieces = chunk_text(text, ingest.chunk_target_size, ingest.chunk_overlap)
            await self.retrieval_service.ensure_collection()

            folder_path = document.folder.path if document.folder else ""
            for index, piece in enumerate(pieces):
                chunk = await ChunkRepository.create(
                    Chunk(
                        document_id=document.id,
                        content=piece,
                        chunk_index=index,
                        token_count=estimate_tokens(piece),
                    ),
                    self.db,
                )
                created_ids.append(chunk.id)
                await self.retrieval_service.index_chunk(chunk.id, piece, {
                    "document_id": document.id,
                    "document_name": document.name,
                    "folder_id": document.folder_id,
                    "folder_path": folder_path,
                    "chunk_index": index,
                })
                logger.debug(f"Indexed chunk {index + 1}/{len(pieces)} for document {document.name}")

            await DocumentRepository.set_indexed(document_id, self.db)
            logger.info(f"Document ingestion complete: {document.name} ({len(created_ids)} chunks)")
            return IngestResult(document_id=document_id, chunks_created=len(created_ids), status="success")

        except Exception as e:
            logger.error(f"Document ingestion failed for {document_id}: {e}", exc_info=True)
            try:
                # A half-indexed document must not be searchable
                if created_ids:
                    await self.retrieval_service.delete_chunks(created_ids)
                    await ChunkRepository.delete_by_document(document_id, self.db)
            except Exception as cleanup_error:
                logger.error(f"Chunk cleanup failed for {document_id}: {cleanup_error}", exc_info=True)
            finally:
                await DocumentRepository.set_failed(document_id, str(e) or e.__class__.__name__, self.db)
            return IngestResult(document_id=document_id, status="error", error=str(e))

    async def reindex_document(self, document_id: str, ingest_settings: Optional[IngestSettings] = None) -> IngestResult:
        """Drop the document's chunks from the index and the store, then process it again"""
        await self._remove_chunks(document_id)
        return await self.process_document(document_id, ingest_settings)

    async def process_all_pending(self) -> List[IngestResult]:
        pending = await DocumentRepository.list_ids_by_status(DocumentStatus.PENDING, self.db)
        logger.info(f"Processing {len(pending)} pending documents")
        ingest = await self._ingest_settings(None)
        return [await self.process_document(document_id, ingest) for document_id in pending]

    async def delete_document(self, document_id: str) -> bool:
        """Remove a document's vector points, its stored file and its rows"""
        document = await DocumentRepository.get_by_id(document_id, self.db)
        if document is None:
            return False

        file_path = document.file_path
        await self._remove_chunks(document_id)
        deleted = await DocumentRepository.delete(document_id, self.db)

        if deleted and file_path and os.path.exists(file_path):
            await aiofiles.os.remove(file_path)
        return deleted

    async def _remove_chunks(self, document_id: str) -> None:
        chunk_ids = await ChunkRepository.list_ids_by_document(document_id, self.db)
        if chunk_ids:
            await self.retrieval_service.delete_chunks(chunk_ids)
            await ChunkRepository.delete_by_document(document_id, self.db)
