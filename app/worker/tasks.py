from typing import Any, Dict, List
import asyncio
import logging

from celery import shared_task

from app.db.database import SessionLocal
from app.services.ingest_service import IngestService
from app.services.llm.llm_service import LLMService
from app.services.rag.retrieval_service import RetrievalService

logger = logging.getLogger(__name__)


def _ingest_service(db) -> IngestService:
    return IngestService(db, RetrievalService(db, LLMService()))


@shared_task(bind=True, max_retries=0)
def initiate_document_ingestion(self, document_id: str) -> Dict[str, Any]:
    """
    Chunk, embed and index a newly registered document.

    Failures are recorded on the document (status ERROR) rather than
    retried, so an admin can fix the input and trigger a reindex.
    """
    logger.info(f"Starting document processing task for document_id: {document_id}")

    async def _ingest() -> Dict[str, Any]:
        db = SessionLocal()
        try:
            result = await _ingest_service(db).process_document(document_id)
            return result.model_dump()
        finally:
            db.close()

    return asyncio.run(_ingest())


@shared_task(bind=True, max_retries=0)
def reindex_document(self, document_id: str) -> Dict[str, Any]:
    """Drop a document's chunks and index it again"""
    logger.info(f"Starting reindex task for document_id: {document_id}")

    async def _reindex() -> Dict[str, Any]:
        db = SessionLocal()
        try:
            result = await _ingest_service(db).reindex_document(document_id)
            return result.model_dump()
        finally:
            db.close()

    return asyncio.run(_reindex())


@shared_task(bind=True, max_retries=0)
def process_pending_documents(self) -> List[Dict[str, Any]]:
    logger.info("Processing all pending documents")

    async def _process() -> List[Dict[str, Any]]:
        db = SessionLocal()
        try:
            results = await _ingest_service(db).process_all_pending()
            return [result.model_dump() for result in results]
        finally:
            db.close()

    return asyncio.run(_process())
