from typing import Iterable, List
import logging
from sqlalchemy import or_, func
from sqlalchemy.orm import Session, joinedload

from app.db.models.knowledge import Chunk, Document, DocumentStatus

logger = logging.getLogger(__name__)

class ChunkRepository:
    """Repository for the persisted chunk store"""

    @staticmethod
    async def create(chunk: Chunk, db: Session) -> Chunk:
        """Create a new chunk"""
        try:
            db.add(chunk)
            db.commit()
            db.refresh(chunk)
            return chunk
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to create chunk: {e}")
            raise

    @staticmethod
    async def list_by_document(document_id: str, db: Session) -> List[Chunk]:
        return (
            db.query(Chunk)
            .filter(Chunk.document_id == document_id)
            .order_by(Chunk.chunk_index)
            .all()
        )

    @staticmethod
    async def list_ids_by_document(document_id: str, db: Session) -> List[str]:
        rows = db.query(Chunk.id).filter(Chunk.document_id == document_id).all()
        return [row[0] for row in rows]

    @staticmethod
    async def delete_by_document(document_id: str, db: Session) -> int:
        """Delete all chunks of a document, returns the number deleted"""
        try:
            deleted = db.query(Chunk).filter(Chunk.document_id == document_id).delete(synchronize_session=False)
            db.commit()
            return deleted
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to delete chunks for document {document_id}: {e}")
            raise

    @staticmethod
    async def search_keywords(
        keywords: List[str],
        folder_ids: Iterable[str],
        limit: int,
        db: Session
    ) -> List[Chunk]:
        """
        Case-insensitive contains-any search over chunks of INDEXED documents.

        Only documents in folder_ids are considered. Chunks come back with
        document and folder loaded.
        """
        ids = list(folder_ids)
        if not keywords or not ids:
            return []
        conditions = [func.lower(Chunk.content).contains(keyword.lower(), autoescape=True) for keyword in keywords]
        return (
            db.query(Chunk)
            .join(Document, Chunk.document_id == Document.id)
            .options(joinedload(Chunk.document).joinedload(Document.folder))
            .filter(
                Document.folder_id.in_(ids),
                Document.status == DocumentStatus.INDEXED.value,
                or_(*conditions),
            )
            .order_by(Chunk.document_id, Chunk.chunk_index)
            .limit(limit)
            .all()
        )

    @staticmethod
    async def filter_accessible(chunk_ids: Iterable[str], folder_ids: Iterable[str], db: Session) -> List[str]:
        """IDs among chunk_ids that belong to INDEXED documents in folder_ids"""
        chunk_list = list(chunk_ids)
        folder_list = list(folder_ids)
        if not chunk_list or not folder_list:
            return []
        rows = (
            db.query(Chunk.id)
            .join(Document, Chunk.document_id == Document.id)
            .filter(
                Chunk.id.in_(chunk_list),
                Document.folder_id.in_(folder_list),
                Document.status == DocumentStatus.INDEXED.value,
            )
            .all()
        )
        return [row[0] for row in rows]
