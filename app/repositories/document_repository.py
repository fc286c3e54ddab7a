from typing import List, Optional, Dict, Any
import logging
from sqlalchemy.orm import Session, joinedload

from app.db.base_class import utcnow
from app.db.models.knowledge import Document, DocumentStatus

logger = logging.getLogger(__name__)

class DocumentRepository:
    """Repository for document operations"""

    @staticmethod
    async def create(document: Document, db: Session) -> Document:
        """
        Create a new document.

        Args:
            document: Document instance
            db: Database session

        Returns:
            Created document
        """
        try:
            db.add(document)
            db.commit()
            db.refresh(document)
            return document
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to create document: {e}")
            raise

    @staticmethod
    async def get_by_id(document_id: str, db: Session) -> Optional[Document]:
        """
        Get a document by ID, with its folder loaded.

        Args:
            document_id: Document ID
            db: Database session

        Returns:
            Document if found, None otherwise
        """
        try:
            return (
                db.query(Document)
                .options(joinedload(Document.folder))
                .filter(Document.id == document_id)
                .first()
            )
        except Exception as e:
            logger.error(f"Failed to get document by ID {document_id}: {e}")
            raise

    @staticmethod
    async def list_by_folder(
        folder_id: str,
        db: Session,
        status: Optional[str] = None
    ) -> List[Document]:
        """List documents in a folder with optional status filter"""
        query = db.query(Document).filter(Document.folder_id == folder_id)
        if status:
            query = query.filter(Document.status == status)
        return query.order_by(Document.name).all()

    @staticmethod
    async def list_ids_by_folders(folder_ids: List[str], db: Session) -> List[str]:
        if not folder_ids:
            return []
        rows = db.query(Document.id).filter(Document.folder_id.in_(folder_ids)).all()
        return [row[0] for row in rows]

    @staticmethod
    async def list_ids_by_status(status: DocumentStatus, db: Session) -> List[str]:
        rows = db.query(Document.id).filter(Document.status == status.value).all()
        return [row[0] for row in rows]

    @staticmethod
    async def update(document_id: str, update_data: Dict[str, Any], db: Session) -> Optional[Document]:
        """
        Update a document.

        Args:
            document_id: Document ID
            update_data: Data to update
            db: Database session

        Returns:
            Updated document if found, None otherwise
        """
        try:
            document = db.query(Document).filter(Document.id == document_id).first()
            if not document:
                return None

            for key, value in update_data.items():
                setattr(document, key, value)

            db.commit()
            db.refresh(document)
            return document
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to update document {document_id}: {e}")
            raise

    @staticmethod
    async def set_processing(document_id: str, db: Session) -> Optional[Document]:
        return await DocumentRepository.update(
            document_id,
            {"status": DocumentStatus.PROCESSING.value, "error_message": None},
            db
        )

    @staticmethod
    async def set_indexed(document_id: str, db: Session) -> Optional[Document]:
        return await DocumentRepository.update(
            document_id,
            {"status": DocumentStatus.INDEXED.value, "processed_at": utcnow(), "error_message": None},
            db
        )

    @staticmethod
    async def set_failed(document_id: str, error_message: str, db: Session) -> Optional[Document]:
        return await DocumentRepository.update(
            document_id,
            {"status": DocumentStatus.ERROR.value, "error_message": error_message},
            db
        )

    @staticmethod
    async def delete(document_id: str, db: Session) -> bool:
        """
        Delete a document. Chunks go with it in the relational store.

        Args:
            document_id: Document ID
            db: Database session

        Returns:
            True if document was deleted, False otherwise
        """
        try:
            document = db.query(Document).filter(Document.id == document_id).first()
            if not document:
                return False

            db.delete(document)
            db.commit()
            return True
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to delete document {document_id}: {e}")
            raise
