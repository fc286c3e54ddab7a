from sqlalchemy import Column, String, Text, ForeignKey, Integer
from sqlalchemy.orm import relationship
import enum

from app.db.base_class import BaseModel, Timestamp

class KnowledgeMode(str, enum.Enum):
    """How an answer may use knowledge"""
    LLM_ONLY = "LLM_ONLY"
    HYBRID = "HYBRID"
    RAG_ONLY = "RAG_ONLY"

class FolderStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    ARCHIVED = "ARCHIVED"
    LOCKED = "LOCKED"

class DocumentStatus(str, enum.Enum):
    """Document processing status"""
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    INDEXED = "INDEXED"
    ERROR = "ERROR"

class Folder(BaseModel):
    """Folder model, the unit of document organisation and access control"""
    __tablename__ = "folders"

    name = Column(String(255), nullable=False)
    path = Column(String(512), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    parent_id = Column(String(36), ForeignKey("folders.id"), nullable=True, index=True)
    # Children inherit the policy by convention only, nothing enforces it
    knowledge_mode = Column(String(20), nullable=False, default=KnowledgeMode.HYBRID.value)
    prompt_override = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=FolderStatus.ACTIVE.value)
    priority = Column(Integer, nullable=False, default=0)

    parent = relationship("Folder", remote_side="Folder.id", back_populates="children")
    children = relationship("Folder", back_populates="parent")
    documents = relationship("Document", back_populates="folder", cascade="all, delete-orphan")

class Document(BaseModel):
    """Document model"""
    __tablename__ = "documents"

    folder_id = Column(String(36), ForeignKey("folders.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    file_type = Column(String(20), nullable=False)
    file_path = Column(String(1024), nullable=True)
    content_hash = Column(String(64), nullable=True)
    size_bytes = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default=DocumentStatus.PENDING.value, index=True)
    error_message = Column(Text, nullable=True)
    processed_at = Column(Timestamp, nullable=True)

    folder = relationship("Folder", back_populates="documents")
    chunks = relationship(
        "Chunk",
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="Chunk.chunk_index",
    )

class Chunk(BaseModel):
    """A bounded slice of a document's text. Never updated, reindexing recreates it."""
    __tablename__ = "chunks"

    document_id = Column(String(36), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    chunk_index = Column(Integer, nullable=False)
    token_count = Column(Integer, nullable=False, default=0)
    page_number = Column(Integer, nullable=True)

    document = relationship("Document", back_populates="chunks")
