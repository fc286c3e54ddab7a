from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class RankedChunk(BaseModel):
    """A retrieved chunk with its relevance score"""
    id: str = Field(..., description="Chunk ID, also the vector point ID")
    document_id: str = Field(..., description="ID of the source document")
    document_name: str = Field(..., description="Name of the source document")
    folder_id: str = Field(..., description="ID of the folder holding the document")
    folder_path: str = Field(default="", description="Path of the folder holding the document")
    content: str = Field(..., description="Chunk text")
    page_number: Optional[int] = Field(default=None, description="Page number if known")
    score: float = Field(..., description="Similarity score, or the fallback constant")

    model_config = ConfigDict(frozen=True)


class RetrievalResult(BaseModel):
    chunks: List[RankedChunk] = Field(default_factory=list)
    total_found: int = 0
    fallback_used: bool = False
