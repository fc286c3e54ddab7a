from typing import Any, Callable, Dict, Iterable, List, Optional
import logging

from sqlalchemy.orm import Session

from app.repositories.chunk_repository import ChunkRepository
from app.schemas.retrieval import RankedChunk, RetrievalResult
from app.schemas.settings import RAGSettings
from app.services.llm.llm_service import LLMService
from app.services.rag.vector_store import VectorStore, get_vector_store

logger = logging.getLogger(__name__)

# Score given to every keyword-fallback hit
FALLBACK_SCORE = 0.5

REQUIRED_PAYLOAD_FIELDS = ("document_id", "folder_id", "content")


def extract_keywords(query: str) -> List[str]:
    """Lowercased whitespace tokens longer than two characters"""
    return [token for token in query.lower().split() if len(token) > 2]


def deduplicate_chunks(chunks: List[RankedChunk], max_per_document: int) -> List[RankedChunk]:
    """Keep at most max_per_document chunks per document, in rank order"""
    counts: Dict[str, int] = {}
    result = []
    for chunk in chunks:
        count = counts.get(chunk.document_id, 0)
        if count < max_per_document:
            result.append(chunk)
            counts[chunk.document_id] = count + 1
    return result


def normalize_hit(hit: Dict[str, Any]) -> Optional[RankedChunk]:
    """Turn a vector store hit into a RankedChunk, or None if the payload is incomplete"""
    payload = hit.get("payload") or {}
    missing = [field for field in REQUIRED_PAYLOAD_FIELDS if not payload.get(field)]
    if missing or not hit.get("id"):
        logger.warning(f"Dropping vector point {hit.get('id')} with incomplete payload, missing {missing}")
        return None

    page_number = payload.get("page_number")
    return RankedChunk(
        id=str(hit["id"]),
        document_id=str(payload["document_id"]),
        document_name=str(payload.get("document_name") or "Unknown"),
        folder_id=str(payload["folder_id"]),
        folder_path=str(payload.get("folder_path") or ""),
        content=str(payload["content"]),
        page_number=int(page_number) if page_number is not None else None,
        score=float(hit.get("score", 0.0)),
    )


class RetrievalService:
    """
    Folder-gated semantic search with a keyword fallback.

    search() never raises. An empty folder set short-circuits before any
    backend is touched, and any vector-path failure degrades to a keyword
    search over the relational chunk store.
    """

    def __init__(
        self,
        db: Session,
        llm_service: LLMService,
        vector_store_provider: Callable[[], VectorStore] = get_vector_store
    ):
        self.db = db
        self.llm_service = llm_service
        self._vector_store_provider = vector_store_provider
        self._vector_store: Optional[VectorStore] = None

    @property
    def vector_store(self) -> VectorStore:
        if self._vector_store is None:
            self._vector_store = self._vector_store_provider()
        return self._vector_store

    async def search(
        self,
        query: str,
        allowed_folder_ids: Iterable[str],
        rag_settings: RAGSettings
    ) -> RetrievalResult:
        folder_ids = sorted(set(allowed_folder_ids))
        if not folder_ids:
            return RetrievalResult(chunks=[], total_found=0)

        fallback_used = False
        try:
            chunks = await self._vector_search(query, folder_ids, rag_settings)
        except Exception as e:
            logger.warning(f"Vector search failed, falling back to keyword search: {e}")
            chunks = None

        if chunks is None:
            fallback_used = True
            chunks = await self._keyword_search(query, folder_ids, rag_settings.top_k)

        total_found = len(chunks)
        if rag_settings.de_duplicate:
            chunks = deduplicate_chunks(chunks, rag_settings.max_chunks_per_document)

        logger.info(
            f"Retrieved {len(chunks)} chunks ({total_found} before dedup) from {len(folder_ids)} folders"
            f"{' via keyword fallback' if fallback_used else ''}"
        )
        return RetrievalResult(chunks=chunks, total_found=total_found, fallback_used=fallback_used)

    async def _vector_search(
        self,
        query: str,
        folder_ids: List[str],
        rag_settings: RAGSettings
    ) -> Optional[List[RankedChunk]]:
        """Semantic search. Returns None when the collection does not exist yet."""
        vector = await self.llm_service.embed(query)

        if not await self.vector_store.collection_exists():
            logger.warning("Vector collection does not exist, falling back to keyword search")
            return None

        hits = await self.vector_store.search(
            vector,
            folder_ids,
            limit=rag_settings.top_k,
            score_threshold=rag_settings.similarity_threshold,
        )
        allowed = set(folder_ids)
        chunks = []
        for hit in hits:
            chunk = normalize_hit(hit)
            # The backend filter is trusted, but never return a foreign folder
            if chunk is not None and chunk.folder_id in allowed:
                chunks.append(chunk)
        return chunks

    async def _keyword_search(self, query: str, folder_ids: List[str], top_k: int) -> List[RankedChunk]:
        keywords = extract_keywords(query)
        if not keywords:
            return []

        try:
            rows = await ChunkRepository.search_keywords(keywords, folder_ids, top_k, self.db)
        except Exception as e:
            logger.error(f"Keyword fallback search failed: {e}", exc_info=True)
            return []

        return [
            RankedChunk(
                id=row.id,
                document_id=row.document_id,
                document_name=row.document.name,
                folder_id=row.document.folder_id,
                folder_path=row.document.folder.path if row.document.folder else "",
                content=row.content,
                page_number=row.page_number,
                score=FALLBACK_SCORE,
            )
            for row in rows
        ]

    # ----- Index maintenance -----

    async def ensure_collection(self) -> None:
        await self.vector_store.ensure_collection()

    async def index_chunk(self, chunk_id: str, content: str, metadata: Dict[str, Any]) -> None:
        """Embed a chunk and upsert it under its chunk ID"""
        vector = await self.llm_service.embed(content)
        await self.vector_store.upsert_point(chunk_id, vector, {**metadata, "content": content})

    async def delete_chunks(self, chunk_ids: List[str]) -> None:
        """Remove chunk points from the index. Failures are logged, not raised."""
        if not chunk_ids:
            return
        try:
            await self.vector_store.delete_points(chunk_ids)
        except Exception as e:
            logger.error(f"Failed to delete {len(chunk_ids)} chunks from the vector index: {e}")
