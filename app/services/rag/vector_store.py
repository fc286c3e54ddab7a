from typing import List, Dict, Any, Optional
from pinecone import Pinecone, ServerlessSpec
from app.core.config import settings
import logging
from abc import ABC, abstractmethod
import threading

logger = logging.getLogger(__name__)

class VectorStore(ABC):
    """Abstract base class for vector stores.

    Points are keyed by chunk ID. Payloads carry document_id, document_name,
    folder_id, folder_path, chunk_index, content and optionally page_number.
    """

    @abstractmethod
    async def collection_exists(self) -> bool:
        """Whether the backing collection has been created"""
        pass

    @abstractmethod
    async def ensure_collection(self) -> None:
        """Create the backing collection if it does not exist"""
        pass

    @abstractmethod
    async def upsert_point(self, point_id: str, vector: List[float], payload: Dict[str, Any]) -> None:
        """Insert or replace one point"""
        pass

    @abstractmethod
    async def search(
        self,
        vector: List[float],
        folder_ids: List[str],
        limit: int,
        score_threshold: float
    ) -> List[Dict[str, Any]]:
        """
        Nearest points restricted to folder_ids, best first.

        Each hit is a dict with `id`, `score` and `payload`.
        """
        pass

    @abstractmethod
    async def delete_points(self, point_ids: List[str]) -> None:
        """Delete points by ID. Unknown IDs are ignored."""
        pass


class PineconeVectorStore(VectorStore):
    """Pinecone implementation of the VectorStore interface"""

    DELETE_BATCH_SIZE = 1000

    def __init__(self, index_name: Optional[str] = None, dimension: Optional[int] = None):
        """Initialize PineconeVectorStore with specific index name

        Args:
            index_name: Name of the Pinecone index (defaults to settings.PINECONE_INDEX_NAME)
            dimension: Vector dimension (defaults to settings.EMBEDDING_DIMENSION)
        """
        self.pc = Pinecone(api_key=settings.PINECONE_API_KEY)
        self.index_name = index_name or settings.PINECONE_INDEX_NAME
        self.dimension = dimension or settings.EMBEDDING_DIMENSION
        self._index = None
        logger.info(f"Initialized PineconeVectorStore for index {self.index_name}")

    @property
    def index(self):
        if self._index is None:
            self._index = self.pc.Index(self.index_name)
        return self._index

    async def collection_exists(self) -> bool:
        return self.pc.has_index(self.index_name)

    async def ensure_collection(self) -> None:
        if self.pc.has_index(self.index_name):
            return
        logger.info(f"Creating Pinecone index {self.index_name} (dimension {self.dimension})")
        self.pc.create_index(
            name=self.index_name,
            dimension=self.dimension,
            metric="cosine",
            spec=ServerlessSpec(cloud=settings.PINECONE_CLOUD, region=settings.PINECONE_REGION)
        )

    async def upsert_point(self, point_id: str, vector: List[float], payload: Dict[str, Any]) -> None:
        # Pinecone rejects null metadata values
        metadata = {key: value for key, value in payload.items() if value is not None}
        try:
            self.index.upsert(vectors=[{
                "id": point_id,
                "values": [float(x) for x in vector],
                "metadata": metadata
            }])
        except Exception as e:
            logger.error(f"Failed to upsert point {point_id}: {e}", exc_info=True)
            raise

    async def search(
        self,
        vector: List[float],
        folder_ids: List[str],
        limit: int,
        score_threshold: float
    ) -> List[Dict[str, Any]]:
        """Search for similar chunks in Pinecone"""
        if not folder_ids:
            return []

        results = self.index.query(
            vector=vector,
            filter={"folder_id": {"$in": list(folder_ids)}},
            top_k=limit,
            include_metadata=True
        )

        hits = []
        filtered_out = 0
        for match in results.matches:
            if match.score < score_threshold:
                filtered_out += 1
                continue
            hits.append({
                "id": match.id,
                "score": float(match.score),
                "payload": dict(match.metadata or {})
            })

        logger.debug(f"Pinecone returned {len(results.matches)} matches, {filtered_out} below threshold {score_threshold}")
        hits.sort(key=lambda hit: hit["score"], reverse=True)
        return hits[:limit]

    async def delete_points(self, point_ids: List[str]) -> None:
        ids = list(point_ids)
        for i in range(0, len(ids), self.DELETE_BATCH_SIZE):
            batch = ids[i:i + self.DELETE_BATCH_SIZE]
            self.index.delete(ids=batch)
            logger.info(f"Deleted {len(batch)} points from index {self.index_name}")


class VectorStoreFactory:
    """Factory class for creating VectorStore instances"""

    # Class-level registry to store instances
    _instances: Dict[str, VectorStore] = {}
    # Lock for thread safety
    _lock = threading.RLock()

    @classmethod
    def create(cls, store_type: str = "pinecone", index_name: Optional[str] = None) -> VectorStore:
        """Create or retrieve a VectorStore instance

        Args:
            store_type: Type of vector store to create
            index_name: Name of the index to use (defaults to settings.PINECONE_INDEX_NAME)

        Returns:
            VectorStore: An instance of a VectorStore implementation
        """
        index_name = index_name or settings.PINECONE_INDEX_NAME
        instance_key = f"{store_type}_{index_name}"

        if instance_key in cls._instances:
            return cls._instances[instance_key]

        with cls._lock:
            if instance_key in cls._instances:
                return cls._instances[instance_key]

            logger.info(f"Creating new {store_type} instance for index {index_name}")
            if store_type == "pinecone":
                instance = PineconeVectorStore(index_name=index_name)
            else:
                raise ValueError(f"Unsupported vector store type: {store_type}")
            cls._instances[instance_key] = instance
            return instance

    @classmethod
    def cleanup(cls) -> None:
        """Drop all cached instances"""
        with cls._lock:
            cls._instances.clear()
            logger.info("Cleaned up all vector store instances")


def get_vector_store(store_type: str = "pinecone", index_name: Optional[str] = None) -> VectorStore:
    """Get a vector store instance, one per store type and index name"""
    return VectorStoreFactory.create(store_type=store_type, index_name=index_name)
