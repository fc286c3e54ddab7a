"""
Pytest configuration file with shared fixtures.
"""
from typing import Any, Dict, List, Optional
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.db.database import Base
from app.api.deps import (
    create_access_token,
    get_audit_service,
    get_db,
    get_llm_service,
    get_vector_store_provider,
)
from app.core.security import get_password_hash
from app.db.models import (
    Chunk,
    Document,
    DocumentStatus,
    Folder,
    KnowledgeMode,
    User,
    UserRole,
)
from app.repositories.settings_repository import SettingsRepository
from app.services.audit_service import AuditService
from app.services.llm.factory import CompletionOptions, CompletionResult, LLMProvider, Message
from app.services.llm.llm_service import LLMService
from app.services.rag.retrieval_service import RetrievalService
from app.services.rag.vector_store import VectorStore

# In-memory database shared by every session through a single connection
TEST_DATABASE_URL = "sqlite://"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# ----- Backend fakes -----

class FakeVectorStore(VectorStore):
    """In-memory vector store. Every hit scores `score` unless a point sets its own."""

    def __init__(self, exists: bool = True, score: float = 0.9):
        self.exists = exists
        self.score = score
        self.points: Dict[str, Dict[str, Any]] = {}
        self.search_error: Optional[Exception] = None
        self.calls: Dict[str, int] = {"collection_exists": 0, "ensure_collection": 0, "upsert": 0, "search": 0, "delete": 0}
        self.last_search: Dict[str, Any] = {}

    @property
    def total_calls(self) -> int:
        return sum(self.calls.values())

    async def collection_exists(self) -> bool:
        self.calls["collection_exists"] += 1
        return self.exists

    async def ensure_collection(self) -> None:
        self.calls["ensure_collection"] += 1
        self.exists = True

    async def upsert_point(self, point_id: str, vector: List[float], payload: Dict[str, Any]) -> None:
        self.calls["upsert"] += 1
        self.points[point_id] = {"vector": vector, "payload": dict(payload)}

    async def search(self, vector: List[float], folder_ids: List[str], limit: int, score_threshold: float) -> List[Dict[str, Any]]:
        self.calls["search"] += 1
        self.last_search = {"folder_ids": list(folder_ids), "limit": limit, "score_threshold": score_threshold}
        if self.search_error is not None:
            raise self.search_error

        hits = []
        for point_id, point in self.points.items():
            score = point.get("score", self.score)
            if point["payload"].get("folder_id") in folder_ids and score >= score_threshold:
                hits.append({"id": point_id, "score": score, "payload": point["payload"]})
        hits.sort(key=lambda hit: hit["score"], reverse=True)
        return hits[:limit]

    async def delete_points(self, point_ids: List[str]) -> None:
        self.calls["delete"] += 1
        for point_id in point_ids:
            self.points.pop(point_id, None)


class FakeProvider(LLMProvider):
    """Returns queued answers, or raises `error` when set"""

    def __init__(self, answer: str = "Test answer"):
        self.answer = answer
        self.answers: List[str] = []
        self.error: Optional[Exception] = None
        self.calls: List[List[Message]] = []
        self.options: List[CompletionOptions] = []

    async def complete(self, messages: List[Message], options: Optional[CompletionOptions] = None) -> CompletionResult:
        self.calls.append(list(messages))
        self.options.append(options)
        if self.error is not None:
            raise self.error
        content = self.answers.pop(0) if self.answers else self.answer
        return CompletionResult(
            content=content,
            model="fake-model",
            usage={"prompt_tokens": 12, "completion_tokens": 7, "total_tokens": 19},
        )


class FakeEmbedder:
    def __init__(self, dimension: int = 8):
        self.dimension = dimension
        self.calls = 0
        self.error: Optional[Exception] = None

    async def __call__(self, text: str) -> List[float]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return [0.1] * self.dimension


class RecordingAuditService(AuditService):
    """Keeps audit events in memory instead of scheduling writes"""

    def __init__(self):
        super().__init__(session_factory=TestingSessionLocal)
        self.events: List[Dict[str, Any]] = []

    def record(self, actor_id, action, entity_type=None, entity_id=None, details=None, ip_address=None, user_agent=None):
        self.events.append({
            "actor_id": actor_id,
            "action": action,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "details": details or {},
        })
        return None

    def actions(self) -> List[str]:
        return [event["action"] for event in self.events]


# ----- Database -----

@pytest.fixture(scope="function")
def db():
    """
    Create a fresh database for each test.
    """
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

    Base.metadata.drop_all(bind=engine)


# ----- Backends and services -----

@pytest.fixture
def vector_store():
    return FakeVectorStore()


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def audit():
    return RecordingAuditService()


@pytest.fixture
def llm_service(provider, embedder):
    return LLMService(provider=provider, embedder=embedder)


@pytest.fixture
def retrieval_service(db, llm_service, vector_store):
    return RetrievalService(db, llm_service, lambda: vector_store)


# ----- Data factories -----

@pytest.fixture
def make_user(db):
    def _make_user(username: str = "alice", role: UserRole = UserRole.USER, password: str = "password123") -> User:
        user = User(
            username=username,
            email=f"{username}@example.com",
            hashed_password=get_password_hash(password),
            role=role.value,
            is_active=True,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make_user


@pytest.fixture
def make_folder(db):
    def _make_folder(path: str, mode: KnowledgeMode = KnowledgeMode.HYBRID, parent: Optional[Folder] = None, users: Optional[List[User]] = None) -> Folder:
        folder = Folder(
            name=path.rsplit("/", 1)[-1] or path,
            path=path,
            parent_id=parent.id if parent else None,
            knowledge_mode=mode.value,
        )
        if users:
            for user in users:
                user.folders.append(folder)
        db.add(folder)
        db.commit()
        db.refresh(folder)
        return folder
    return _make_folder


@pytest.fixture
def make_document(db, vector_store):
    """Creates an INDEXED document whose chunks exist in the database and the fake index"""
    def _make_document(folder: Folder, name: str, chunks: List[str], index: bool = True, score: Optional[float] = None) -> Document:
        document = Document(
            folder_id=folder.id,
            name=name,
            file_type="txt",
            status=DocumentStatus.INDEXED.value,
        )
        db.add(document)
        db.commit()
        for position, content in enumerate(chunks):
            chunk = Chunk(document_id=document.id, content=content, chunk_index=position, token_count=len(content) // 4)
            db.add(chunk)
            db.commit()
            if index:
                vector_store.points[chunk.id] = {
                    "vector": [0.1] * 8,
                    "payload": {
                        "document_id": document.id,
                        "document_name": name,
                        "folder_id": folder.id,
                        "folder_path": folder.path,
                        "chunk_index": position,
                        "content": content,
                    },
                }
                if score is not None:
                    vector_store.points[chunk.id]["score"] = score
        db.refresh(document)
        return document
    return _make_document


@pytest.fixture
def set_settings(db):
    async def _set_settings(**sections: Dict[str, Any]) -> None:
        from app.services.settings_service import SettingsService

        current = (await SettingsService(db).get_settings()).model_dump(mode="json")
        for section, values in sections.items():
            current[section].update(values)
        await SettingsRepository.upsert(current, None, db)
    return _set_settings


# ----- HTTP -----

@pytest.fixture(scope="function")
def client(db, llm_service, vector_store, audit):
    """
    Create a test client with a database session and fake backends.
    """
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_llm_service] = lambda: llm_service
    app.dependency_overrides[get_vector_store_provider] = lambda: (lambda: vector_store)
    app.dependency_overrides[get_audit_service] = lambda: audit

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _auth_headers(user: User) -> Dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}
    return _auth_headers
