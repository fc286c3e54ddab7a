import pytest
from sqlalchemy.orm import sessionmaker

from app.db.models import Document, DocumentStatus
from app.services.ingest_service import IngestService
from app.services.rag.retrieval_service import RetrievalService
from app.worker import tasks


@pytest.fixture
def worker_session(db, monkeypatch, llm_service, vector_store):
    """Point the worker tasks at the test database and fake backends"""
    monkeypatch.setattr(tasks, "SessionLocal", sessionmaker(autocommit=False, autoflush=False, bind=db.get_bind()))
    monkeypatch.setattr(
        tasks,
        "_ingest_service",
        lambda session: IngestService(session, RetrievalService(session, llm_service, lambda: vector_store)),
    )
    return db


@pytest.fixture
def pending_document(db, tmp_path, make_folder):
    folder = make_folder("/worker")
    path = tmp_path / "notes.txt"
    path.write_text("Expense reports are due on the fifth working day.", encoding="utf-8")
    document = Document(
        folder_id=folder.id,
        name="notes.txt",
        file_type="txt",
        file_path=str(path),
        status=DocumentStatus.PENDING.value,
    )
    db.add(document)
    db.commit()
    db.refresh(document)
    return document


def test_ingestion_task_indexes_document(worker_session, pending_document, vector_store):
    result = tasks.initiate_document_ingestion(pending_document.id)

    assert result["status"] == "success"
    assert result["chunks_created"] == 1
    worker_session.refresh(pending_document)
    assert pending_document.status == DocumentStatus.INDEXED.value
    assert len(vector_store.points) == 1


def test_ingestion_task_records_failure_on_document(worker_session, pending_document, embedder):
    embedder.error = RuntimeError("embedding backend down")

    result = tasks.initiate_document_ingestion(pending_document.id)

    assert result["status"] == "error"
    worker_session.refresh(pending_document)
    assert pending_document.status == DocumentStatus.ERROR.value


def test_process_pending_documents_handles_every_pending_document(worker_session, pending_document):
    results = tasks.process_pending_documents()

    assert [result["document_id"] for result in results] == [pending_document.id]
    assert results[0]["status"] == "success"
