import pytest
from pydantic import ValidationError as PydanticValidationError

from app.db.models.knowledge import KnowledgeMode
from app.schemas.retrieval import RankedChunk
from app.schemas.settings import RAGSettings
from app.services.rag.retrieval_service import FALLBACK_SCORE, deduplicate_chunks, extract_keywords


def _ranked(chunk_id: str, document_id: str, score: float) -> RankedChunk:
    return RankedChunk(id=chunk_id, document_id=document_id, document_name=document_id, folder_id="f", content="x", score=score)


def test_extract_keywords_drops_short_tokens():
    assert extract_keywords("How do I file my VACATION request") == ["how", "file", "vacation", "request"]


def test_deduplicate_caps_per_document_in_rank_order():
    chunks = [
        _ranked("1", "a", 0.9),
        _ranked("2", "a", 0.8),
        _ranked("3", "b", 0.7),
        _ranked("4", "a", 0.6),
        _ranked("5", "b", 0.5),
    ]

    assert [c.id for c in deduplicate_chunks(chunks, 2)] == ["1", "2", "3", "5"]
    assert [c.id for c in deduplicate_chunks(chunks, 1)] == ["1", "3"]


def test_ranked_chunks_are_immutable():
    chunk = _ranked("1", "a", 0.9)

    with pytest.raises(PydanticValidationError):
        chunk.score = 0.1


async def test_empty_folder_set_touches_no_backend(retrieval_service, vector_store, embedder):
    result = await retrieval_service.search("anything", [], RAGSettings())

    assert result.chunks == []
    assert result.total_found == 0
    assert vector_store.total_calls == 0
    assert embedder.calls == 0


async def test_results_are_limited_to_allowed_folders(retrieval_service, make_folder, make_document):
    allowed = make_folder("/allowed")
    hidden = make_folder("/hidden")
    make_document(allowed, "Allowed.txt", ["vacation rules for staff"])
    make_document(hidden, "Hidden.txt", ["secret vacation rules"])

    result = await retrieval_service.search("vacation rules", [allowed.id], RAGSettings())

    assert [c.document_name for c in result.chunks] == ["Allowed.txt"]
    assert all(c.folder_id == allowed.id for c in result.chunks)
    assert result.fallback_used is False


async def test_foreign_hits_from_the_backend_are_dropped(retrieval_service, vector_store, make_folder, make_document):
    allowed = make_folder("/allowed")
    make_document(allowed, "Allowed.txt", ["vacation rules"])
    vector_store.points["rogue"] = {
        "vector": [0.1] * 8,
        "payload": {"document_id": "x", "document_name": "Rogue", "folder_id": "other", "content": "vacation"},
    }

    # A backend that ignores its filter
    async def unfiltered_search(vector, folder_ids, limit, score_threshold):
        return [{"id": pid, "score": 0.9, "payload": p["payload"]} for pid, p in vector_store.points.items()]

    vector_store.search = unfiltered_search
    result = await retrieval_service.search("vacation", [allowed.id], RAGSettings())

    assert [c.document_name for c in result.chunks] == ["Allowed.txt"]


async def test_top_k_and_threshold_are_passed_to_the_backend(retrieval_service, vector_store, make_folder, make_document):
    folder = make_folder("/docs")
    make_document(folder, "Doc.txt", ["one", "two"])

    await retrieval_service.search("query", [folder.id], RAGSettings(top_k=3, similarity_threshold=0.4))

    assert vector_store.last_search["limit"] == 3
    assert vector_store.last_search["score_threshold"] == 0.4


async def test_low_scores_are_filtered(retrieval_service, make_folder, make_document):
    folder = make_folder("/docs")
    make_document(folder, "Weak.txt", ["weak match"], score=0.1)
    make_document(folder, "Strong.txt", ["strong match"], score=0.9)

    result = await retrieval_service.search("match", [folder.id], RAGSettings(similarity_threshold=0.25))

    assert [c.document_name for c in result.chunks] == ["Strong.txt"]


async def test_dedup_applies_to_vector_results(retrieval_service, make_folder, make_document):
    folder = make_folder("/docs")
    make_document(folder, "Long.txt", [f"part {i}" for i in range(6)])

    result = await retrieval_service.search("part", [folder.id], RAGSettings(max_chunks_per_document=2))

    assert len(result.chunks) == 2
    assert result.total_found == 6


async def test_vector_failure_falls_back_to_keywords(retrieval_service, vector_store, make_folder, make_document):
    folder = make_folder("/docs")
    make_document(folder, "Handbook.txt", ["The vacation policy grants 30 days", "Unrelated text"], index=False)
    vector_store.search_error = RuntimeError("backend down")

    result = await retrieval_service.search("vacation policy", [folder.id], RAGSettings())

    assert result.fallback_used is True
    assert len(result.chunks) == 1
    assert result.chunks[0].score == FALLBACK_SCORE
    assert result.chunks[0].folder_path == "/docs"


async def test_embedding_failure_falls_back_to_keywords(retrieval_service, embedder, make_folder, make_document):
    folder = make_folder("/docs")
    make_document(folder, "Handbook.txt", ["vacation policy"], index=False)
    embedder.error = RuntimeError("embedding service unavailable")

    result = await retrieval_service.search("vacation", [folder.id], RAGSettings())

    assert result.fallback_used is True
    assert [c.document_name for c in result.chunks] == ["Handbook.txt"]


async def test_missing_collection_falls_back_without_searching(retrieval_service, vector_store, make_folder, make_document):
    folder = make_folder("/docs")
    make_document(folder, "Handbook.txt", ["vacation policy"], index=False)
    vector_store.exists = False

    result = await retrieval_service.search("vacation", [folder.id], RAGSettings())

    assert result.fallback_used is True
    assert vector_store.calls["search"] == 0
    assert len(result.chunks) == 1


async def test_fallback_respects_folder_gating(retrieval_service, vector_store, make_folder, make_document):
    allowed = make_folder("/allowed")
    hidden = make_folder("/hidden", mode=KnowledgeMode.RAG_ONLY)
    make_document(hidden, "Hidden.txt", ["vacation secrets"], index=False)
    vector_store.search_error = RuntimeError("backend down")

    result = await retrieval_service.search("vacation", [allowed.id], RAGSettings())

    assert result.chunks == []


async def test_fallback_matches_like_wildcards_literally(retrieval_service, vector_store, make_folder, make_document):
    folder = make_folder("/docs")
    make_document(folder, "Codes.txt", ["the error code is ABCXDEF", "budget grew 100 units this year"], index=False)
    make_document(folder, "Literal.txt", ["see abc_def in the logs"], index=False)
    vector_store.exists = False

    underscore = await retrieval_service.search("abc_def", [folder.id], RAGSettings())
    percent = await retrieval_service.search("100%", [folder.id], RAGSettings())

    assert [chunk.content for chunk in underscore.chunks] == ["see abc_def in the logs"]
    assert percent.chunks == []


async def test_index_and_delete_chunks(retrieval_service, vector_store):
    await retrieval_service.index_chunk("c1", "text", {"document_id": "d1", "folder_id": "f1"})

    assert vector_store.points["c1"]["payload"]["content"] == "text"

    await retrieval_service.delete_chunks(["c1"])
    assert "c1" not in vector_store.points


async def test_delete_chunks_never_raises(retrieval_service, vector_store):
    async def broken_delete(point_ids):
        raise RuntimeError("backend down")

    vector_store.delete_points = broken_delete
    await retrieval_service.delete_chunks(["c1"])
