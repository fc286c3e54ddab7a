from app.db.models.knowledge import KnowledgeMode
from app.schemas.retrieval import RankedChunk
from app.services.rag.mode_selector import select_mode


def _chunk(chunk_id: str, folder_id: str) -> RankedChunk:
    return RankedChunk(
        id=chunk_id,
        document_id=f"doc-{chunk_id}",
        document_name="Handbook",
        folder_id=folder_id,
        content="content",
        score=0.8,
    )


def test_no_folders_is_llm_only():
    assert select_mode([], [_chunk("1", "f1")], {}) == KnowledgeMode.LLM_ONLY


def test_no_chunks_is_llm_only():
    assert select_mode(["f1"], [], {"f1": KnowledgeMode.RAG_ONLY}) == KnowledgeMode.LLM_ONLY


def test_chunks_without_policy_are_hybrid():
    chunks = [_chunk("1", "f1"), _chunk("2", "f2")]
    policies = {"f1": KnowledgeMode.HYBRID, "f2": KnowledgeMode.LLM_ONLY}

    assert select_mode(["f1", "f2"], chunks, policies) == KnowledgeMode.HYBRID


def test_any_rag_only_source_folder_wins():
    chunks = [_chunk("1", "f1"), _chunk("2", "f2")]
    policies = {"f1": KnowledgeMode.HYBRID, "f2": KnowledgeMode.RAG_ONLY}

    assert select_mode(["f1", "f2"], chunks, policies) == KnowledgeMode.RAG_ONLY


def test_rag_only_folder_without_chunks_does_not_apply():
    chunks = [_chunk("1", "f1")]
    policies = {"f1": KnowledgeMode.HYBRID, "f2": KnowledgeMode.RAG_ONLY}

    assert select_mode(["f1", "f2"], chunks, policies) == KnowledgeMode.HYBRID


def test_same_inputs_same_mode():
    chunks = [_chunk("1", "f1")]
    policies = {"f1": KnowledgeMode.RAG_ONLY}

    modes = {select_mode(["f1"], chunks, policies) for _ in range(5)}
    assert modes == {KnowledgeMode.RAG_ONLY}
