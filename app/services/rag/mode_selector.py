from typing import Iterable, List, Mapping

from app.db.models.knowledge import KnowledgeMode
from app.schemas.retrieval import RankedChunk


def select_mode(
    allowed_folder_ids: Iterable[str],
    chunks: List[RankedChunk],
    folder_policies: Mapping[str, KnowledgeMode]
) -> KnowledgeMode:
    """
    Decide how an answer may use knowledge.

    No folders or no chunks means LLM_ONLY. Otherwise RAG_ONLY if any folder
    a retrieved chunk came from carries the RAG_ONLY policy, else HYBRID.
    """
    if not list(allowed_folder_ids):
        return KnowledgeMode.LLM_ONLY

    if not chunks:
        return KnowledgeMode.LLM_ONLY

    involved = {chunk.folder_id for chunk in chunks}
    if any(folder_policies.get(folder_id) == KnowledgeMode.RAG_ONLY for folder_id in involved):
        return KnowledgeMode.RAG_ONLY

    return KnowledgeMode.HYBRID
