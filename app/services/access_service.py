from typing import Iterable, List, Set
import logging

from sqlalchemy.orm import Session

from app.db.models.knowledge import Folder
from app.repositories.chunk_repository import ChunkRepository
from app.repositories.document_repository import DocumentRepository
from app.repositories.folder_repository import FolderRepository

logger = logging.getLogger(__name__)


class AccessService:
    """
    Resolves which folders a user may read.

    Access is the union of folders assigned to the user, folders assigned to
    any of the user's groups, and the ACTIVE direct children of those.
    Inheritance is single-level unless transitive=True is passed, in which
    case child expansion repeats until no new folders appear. Nothing is
    cached, so assignment changes apply to the next request.
    """

    def __init__(self, db: Session):
        self.db = db

    async def resolve_readable_folders(self, user_id: str, transitive: bool = False) -> Set[str]:
        folder_ids = await FolderRepository.get_direct_folder_ids(user_id, self.db)
        folder_ids |= await FolderRepository.get_group_folder_ids(user_id, self.db)

        frontier = set(folder_ids)
        while frontier:
            children = await FolderRepository.get_active_child_ids(frontier, self.db)
            frontier = children - folder_ids
            folder_ids |= children
            if not transitive:
                break

        logger.debug(f"User {user_id} can read {len(folder_ids)} folders")
        return folder_ids

    async def can_access_folder(self, user_id: str, folder_id: str) -> bool:
        return folder_id in await self.resolve_readable_folders(user_id)

    async def can_access_document(self, user_id: str, document_id: str) -> bool:
        document = await DocumentRepository.get_by_id(document_id, self.db)
        if document is None:
            return False
        return await self.can_access_folder(user_id, document.folder_id)

    async def list_readable_folders(self, user_id: str) -> List[Folder]:
        """Full folder records the user can read, ACTIVE only, ordered by path"""
        folder_ids = await self.resolve_readable_folders(user_id)
        return await FolderRepository.list_active_by_ids(folder_ids, self.db)

    async def filter_accessible_chunks(self, user_id: str, chunk_ids: Iterable[str]) -> List[str]:
        folder_ids = await self.resolve_readable_folders(user_id)
        return await ChunkRepository.filter_accessible(chunk_ids, folder_ids, self.db)
