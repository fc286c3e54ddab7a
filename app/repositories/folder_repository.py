from typing import Dict, Iterable, List, Optional, Set
import logging
from sqlalchemy.orm import Session

from app.db.models.knowledge import Folder, FolderStatus, KnowledgeMode
from app.db.models.prompt import Prompt
from app.db.models.user import user_folders, user_groups, group_folders

logger = logging.getLogger(__name__)

class FolderRepository:
    """Repository for folder and folder-assignment queries"""

    @staticmethod
    async def create(folder: Folder, db: Session) -> Folder:
        """Create a new folder"""
        try:
            db.add(folder)
            db.commit()
            db.refresh(folder)
            return folder
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to create folder: {e}")
            raise

    @staticmethod
    async def get_by_id(folder_id: str, db: Session) -> Optional[Folder]:
        return db.query(Folder).filter(Folder.id == folder_id).first()

    @staticmethod
    async def get_by_path(path: str, db: Session) -> Optional[Folder]:
        return db.query(Folder).filter(Folder.path == path).first()

    @staticmethod
    async def list_all(db: Session) -> List[Folder]:
        return db.query(Folder).order_by(Folder.path).all()

    @staticmethod
    async def list_active_by_ids(folder_ids: Iterable[str], db: Session) -> List[Folder]:
        """List ACTIVE folders among the given IDs, ordered by path"""
        ids = list(folder_ids)
        if not ids:
            return []
        return (
            db.query(Folder)
            .filter(Folder.id.in_(ids), Folder.status == FolderStatus.ACTIVE.value)
            .order_by(Folder.path)
            .all()
        )

    @staticmethod
    async def update(folder: Folder, update_data: Dict, db: Session) -> Folder:
        try:
            for key, value in update_data.items():
                setattr(folder, key, value)
            db.commit()
            db.refresh(folder)
            return folder
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to update folder {folder.id}: {e}")
            raise

    @staticmethod
    async def get_direct_folder_ids(user_id: str, db: Session) -> Set[str]:
        """Folders assigned directly to a user"""
        rows = db.query(user_folders.c.folder_id).filter(user_folders.c.user_id == user_id).all()
        return {row[0] for row in rows}

    @staticmethod
    async def get_group_folder_ids(user_id: str, db: Session) -> Set[str]:
        """Folders assigned to any group the user belongs to"""
        group_ids = [
            row[0] for row in db.query(user_groups.c.group_id).filter(user_groups.c.user_id == user_id).all()
        ]
        if not group_ids:
            return set()
        rows = db.query(group_folders.c.folder_id).filter(group_folders.c.group_id.in_(group_ids)).all()
        return {row[0] for row in rows}

    @staticmethod
    async def get_active_child_ids(parent_ids: Iterable[str], db: Session) -> Set[str]:
        """IDs of ACTIVE folders whose parent is one of parent_ids"""
        ids = list(parent_ids)
        if not ids:
            return set()
        rows = (
            db.query(Folder.id)
            .filter(Folder.parent_id.in_(ids), Folder.status == FolderStatus.ACTIVE.value)
            .all()
        )
        return {row[0] for row in rows}

    @staticmethod
    async def get_knowledge_modes(folder_ids: Iterable[str], db: Session) -> Dict[str, KnowledgeMode]:
        """Map folder ID to its knowledge mode policy"""
        ids = list(set(folder_ids))
        if not ids:
            return {}
        rows = db.query(Folder.id, Folder.knowledge_mode).filter(Folder.id.in_(ids)).all()
        return {folder_id: KnowledgeMode(mode) for folder_id, mode in rows}

    @staticmethod
    async def assign_to_user(user_id: str, folder_id: str, db: Session) -> bool:
        """Assign a folder to a user. Returns False if already assigned."""
        try:
            exists = db.query(user_folders).filter(
                user_folders.c.user_id == user_id, user_folders.c.folder_id == folder_id
            ).first()
            if exists:
                return False
            db.execute(user_folders.insert().values(user_id=user_id, folder_id=folder_id))
            db.commit()
            return True
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to assign folder {folder_id} to user {user_id}: {e}")
            raise

    @staticmethod
    async def assign_to_group(group_id: str, folder_id: str, db: Session) -> bool:
        """Assign a folder to a group. Returns False if already assigned."""
        try:
            exists = db.query(group_folders).filter(
                group_folders.c.group_id == group_id, group_folders.c.folder_id == folder_id
            ).first()
            if exists:
                return False
            db.execute(group_folders.insert().values(group_id=group_id, folder_id=folder_id))
            db.commit()
            return True
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to assign folder {folder_id} to group {group_id}: {e}")
            raise

    @staticmethod
    async def get_subtree_ids(folder_id: str, db: Session) -> List[str]:
        """The folder and all its descendants, parents before children"""
        subtree = [folder_id]
        frontier = [folder_id]
        while frontier:
            rows = db.query(Folder.id).filter(Folder.parent_id.in_(frontier)).all()
            frontier = [row[0] for row in rows if row[0] not in subtree]
            subtree.extend(frontier)
        return subtree

    @staticmethod
    async def delete_many(folder_ids: Iterable[str], db: Session) -> int:
        """
        Delete folders together with their user and group assignments.

        Prompts scoped to a deleted folder lose the scope. Documents must be
        removed beforehand.
        """
        ids = list(folder_ids)
        if not ids:
            return 0
        try:
            db.execute(user_folders.delete().where(user_folders.c.folder_id.in_(ids)))
            db.execute(group_folders.delete().where(group_folders.c.folder_id.in_(ids)))
            db.query(Prompt).filter(Prompt.folder_id.in_(ids)).update({Prompt.folder_id: None}, synchronize_session=False)
            # Detach parents first so the self-reference never blocks a row
            db.query(Folder).filter(Folder.id.in_(ids)).update({Folder.parent_id: None}, synchronize_session=False)
            deleted = db.query(Folder).filter(Folder.id.in_(ids)).delete(synchronize_session=False)
            db.commit()
            db.expire_all()
            return deleted
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to delete folders {ids}: {e}")
            raise
