from app.db.models.knowledge import Folder, FolderStatus, Document, DocumentStatus, Chunk, KnowledgeMode
from app.db.models.user import User, UserRole, Group, user_folders, user_groups, group_folders
from app.db.models.chat import Chat, ChatMessage, MessageRole, Feedback
from app.db.models.prompt import Prompt, PromptType
from app.db.models.system_settings import SystemSettings, SETTINGS_SINGLETON_ID
from app.db.models.audit_log import AuditLog

__all__ = [
    "Folder",
    "FolderStatus",
    "Document",
    "DocumentStatus",
    "Chunk",
    "KnowledgeMode",
    "User",
    "UserRole",
    "Group",
    "user_folders",
    "user_groups",
    "group_folders",
    "Chat",
    "ChatMessage",
    "MessageRole",
    "Feedback",
    "Prompt",
    "PromptType",
    "SystemSettings",
    "SETTINGS_SINGLETON_ID",
    "AuditLog",
]
