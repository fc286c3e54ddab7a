from typing import List, Optional
import logging

from sqlalchemy.orm import Session

from app.core.exceptions import ConflictError, NotFoundError
from app.core.security import get_password_hash, verify_password
from app.db.models.user import Group, User
from app.repositories.group_repository import GroupRepository
from app.repositories.user_repository import UserRepository
from app.schemas.user import GroupCreate, GroupResponse, UserCreate, UserResponse
from app.services.audit_service import AuditActions, AuditService, audit_service

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, db: Session, audit: AuditService = audit_service):
        self.db = db
        self.audit = audit

    async def authenticate_user(self, username: str, password: str) -> Optional[UserResponse]:
        """Authenticate an active user by username and password"""
        user = await UserRepository.get_by_username(username, self.db)
        if not user or not user.is_active or not verify_password(password, user.hashed_password):
            logger.warning(f"Failed login attempt for {username}")
            self.audit.record(user.id if user else None, AuditActions.LOGIN_FAILED, "USER", None, {"username": username})
            return None

        self.audit.record(user.id, AuditActions.LOGIN, "USER", user.id)
        return UserResponse.model_validate(user)

    async def create_user(self, user_data: UserCreate, actor_id: Optional[str] = None) -> UserResponse:
        """Create a new user"""
        if await UserRepository.get_by_username(user_data.username, self.db):
            raise ConflictError("Username already registered")

        user = await UserRepository.create(
            User(
                username=user_data.username,
                email=user_data.email,
                hashed_password=get_password_hash(user_data.password),
                first_name=user_data.first_name,
                last_name=user_data.last_name,
                role=user_data.role.value,
            ),
            self.db,
        )
        self.audit.record(actor_id, AuditActions.USER_CREATE, "USER", user.id, {"username": user.username, "role": user.role})
        return UserResponse.model_validate(user)

    async def get_user(self, user_id: str) -> UserResponse:
        """Get user by ID"""
        user = await UserRepository.get_by_id(user_id, self.db)
        if not user:
            raise NotFoundError("User not found")
        return UserResponse.model_validate(user)

    async def list_users(self) -> List[UserResponse]:
        return [UserResponse.model_validate(user) for user in await UserRepository.list_all(self.db)]

    async def create_group(self, group_data: GroupCreate, actor_id: str) -> GroupResponse:
        if await GroupRepository.get_by_name(group_data.name, self.db):
            raise ConflictError("Group name already exists")

        group = await GroupRepository.create(Group(name=group_data.name, description=group_data.description), self.db)
        self.audit.record(actor_id, AuditActions.GROUP_CREATE, "GROUP", group.id, {"name": group.name})
        return GroupResponse.model_validate(group)

    async def list_groups(self) -> List[GroupResponse]:
        return [GroupResponse.model_validate(group) for group in await GroupRepository.list_all(self.db)]
