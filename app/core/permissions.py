from enum import Enum
from typing import Dict, List
from fastapi import Depends, HTTPException, status

from app.api.deps import get_current_user
from app.db.models.user import UserRole
from app.schemas.user import UserResponse


class Permission(str, Enum):
    # Chat permissions
    CHAT = "chat"
    VIEW_OWN_HISTORY = "view_own_history"

    # Knowledge permissions
    VIEW_KNOWLEDGE = "view_knowledge"
    MANAGE_KNOWLEDGE = "manage_knowledge"
    ASSIGN_FOLDERS = "assign_folders"

    # Prompt permissions
    VIEW_PROMPTS = "view_prompts"
    MANAGE_PROMPTS = "manage_prompts"

    # System settings permissions
    VIEW_SETTINGS = "view_settings"
    MANAGE_SETTINGS = "manage_settings"

    # Admin chat preview
    PREVIEW_CHAT = "preview_chat"

    # Audit trail
    VIEW_AUDIT = "view_audit"


_USER_PERMISSIONS = [
    Permission.CHAT,
    Permission.VIEW_OWN_HISTORY,
]

_ADMIN_PERMISSIONS = _USER_PERMISSIONS + [
    Permission.VIEW_KNOWLEDGE,
    Permission.MANAGE_KNOWLEDGE,
    Permission.ASSIGN_FOLDERS,
    Permission.VIEW_PROMPTS,
    Permission.MANAGE_PROMPTS,
    Permission.VIEW_SETTINGS,
    Permission.PREVIEW_CHAT,
    Permission.VIEW_AUDIT,
]

# Define which permissions are granted to each role
ROLE_PERMISSIONS: Dict[UserRole, List[Permission]] = {
    UserRole.USER: _USER_PERMISSIONS,
    UserRole.ADMIN: _ADMIN_PERMISSIONS,
    UserRole.SUPER_ADMIN: _ADMIN_PERMISSIONS + [Permission.MANAGE_SETTINGS],
}

ROLE_RANK: Dict[UserRole, int] = {
    UserRole.USER: 0,
    UserRole.ADMIN: 1,
    UserRole.SUPER_ADMIN: 2,
}


def get_permissions_for_role(role: UserRole) -> List[Permission]:
    """Get all permissions for a specific role"""
    return ROLE_PERMISSIONS.get(role, [])


def is_admin(role: UserRole) -> bool:
    return ROLE_RANK.get(role, -1) >= ROLE_RANK[UserRole.ADMIN]


def check_permission(required_permission: Permission):
    """
    Dependency function to check if a user has the required permission
    Usage in routes:
        @router.get("/endpoint")
        async def endpoint(current_user=Depends(check_permission(Permission.VIEW_SETTINGS))):
            # This will only execute if the user has the required permission
            pass
    """
    async def permission_dependency(current_user: UserResponse = Depends(get_current_user)):
        if current_user.role not in ROLE_PERMISSIONS:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role {current_user.role} has no defined permissions",
            )

        if required_permission not in get_permissions_for_role(current_user.role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission denied: {required_permission.value} required",
            )

        return current_user

    return permission_dependency
