from fastapi import APIRouter

from app.api.endpoints import (
    admin_audit,
    admin_chat,
    admin_knowledge,
    admin_prompts,
    admin_settings,
    auth,
    chat,
    history,
    users,
)

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(users.router, prefix="/users", tags=["Users"])
api_router.include_router(chat.router, prefix="/chat", tags=["Chat"])
api_router.include_router(history.router, prefix="/history", tags=["History"])
api_router.include_router(admin_settings.router, prefix="/admin/settings", tags=["Admin Settings"])
api_router.include_router(admin_prompts.router, prefix="/admin/prompts", tags=["Admin Prompts"])
api_router.include_router(admin_knowledge.router, prefix="/admin/knowledge", tags=["Admin Knowledge"])
api_router.include_router(admin_chat.router, prefix="/admin/chat", tags=["Admin Chat"])
api_router.include_router(admin_audit.router, prefix="/admin/audit", tags=["Admin Audit"])
