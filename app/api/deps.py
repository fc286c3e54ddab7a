from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
import logging

from sqlalchemy.orm import Session
from app.db.database import get_db
from app.db.models.user import User
from app.core.config import settings
from app.schemas.user import UserResponse
from app.services.access_service import AccessService
from app.services.audit_service import AuditService, audit_service
from app.services.chat_service import ChatService
from app.services.llm.llm_service import LLMService
from app.services.rag.retrieval_service import RetrievalService
from app.services.rag.vector_store import VectorStore, get_vector_store

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/token")

async def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> UserResponse:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token")

    user = db.query(User).filter(User.id == user_id).first()
    if not user or not user.is_active:
        logger.warning(f"Token for unknown or inactive user {user_id}")
        raise HTTPException(status_code=401, detail="User not found")

    return UserResponse.model_validate(user)

def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a new JWT access token for a user
    Args:
        user_id: The ID of the user
        expires_delta: Optional expiration time delta. If not provided, defaults to settings.ACCESS_TOKEN_EXPIRE_MINUTES
    Returns:
        str: JWT access token
    """
    to_encode = {"sub": user_id}

    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    expire = datetime.now(timezone.utc) + expires_delta

    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


# ----- Service factories -----

_llm_service = LLMService()


def get_audit_service() -> AuditService:
    return audit_service


def get_llm_service() -> LLMService:
    return _llm_service


def get_vector_store_provider() -> Callable[[], VectorStore]:
    return get_vector_store


def get_retrieval_service(
    db: Session = Depends(get_db),
    llm_service: LLMService = Depends(get_llm_service),
    vector_store_provider: Callable[[], VectorStore] = Depends(get_vector_store_provider)
) -> RetrievalService:
    return RetrievalService(db, llm_service, vector_store_provider)


def get_chat_service(
    db: Session = Depends(get_db),
    llm_service: LLMService = Depends(get_llm_service),
    retrieval_service: RetrievalService = Depends(get_retrieval_service),
    audit: AuditService = Depends(get_audit_service)
) -> ChatService:
    return ChatService(db, llm_service, retrieval_service, audit)


def get_access_service(db: Session = Depends(get_db)) -> AccessService:
    return AccessService(db)
