from typing import Any, Dict, List, Literal
from pydantic import BaseModel, ConfigDict, Field

from app.db.models.knowledge import KnowledgeMode

SETTINGS_SECTIONS = ("general", "chat", "llm", "rag", "ingest", "logging", "security", "analytics")


class _Section(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class GeneralSettings(_Section):
    system_name: str = "KnowledgeChat"
    tenant_mode: bool = False
    default_language: str = "de"
    safe_mode: bool = False


class ChatSettings(_Section):
    structured_answers: bool = True
    summary_with_details: bool = True
    highlight_important: bool = True
    context_continue: bool = True
    max_context_turns: int = Field(default=10, ge=0, le=100)
    allow_chat_reset: bool = True
    force_rephrase: bool = True
    no_hallucination: bool = True
    no_knowledge_message: str = (
        "Zu dieser Frage habe ich leider keine Informationen in den mir zugänglichen Dokumenten gefunden."
    )
    suggest_follow_up: bool = False
    follow_up_count: int = Field(default=3, ge=0, le=10)


class LLMSettings(_Section):
    provider: str = "openai"
    model: str = "gpt-4-turbo-preview"
    max_input_tokens: int = 8000
    max_output_tokens: int = Field(default=2000, gt=0)
    temperature: float = Field(default=0.3, ge=0, le=2)
    top_p: float = Field(default=1.0, ge=0, le=1)
    request_timeout: int = Field(default=60000, gt=0, description="Request timeout in milliseconds")
    retry_attempts: int = Field(default=2, ge=0)
    content_filter: bool = True


class RAGSettings(_Section):
    default_mode: KnowledgeMode = KnowledgeMode.HYBRID
    top_k: int = Field(default=10, gt=0, le=100)
    similarity_threshold: float = Field(default=0.25, ge=0, le=1)
    max_chunks_per_document: int = Field(default=3, gt=0)
    de_duplicate: bool = True
    re_ranking: bool = False
    re_rank_top_n: int = 20
    context_compression: bool = False
    citation_mode: Literal["document", "chunk"] = "document"
    fallback_to_llm: bool = True
    force_rephrase_on_weak_retrieval: bool = True


class IngestSettings(_Section):
    auto_ingest: bool = True
    auto_reindex: bool = True
    reindex_strategy: Literal["incremental", "full"] = "full"
    chunk_target_size: int = Field(default=500, gt=0)
    chunk_overlap: int = Field(default=50, ge=0)
    enabled_parsers: List[str] = Field(default_factory=lambda: ["pdf", "docx", "pptx", "txt", "md"])
    image_processing: bool = False


class LoggingSettings(_Section):
    level: Literal["ERROR", "WARN", "INFO", "DEBUG"] = "INFO"
    log_chat_requests: bool = True
    log_chat_responses: bool = True
    log_sources: bool = True
    log_admin_actions: bool = True
    log_ingest_events: bool = True
    log_retrieval_events: bool = False
    pii_masking: bool = False
    retention_days: int = 90
    allow_export: bool = True


class SecuritySettings(_Section):
    session_lifetime_minutes: int = 480
    idle_timeout_minutes: int = 60
    max_failed_logins: int = 5
    lockout_duration_minutes: int = 30
    password_min_length: int = 8
    password_require_uppercase: bool = True
    password_require_number: bool = True
    password_require_special: bool = False


class AnalyticsSettings(_Section):
    feedback_enabled: bool = True
    feedback_types: List[str] = Field(default_factory=lambda: ["positive", "negative", "incorrect"])
    dashboard_metrics: List[str] = Field(default_factory=lambda: ["users", "chats", "questions", "feedback"])


class SystemSettingsSchema(_Section):
    """Snapshot of the system settings record, merged over the defaults"""
    general: GeneralSettings = Field(default_factory=GeneralSettings)
    chat: ChatSettings = Field(default_factory=ChatSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    rag: RAGSettings = Field(default_factory=RAGSettings)
    ingest: IngestSettings = Field(default_factory=IngestSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    analytics: AnalyticsSettings = Field(default_factory=AnalyticsSettings)


class SettingsResponse(BaseModel):
    settings: SystemSettingsSchema


class SettingsUpdate(BaseModel):
    """Partial update, keyed by section name"""
    settings: Dict[str, Dict[str, Any]] = Field(..., description="Sections to merge into the current settings")
