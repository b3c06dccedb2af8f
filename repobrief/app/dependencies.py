from __future__ import annotations

import logging
from functools import lru_cache

from sqlalchemy.engine import Engine

from repobrief.app.settings import settings
from repobrief.metadata.audit import AuditStore
from repobrief.metadata.files import FileStore
from repobrief.metadata.projects import ProjectStore
from repobrief.metadata.questions import QuestionStore
from repobrief.metadata.schema import create_db_engine
from repobrief.rag.answerer import AnswerBackend, AnswerGenerator, ExtractiveAnswerer
from repobrief.rag.llm import LLMError, UnavailableBackend, build_llm_backend
from repobrief.rag.pipeline import QAPipeline

logger = logging.getLogger(__name__)


@lru_cache
def get_engine() -> Engine:
    return create_db_engine(settings.db_uri)


@lru_cache
def get_file_store() -> FileStore:
    return FileStore(get_engine())


@lru_cache
def get_project_store() -> ProjectStore:
    return ProjectStore(get_engine())


@lru_cache
def get_question_store() -> QuestionStore:
    return QuestionStore(get_engine(), projects=get_project_store())


@lru_cache
def get_audit_store() -> AuditStore | None:
    if not settings.audit_enabled:
        return None
    return AuditStore(get_engine())


@lru_cache
def get_pipeline() -> QAPipeline:
    return QAPipeline(
        file_store=get_file_store(),
        generator=AnswerGenerator(build_backend()),
        top_k=settings.top_k,
        candidate_limit=settings.candidate_limit,
    )


def build_backend() -> AnswerBackend:
    if settings.answerer_mode != "llm":
        return ExtractiveAnswerer()
    try:
        return build_llm_backend(
            settings.llm_provider,
            api_key_openai=settings.openai_api_key,
            api_key_gemini=settings.gemini_api_key,
            openai_base_url=settings.openai_base_url,
            openai_model=settings.openai_chat_model,
            gemini_model=settings.gemini_chat_model,
            ollama_base_url=settings.ollama_base_url,
            ollama_model=settings.ollama_model,
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
            timeout=settings.llm_timeout,
        )
    except LLMError as exc:
        logger.error(
            "llm_backend_unavailable",
            extra={"provider": settings.llm_provider, "detail": str(exc)},
        )
        return UnavailableBackend(provider=settings.llm_provider, reason=str(exc))


def reset_caches() -> None:
    """Drop cached stores and pipeline; the next call rebuilds them."""
    get_pipeline.cache_clear()
    get_audit_store.cache_clear()
    get_question_store.cache_clear()
    get_project_store.cache_clear()
    get_file_store.cache_clear()
    engine = get_engine() if get_engine.cache_info().currsize else None
    get_engine.cache_clear()
    if engine is not None:
        engine.dispose()
