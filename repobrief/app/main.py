from __future__ import annotations

"""FastAPI application entrypoint for the project Q&A service."""

import hashlib
import logging
import uuid

from fastapi import Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from repobrief.app.dependencies import get_audit_store, get_pipeline, get_question_store
from repobrief.app.metrics import metrics_middleware, metrics_response, record_qa_outcome
from repobrief.app.schemas import (
    QARequest,
    QAResponse,
    ReferencedFile,
    SavedQuestionList,
    SavedQuestionResponse,
    SaveQuestionRequest,
)
from repobrief.app.security import READ_ROLES, WRITE_ROLES, Caller, identify_caller, require_role
from repobrief.app.settings import settings
from repobrief.metadata.audit import AuditEvent, AuditStoreError, hash_actor
from repobrief.metadata.projects import (
    PersistenceError,
    ProjectAccessError,
    ProjectNotFoundError,
)
from repobrief.rag.answerer import FALLBACK_ANSWER

logger = logging.getLogger(__name__)

app = FastAPI(title="RepoBrief Q&A", version="0.1.0")


def _configure_logging() -> None:
    """Configure root logging using environment settings."""
    level_name = settings.log_level.strip().upper()
    level = getattr(logging, level_name, logging.INFO)
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
    logger.setLevel(level)


_configure_logging()


def _record_audit_event(event: AuditEvent) -> None:
    """Persist an audit event if an audit store is configured."""
    try:
        audit_store = get_audit_store()
        if not audit_store:
            return
        audit_store.record_event(event)
    except (AuditStoreError, SQLAlchemyError) as exc:
        logger.warning(
            "audit_record_failed",
            extra={"request_id": event.request_id, "detail": str(exc)},
        )


def _safe_error_message(exc: Exception) -> str:
    """Return a safe error type name for logs and responses."""
    return type(exc).__name__


def _request_id(http_request: Request) -> str:
    return getattr(http_request.state, "request_id", None) or str(uuid.uuid4())


def _validation_message(errors: list[dict]) -> str:
    """Summarize pydantic errors as a single client-facing sentence."""
    missing: list[str] = []
    problems: list[str] = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ()) if part not in {"body", "query"}]
        field = ".".join(loc) or "body"
        if error.get("type") == "missing":
            missing.append(field)
        else:
            problems.append(f"{field}: {error.get('msg', 'invalid value')}")
    if missing and not problems:
        return "Missing required fields: " + " and ".join(missing)
    return "Invalid request: " + "; ".join(
        problems + [f"{field}: field required" for field in missing]
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render malformed input as a client error with a single message."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": _validation_message(list(exc.errors()))},
    )


@app.exception_handler(ProjectNotFoundError)
async def project_not_found_handler(request: Request, exc: ProjectNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": str(exc)})


@app.exception_handler(ProjectAccessError)
async def project_access_handler(request: Request, exc: ProjectAccessError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"error": str(exc)})


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError) -> JSONResponse:
    logger.error(
        "persistence_failed",
        extra={
            "request_id": getattr(request.state, "request_id", None),
            "detail": str(exc),
        },
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Failed to access saved questions"},
    )


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Attach or create a request ID for traceability."""
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.middleware("http")
async def record_metrics(request: Request, call_next):
    """Capture request metrics before returning the response."""
    return await metrics_middleware(request, call_next)


@app.get("/metrics")
async def metrics():
    """Expose Prometheus-style metrics."""
    return metrics_response()


@app.get("/health")
async def health() -> dict[str, str]:
    """Simple health probe for uptime checks."""
    return {"status": "ok"}


@app.post("/qa", response_model=QAResponse)
async def ask_question(
    request: QARequest,
    http_request: Request,
    caller: Caller = Depends(identify_caller),
):
    """Answer a question from the project's highest scoring files."""
    require_role(caller, READ_ROLES)
    request_id = _request_id(http_request)
    actor = hash_actor(caller.api_key)
    logger.info(
        "qa_received",
        extra={
            "request_id": request_id,
            "project_id": request.project_id,
            "question_length": len(request.question),
            "question_hash": hashlib.sha256(request.question.encode("utf-8")).hexdigest(),
            "actor": actor,
        },
    )
    try:
        pipeline = get_pipeline()
        result = await pipeline.answer(request.question, request.project_id, request_id=request_id)
        response = QAResponse(
            answer=result.answer,
            referenced_files=[ReferencedFile.from_cited(cited) for cited in result.referenced_files],
        )
    except Exception as exc:
        logger.exception(
            "qa_internal_error",
            extra={"request_id": request_id, "detail": _safe_error_message(exc)},
        )
        record_qa_outcome("error")
        _record_audit_event(
            AuditEvent(
                event_type="qa",
                request_id=request_id,
                actor=actor,
                status="failed",
                project_id=request.project_id,
                detail={"error": _safe_error_message(exc)},
            )
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "Error generating answer",
                "message": _safe_error_message(exc),
                "answer": FALLBACK_ANSWER,
            },
        )

    if result.refusal_reason == "no_files":
        outcome = "no_files"
    elif result.generated:
        outcome = "answered"
    else:
        outcome = "generation_failed"
    record_qa_outcome(outcome)
    logger.info(
        "qa_completed",
        extra={
            "request_id": request_id,
            "outcome": outcome,
            "answer_length": len(response.answer),
            "referenced_files": len(response.referenced_files),
        },
    )
    _record_audit_event(
        AuditEvent(
            event_type="qa",
            request_id=request_id,
            actor=actor,
            status="completed" if outcome != "generation_failed" else "degraded",
            project_id=request.project_id,
            detail={
                "outcome": outcome,
                "file_ids": [cited.id for cited in result.referenced_files],
            },
        )
    )
    return response


@app.post(
    "/questions",
    response_model=SavedQuestionResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
async def save_question(
    request: SaveQuestionRequest,
    http_request: Request,
    caller: Caller = Depends(identify_caller),
) -> SavedQuestionResponse:
    """Persist an answered question with the citations shown for it."""
    require_role(caller, WRITE_ROLES)
    request_id = _request_id(http_request)
    store = get_question_store()
    record = store.save(
        project_id=request.project_id,
        question=request.question,
        answer=request.answer,
        referenced_files=[item.to_cited() for item in request.referenced_files],
        user_id=caller.user_id,
        is_admin=caller.is_admin,
    )
    logger.info(
        "question_saved",
        extra={
            "request_id": request_id,
            "project_id": record.project_id,
            "question_id": record.id,
            "referenced_files": len(record.referenced_files),
        },
    )
    _record_audit_event(
        AuditEvent(
            event_type="save_question",
            request_id=request_id,
            actor=hash_actor(caller.api_key),
            status="completed",
            project_id=record.project_id,
            detail={"question_id": record.id},
        )
    )
    return SavedQuestionResponse.from_record(record)


@app.get(
    "/questions",
    response_model=SavedQuestionList,
    response_model_exclude_none=True,
)
async def list_questions(
    http_request: Request,
    project_id: str = Query(..., alias="projectId", min_length=1),
    caller: Caller = Depends(identify_caller),
) -> SavedQuestionList:
    """Return a project's saved questions, newest first."""
    require_role(caller, READ_ROLES)
    request_id = _request_id(http_request)
    records = get_question_store().list(project_id, caller.user_id, is_admin=caller.is_admin)
    _record_audit_event(
        AuditEvent(
            event_type="list_questions",
            request_id=request_id,
            actor=hash_actor(caller.api_key),
            status="completed",
            project_id=project_id,
            detail={"count": len(records)},
        )
    )
    return SavedQuestionList(
        saved_questions=[SavedQuestionResponse.from_record(record) for record in records]
    )
