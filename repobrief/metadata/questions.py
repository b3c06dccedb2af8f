from __future__ import annotations

"""Persistence for saved question/answer/citation records."""

import json
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from repobrief.metadata.projects import PersistenceError, ProjectStore
from repobrief.metadata.schema import saved_questions
from repobrief.rag.types import CitedFile, SavedQuestion


class QuestionStore:
    """Store saved questions in a SQL database, scoped by project."""
    def __init__(self, engine: Engine, projects: ProjectStore | None = None) -> None:
        """Initialize the store; project checks default to the same engine."""
        self._engine = engine
        self._projects = projects or ProjectStore(engine)

    def save(
        self,
        project_id: str,
        question: str,
        answer: str,
        referenced_files: list[CitedFile],
        user_id: str,
        is_admin: bool = False,
    ) -> SavedQuestion:
        """Persist an answered question for a project the user can access."""
        if not question.strip():
            raise ValueError("question must not be empty")
        if not answer.strip():
            raise ValueError("answer must not be empty")
        self._projects.require_access(project_id, user_id, is_admin=is_admin)
        record = SavedQuestion(
            id=str(uuid.uuid4()),
            project_id=project_id,
            question=question,
            answer=answer,
            referenced_files=list(referenced_files),
            created_at=datetime.now(timezone.utc),
        )
        try:
            with self._engine.begin() as conn:
                conn.execute(saved_questions.insert().values(**self._serialize(record, user_id)))
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to save question: {type(exc).__name__}") from exc
        return record

    def list(self, project_id: str, user_id: str, is_admin: bool = False) -> list[SavedQuestion]:
        """Return saved questions for a project, newest first."""
        self._projects.require_access(project_id, user_id, is_admin=is_admin)
        query = (
            select(saved_questions)
            .where(saved_questions.c.project_id == project_id)
            .order_by(saved_questions.c.created_at.desc(), saved_questions.c.seq.desc())
        )
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(query).all()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to list questions: {type(exc).__name__}") from exc
        return [self._deserialize(row._mapping) for row in rows]

    def _serialize(self, record: SavedQuestion, user_id: str) -> dict[str, Any]:
        """Prepare a saved-question row for insertion."""
        return {
            "id": record.id,
            "project_id": record.project_id,
            "user_id": user_id,
            "question": record.question,
            "answer": record.answer,
            "referenced_files": json.dumps(
                [cited.to_dict() for cited in record.referenced_files],
                ensure_ascii=False,
            ),
            "created_at": record.created_at,
        }

    def _deserialize(self, row: Any) -> SavedQuestion:
        try:
            files = json.loads(row["referenced_files"] or "[]")
        except json.JSONDecodeError as exc:
            raise PersistenceError(f"Corrupt citations for question {row['id']}") from exc
        created_at = row["created_at"]
        if created_at is not None and created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return SavedQuestion(
            id=row["id"],
            project_id=row["project_id"],
            question=row["question"],
            answer=row["answer"],
            referenced_files=[CitedFile.from_dict(item) for item in files if isinstance(item, dict)],
            created_at=created_at,
        )
