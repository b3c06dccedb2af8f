from __future__ import annotations

"""Project ownership lookups used to authorize record-store access."""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from repobrief.metadata.schema import project_members, projects


class PersistenceError(RuntimeError):
    """Raised when record-store persistence or lookup fails."""
    pass


class ProjectNotFoundError(PersistenceError):
    """Raised when a project ID does not exist."""
    pass


class ProjectAccessError(PersistenceError):
    """Raised when the caller is not a member of the project."""
    pass


@dataclass(frozen=True)
class Project:
    id: str
    name: str
    created_at: datetime


class ProjectStore:
    """Read and register projects and their members."""
    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def create_project(
        self,
        name: str,
        members: Iterable[str] = (),
        project_id: str | None = None,
    ) -> Project:
        """Register a project and its members; used by the ingestion side."""
        project = Project(
            id=project_id or str(uuid.uuid4()),
            name=name,
            created_at=datetime.now(timezone.utc),
        )
        try:
            with self._engine.begin() as conn:
                conn.execute(
                    projects.insert().values(
                        id=project.id, name=project.name, created_at=project.created_at
                    )
                )
                for user_id in dict.fromkeys(members):
                    conn.execute(
                        project_members.insert().values(project_id=project.id, user_id=user_id)
                    )
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to create project: {type(exc).__name__}") from exc
        return project

    def add_member(self, project_id: str, user_id: str) -> None:
        self.get_project(project_id)
        if self.is_member(project_id, user_id):
            return
        try:
            with self._engine.begin() as conn:
                conn.execute(
                    project_members.insert().values(project_id=project_id, user_id=user_id)
                )
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to add member: {type(exc).__name__}") from exc

    def get_project(self, project_id: str) -> Project:
        try:
            with self._engine.connect() as conn:
                row = conn.execute(
                    select(projects.c.id, projects.c.name, projects.c.created_at).where(
                        projects.c.id == project_id
                    )
                ).first()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to load project: {type(exc).__name__}") from exc
        if row is None:
            raise ProjectNotFoundError(f"Project not found: {project_id}")
        return Project(id=row.id, name=row.name, created_at=row.created_at)

    def is_member(self, project_id: str, user_id: str) -> bool:
        try:
            with self._engine.connect() as conn:
                row = conn.execute(
                    select(project_members.c.user_id).where(
                        project_members.c.project_id == project_id,
                        project_members.c.user_id == user_id,
                    )
                ).first()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to check membership: {type(exc).__name__}") from exc
        return row is not None

    def require_access(self, project_id: str, user_id: str, is_admin: bool = False) -> Project:
        """Return the project if it exists and the user may access it."""
        project = self.get_project(project_id)
        if is_admin:
            return project
        if not self.is_member(project_id, user_id):
            raise ProjectAccessError(f"User is not a member of project {project_id}")
        return project
