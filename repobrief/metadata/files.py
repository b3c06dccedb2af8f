from __future__ import annotations

"""Read access to indexed file records."""

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.engine import Engine

from repobrief.metadata.schema import indexed_files
from repobrief.rag.types import FileRecord


class FileStore:
    """Load indexed files for a project from the shared database."""
    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def list_files(self, project_id: str, limit: int | None = None) -> list[FileRecord]:
        """Return a project's files, most recently indexed first."""
        query = (
            select(
                indexed_files.c.id,
                indexed_files.c.project_id,
                indexed_files.c.file_name,
                indexed_files.c.summary,
                indexed_files.c.source_code,
            )
            .where(indexed_files.c.project_id == project_id)
            .order_by(indexed_files.c.indexed_at.desc(), indexed_files.c.id)
        )
        if limit is not None:
            query = query.limit(limit)
        with self._engine.connect() as conn:
            rows = conn.execute(query).all()
        return [
            FileRecord(
                file_id=row.id,
                project_id=row.project_id,
                file_name=row.file_name,
                summary=row.summary or "",
                source_code=row.source_code,
            )
            for row in rows
        ]

    def upsert_file(self, record: FileRecord, indexed_at: datetime | None = None) -> None:
        """Insert or replace a file record; called by the indexing pipeline."""
        values = {
            "project_id": record.project_id,
            "file_name": record.file_name,
            "summary": record.summary,
            "source_code": record.source_code,
            "indexed_at": indexed_at or datetime.now(timezone.utc),
        }
        with self._engine.begin() as conn:
            existing = conn.execute(
                select(indexed_files.c.id).where(indexed_files.c.id == record.file_id)
            ).first()
            if existing is None:
                conn.execute(indexed_files.insert().values(id=record.file_id, **values))
            else:
                conn.execute(
                    indexed_files.update()
                    .where(indexed_files.c.id == record.file_id)
                    .values(**values)
                )
