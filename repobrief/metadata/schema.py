from __future__ import annotations

"""SQL tables shared by the file, project, question and audit stores."""

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
)
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

metadata = MetaData()

projects = Table(
    "projects",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

project_members = Table(
    "project_members",
    metadata,
    Column("project_id", String(36), ForeignKey("projects.id"), primary_key=True),
    Column("user_id", String(128), primary_key=True),
)

indexed_files = Table(
    "indexed_files",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("project_id", String(36), nullable=False, index=True),
    Column("file_name", Text, nullable=False),
    Column("summary", Text, nullable=False),
    Column("source_code", Text, nullable=True),
    Column("indexed_at", DateTime(timezone=True), nullable=False),
)

saved_questions = Table(
    "saved_questions",
    metadata,
    Column("seq", Integer, primary_key=True, autoincrement=True),
    Column("id", String(36), nullable=False, unique=True),
    Column("project_id", String(36), ForeignKey("projects.id"), nullable=False, index=True),
    Column("user_id", String(128), nullable=False),
    Column("question", Text, nullable=False),
    Column("answer", Text, nullable=False),
    Column("referenced_files", Text, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

audit_events = Table(
    "audit_events",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("request_id", String(64), nullable=False),
    Column("event_type", String(64), nullable=False),
    Column("project_id", String(36), nullable=True),
    Column("actor", String(128), nullable=False),
    Column("status", String(32), nullable=False),
    Column("detail", Text, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
)


def create_db_engine(connection_uri: str) -> Engine:
    """Create an engine and ensure all tables exist.

    In-memory SQLite shares one connection so every store sees the same data.
    """
    if connection_uri in {"sqlite://", "sqlite:///:memory:"}:
        engine = create_engine(
            connection_uri,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(connection_uri)
    metadata.create_all(engine)
    return engine
