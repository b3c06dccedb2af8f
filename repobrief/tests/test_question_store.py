from __future__ import annotations

import sqlite3
from datetime import datetime, timezone

import pytest

from repobrief.metadata.audit import AuditEvent, AuditStore, hash_actor
from repobrief.metadata.files import FileStore
from repobrief.metadata.projects import ProjectAccessError, ProjectNotFoundError, ProjectStore
from repobrief.metadata import questions as questions_module
from repobrief.metadata.questions import QuestionStore
from repobrief.metadata.schema import create_db_engine
from repobrief.rag.types import CitedFile, FileRecord


def build_stores(uri: str = "sqlite://") -> tuple[ProjectStore, QuestionStore]:
    engine = create_db_engine(uri)
    projects = ProjectStore(engine)
    return projects, QuestionStore(engine, projects=projects)


def test_saved_question_round_trips_citations() -> None:
    projects, questions = build_stores()
    projects.create_project("demo", members=["alice"], project_id="p1")
    cited = [
        CitedFile(
            id="f1",
            file_name="auth/login.tsx",
            summary="login form",
            source_code="const login = 1;",
            matching_lines=[1],
            matching_line_contents=["const login = 1;"],
        ),
        CitedFile(id="f2", file_name="README.md", summary="", source_code=""),
    ]

    saved = questions.save("p1", "Where is login?", "In auth/login.tsx.", cited, user_id="alice")
    listed = questions.list("p1", "alice")

    assert len(listed) == 1
    record = listed[0]
    assert record.id == saved.id
    assert record.question == "Where is login?"
    assert record.answer == "In auth/login.tsx."
    assert record.referenced_files == cited
    assert record.referenced_files[1].matching_lines is None
    assert record.created_at is not None and record.created_at.tzinfo is not None


def test_list_returns_newest_first(monkeypatch) -> None:
    projects, questions = build_stores()
    projects.create_project("demo", members=["alice"], project_id="p1")
    stamps = iter(
        [
            datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc),
            datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc),
        ]
    )

    class FixedClock(datetime):
        @classmethod
        def now(cls, tz=None):
            return next(stamps)

    monkeypatch.setattr(questions_module, "datetime", FixedClock)
    first = questions.save("p1", "first?", "one", [], user_id="alice")
    second = questions.save("p1", "second?", "two", [], user_id="alice")

    listed = questions.list("p1", "alice")

    assert [record.id for record in listed] == [second.id, first.id]
    assert listed[0].created_at == datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)


def test_same_timestamp_lists_latest_save_first(monkeypatch) -> None:
    projects, questions = build_stores()
    projects.create_project("demo", members=["alice"], project_id="p1")
    stamp = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)

    class FrozenClock(datetime):
        @classmethod
        def now(cls, tz=None):
            return stamp

    monkeypatch.setattr(questions_module, "datetime", FrozenClock)
    saved = [
        questions.save("p1", f"question {idx}?", "answer", [], user_id="alice")
        for idx in range(5)
    ]

    listed = questions.list("p1", "alice")

    assert [record.id for record in listed] == [record.id for record in reversed(saved)]


def test_list_is_scoped_to_project() -> None:
    projects, questions = build_stores()
    projects.create_project("one", members=["alice"], project_id="p1")
    projects.create_project("two", members=["alice"], project_id="p2")
    questions.save("p1", "q?", "a", [], user_id="alice")

    assert questions.list("p2", "alice") == []


def test_unknown_project_is_rejected() -> None:
    _, questions = build_stores()

    with pytest.raises(ProjectNotFoundError):
        questions.save("missing", "q?", "a", [], user_id="alice")
    with pytest.raises(ProjectNotFoundError):
        questions.list("missing", "alice")


def test_non_member_is_denied_but_admin_is_not() -> None:
    projects, questions = build_stores()
    projects.create_project("demo", members=["alice"], project_id="p1")

    with pytest.raises(ProjectAccessError):
        questions.save("p1", "q?", "a", [], user_id="mallory")
    with pytest.raises(ProjectAccessError):
        questions.list("p1", "mallory")

    questions.save("p1", "q?", "a", [], user_id="ops", is_admin=True)
    assert len(questions.list("p1", "ops", is_admin=True)) == 1


def test_blank_fields_are_rejected_before_storage() -> None:
    projects, questions = build_stores()
    projects.create_project("demo", members=["alice"], project_id="p1")

    with pytest.raises(ValueError):
        questions.save("p1", "   ", "a", [], user_id="alice")
    with pytest.raises(ValueError):
        questions.save("p1", "q?", "", [], user_id="alice")
    assert questions.list("p1", "alice") == []


def test_add_member_grants_access() -> None:
    projects, questions = build_stores()
    projects.create_project("demo", project_id="p1")

    assert not projects.is_member("p1", "bob")
    projects.add_member("p1", "bob")
    projects.add_member("p1", "bob")

    assert projects.is_member("p1", "bob")
    assert questions.list("p1", "bob") == []


def test_file_store_upsert_replaces_record() -> None:
    store = FileStore(create_db_engine("sqlite://"))
    store.upsert_file(FileRecord("f1", "p1", "a.py", "old summary", None))
    store.upsert_file(FileRecord("f1", "p1", "a.py", "new summary", "print(1)"))

    files = store.list_files("p1")

    assert files == [FileRecord("f1", "p1", "a.py", "new summary", "print(1)")]


def test_records_persist_to_sqlite_file(tmp_path) -> None:
    db_path = tmp_path / "repobrief.db"
    engine_uri = f"sqlite:///{db_path}"
    projects, questions = build_stores(engine_uri)
    projects.create_project("demo", members=["alice"], project_id="p1")
    saved = questions.save("p1", "Where?", "Here.", [], user_id="alice")
    AuditStore(create_db_engine(engine_uri)).record_event(
        AuditEvent(
            event_type="save_question",
            request_id="req-1",
            actor=hash_actor("secret"),
            status="completed",
            project_id="p1",
        )
    )

    conn = sqlite3.connect(db_path)
    try:
        question_row = conn.execute(
            "SELECT project_id, user_id, question FROM saved_questions WHERE id = ?",
            (saved.id,),
        ).fetchone()
        audit_row = conn.execute(
            "SELECT event_type, status, actor FROM audit_events WHERE request_id = ?",
            ("req-1",),
        ).fetchone()
    finally:
        conn.close()
    assert question_row == ("p1", "alice", "Where?")
    assert audit_row == ("save_question", "completed", hash_actor("secret"))


def test_hash_actor_masks_keys() -> None:
    assert hash_actor(None) == "anonymous"
    assert hash_actor("secret") != "secret"
    assert len(hash_actor("secret")) == 12
