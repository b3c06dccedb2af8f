from __future__ import annotations

"""Core data types for indexed files and citations."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class FileRecord:
    """Indexed source file belonging to a single project."""
    file_id: str
    project_id: str
    file_name: str
    summary: str = ""
    source_code: str | None = None

    @property
    def text(self) -> str:
        """Source code with a missing body treated as empty."""
        return self.source_code or ""


@dataclass(frozen=True)
class ScoredFile:
    """File record with its relevance score for one question."""
    file: FileRecord
    score: float


@dataclass(frozen=True)
class CitedFile:
    """File returned alongside an answer, optionally carrying line evidence."""
    id: str
    file_name: str
    summary: str
    source_code: str
    matching_lines: list[int] | None = None
    matching_line_contents: list[str] | None = None

    def to_dict(self) -> dict[str, object]:
        """Serialize to the camelCase shape used on the wire and in storage."""
        payload: dict[str, object] = {
            "id": self.id,
            "fileName": self.file_name,
            "summary": self.summary,
            "sourceCode": self.source_code,
        }
        if self.matching_lines is not None:
            payload["matchingLines"] = list(self.matching_lines)
            payload["matchingLineContents"] = list(self.matching_line_contents or [])
        return payload

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> CitedFile:
        lines = data.get("matchingLines")
        contents = data.get("matchingLineContents")
        return cls(
            id=str(data.get("id", "")),
            file_name=str(data.get("fileName", "")),
            summary=str(data.get("summary") or ""),
            source_code=str(data.get("sourceCode") or ""),
            matching_lines=[int(value) for value in lines] if isinstance(lines, list) else None,
            matching_line_contents=(
                [str(value) for value in contents] if isinstance(contents, list) else None
            ),
        )


@dataclass(frozen=True)
class SavedQuestion:
    """Persisted question, answer and the citations shown with it."""
    id: str
    project_id: str
    question: str
    answer: str
    referenced_files: list[CitedFile] = field(default_factory=list)
    created_at: datetime | None = None
