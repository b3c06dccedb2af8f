from __future__ import annotations

from dataclasses import dataclass

from repobrief.rag.types import FileRecord


NO_FILES_ANSWER = "Sorry, no files were found for this project. Please add some files first."


@dataclass(frozen=True)
class GuardrailResult:
    allowed: bool
    reason: str


def require_files(candidates: list[FileRecord]) -> GuardrailResult:
    if not candidates:
        return GuardrailResult(allowed=False, reason="no_files")
    return GuardrailResult(allowed=True, reason="ok")
