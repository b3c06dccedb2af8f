from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from repobrief.rag.types import CitedFile, SavedQuestion


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class QARequest(CamelModel):
    question: str
    project_id: str

    @field_validator("question", "project_id")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value


class ReferencedFile(CamelModel):
    id: str
    file_name: str
    summary: str = ""
    source_code: str = ""
    matching_lines: list[int] | None = None
    matching_line_contents: list[str] | None = None

    @model_validator(mode="after")
    def _evidence_aligned(self) -> ReferencedFile:
        lines = self.matching_lines
        contents = self.matching_line_contents
        if (lines is None) != (contents is None):
            raise ValueError("matchingLines and matchingLineContents must be provided together")
        if lines is not None and contents is not None:
            if len(lines) != len(contents):
                raise ValueError("matchingLines and matchingLineContents must have equal length")
            if any(line < 1 for line in lines) or any(
                later <= earlier for earlier, later in zip(lines, lines[1:])
            ):
                raise ValueError("matchingLines must be strictly ascending 1-based line numbers")
            source_lines = self.source_code.split("\n")
            for line, content in zip(lines, contents):
                if line > len(source_lines):
                    raise ValueError(f"matchingLines entry {line} is past the end of sourceCode")
                if source_lines[line - 1] != content:
                    raise ValueError(f"matchingLineContents does not match sourceCode line {line}")
        return self

    @classmethod
    def from_cited(cls, cited: CitedFile) -> ReferencedFile:
        return cls(
            id=cited.id,
            file_name=cited.file_name,
            summary=cited.summary,
            source_code=cited.source_code,
            matching_lines=cited.matching_lines,
            matching_line_contents=cited.matching_line_contents,
        )

    def to_cited(self) -> CitedFile:
        return CitedFile(
            id=self.id,
            file_name=self.file_name,
            summary=self.summary,
            source_code=self.source_code,
            matching_lines=self.matching_lines,
            matching_line_contents=self.matching_line_contents,
        )


class QAResponse(CamelModel):
    answer: str
    referenced_files: list[ReferencedFile]


class SaveQuestionRequest(CamelModel):
    project_id: str
    question: str
    answer: str
    referenced_files: list[ReferencedFile]

    @field_validator("project_id", "question", "answer")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value


class SavedQuestionResponse(CamelModel):
    id: str
    project_id: str
    question: str
    answer: str
    referenced_files: list[ReferencedFile]
    created_at: datetime | None = None

    @classmethod
    def from_record(cls, record: SavedQuestion) -> SavedQuestionResponse:
        return cls(
            id=record.id,
            project_id=record.project_id,
            question=record.question,
            answer=record.answer,
            referenced_files=[ReferencedFile.from_cited(item) for item in record.referenced_files],
            created_at=record.created_at,
        )


class SavedQuestionList(CamelModel):
    saved_questions: list[SavedQuestionResponse] = Field(default_factory=list)
