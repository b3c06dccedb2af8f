from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

from repobrief.rag.answerer import AnswerGenerator
from repobrief.rag.context import assemble_context
from repobrief.rag.guardrails import NO_FILES_ANSWER, require_files
from repobrief.rag.highlights import build_needles, cite_file
from repobrief.rag.scoring import DEFAULT_WEIGHTS, ScoreWeights, score_files, select_top_k
from repobrief.rag.types import CitedFile, FileRecord, ScoredFile

logger = logging.getLogger(__name__)


class FileSource(Protocol):
    def list_files(self, project_id: str, limit: int | None = None) -> list[FileRecord]:
        ...


@dataclass
class QAResult:
    answer: str
    referenced_files: list[CitedFile]
    refusal_reason: str | None = None
    generated: bool = False
    scores: list[ScoredFile] = field(default_factory=list)


@dataclass
class QAPipeline:
    file_store: FileSource
    generator: AnswerGenerator
    top_k: int = 5
    candidate_limit: int = 10
    weights: ScoreWeights = DEFAULT_WEIGHTS

    def load_candidates(self, project_id: str, request_id: str | None = None) -> list[FileRecord]:
        limit = self.candidate_limit + 1 if self.candidate_limit else None
        candidates = self.file_store.list_files(project_id, limit=limit)
        truncated = bool(self.candidate_limit) and len(candidates) > self.candidate_limit
        if truncated:
            candidates = candidates[: self.candidate_limit]
        logger.info(
            "qa_candidates_loaded",
            extra={
                "request_id": request_id,
                "project_id": project_id,
                "candidates": len(candidates),
            },
        )
        if truncated:
            logger.warning(
                "candidate_cap_reached",
                extra={
                    "request_id": request_id,
                    "project_id": project_id,
                    "candidate_limit": self.candidate_limit,
                },
            )
        return candidates

    def rank(self, question: str, candidates: list[FileRecord]) -> list[ScoredFile]:
        scored = score_files(question, candidates, self.weights)
        return select_top_k(scored, self.top_k)

    async def answer(
        self,
        question: str,
        project_id: str,
        request_id: str | None = None,
    ) -> QAResult:
        candidates = self.load_candidates(project_id, request_id)
        guardrail = require_files(candidates)
        if not guardrail.allowed:
            return QAResult(
                answer=NO_FILES_ANSWER,
                referenced_files=[],
                refusal_reason=guardrail.reason,
            )
        selected = self.rank(question, candidates)
        logger.info(
            "qa_ranked",
            extra={
                "request_id": request_id,
                "top": [
                    {"file_id": item.file.file_id, "score": item.score} for item in selected
                ],
            },
        )
        records = [item.file for item in selected]
        context = assemble_context(records)
        result = await self.generator.run(question, context, request_id=request_id)
        needles = build_needles(question)
        cited = [cite_file(record, needles) for record in records]
        return QAResult(
            answer=result.text,
            referenced_files=cited,
            refusal_reason=None if result.generated else "generation_failed",
            generated=result.generated,
            scores=selected,
        )
