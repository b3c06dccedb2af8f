from __future__ import annotations

"""Lexical relevance scoring of indexed files against a question."""

from dataclasses import dataclass
from typing import Iterable

from repobrief.rag.types import FileRecord, ScoredFile

MIN_TOKEN_LENGTH = 4


@dataclass(frozen=True)
class ScoreWeights:
    """Per-field weights for whole-question and per-token matches."""
    question_in_name: float = 5.0
    question_in_summary: float = 3.0
    question_in_source: float = 2.0
    token_in_name: float = 2.0
    token_in_summary: float = 1.0
    token_in_source: float = 0.5


DEFAULT_WEIGHTS = ScoreWeights()


def question_tokens(question: str) -> list[str]:
    """Return lowercase whitespace tokens long enough to be meaningful.

    Duplicates are kept so a repeated word counts once per occurrence.
    """
    return [token for token in question.lower().split() if len(token) >= MIN_TOKEN_LENGTH]


def score_file(
    question: str,
    record: FileRecord,
    weights: ScoreWeights = DEFAULT_WEIGHTS,
) -> float:
    """Score a file record for a question; higher is more relevant."""
    normalized = question.lower()
    name = record.file_name.lower()
    summary = (record.summary or "").lower()
    source = record.text.lower()

    score = 0.0
    if normalized.strip():
        if normalized in name:
            score += weights.question_in_name
        if normalized in summary:
            score += weights.question_in_summary
        if normalized in source:
            score += weights.question_in_source

    for token in question_tokens(question):
        if token in name:
            score += weights.token_in_name
        if token in summary:
            score += weights.token_in_summary
        if token in source:
            score += weights.token_in_source
    return score


def score_files(
    question: str,
    records: Iterable[FileRecord],
    weights: ScoreWeights = DEFAULT_WEIGHTS,
) -> list[ScoredFile]:
    """Score every candidate, preserving retrieval order."""
    return [ScoredFile(file=record, score=score_file(question, record, weights)) for record in records]


def select_top_k(scored: list[ScoredFile], top_k: int) -> list[ScoredFile]:
    """Rank by descending score and keep the first ``top_k``.

    ``sorted`` is stable, so equal scores keep their retrieval order.
    """
    if top_k <= 0:
        return []
    ranked = sorted(scored, key=lambda item: item.score, reverse=True)
    return ranked[:top_k]
