from __future__ import annotations

"""Matching-line evidence for cited files."""

from typing import Iterable

from repobrief.rag.scoring import question_tokens
from repobrief.rag.types import CitedFile, FileRecord


def build_needles(question: str) -> list[str]:
    """Return unique lowercase needles derived from the question.

    Uses the scoring tokens plus the whole normalized question, in order of
    appearance.
    """
    seen: set[str] = set()
    needles: list[str] = []
    whole = question.lower().strip()
    candidates = question_tokens(question)
    if whole:
        candidates.append(whole)
    for needle in candidates:
        if needle in seen:
            continue
        seen.add(needle)
        needles.append(needle)
    return needles


def extract_evidence(
    source_code: str | None,
    needles: Iterable[str],
) -> tuple[list[int], list[str]]:
    """Find 1-based line numbers whose text contains any needle.

    Matching is case-insensitive. Returned contents are the literal lines.
    """
    lowered_needles = [needle.lower() for needle in needles if needle]
    if not source_code or not lowered_needles:
        return [], []
    line_numbers: list[int] = []
    contents: list[str] = []
    for number, line in enumerate(source_code.split("\n"), start=1):
        lower = line.lower()
        if any(needle in lower for needle in lowered_needles):
            line_numbers.append(number)
            contents.append(line)
    return line_numbers, contents


def cite_file(record: FileRecord, needles: list[str]) -> CitedFile:
    """Build a citation for a selected file with its evidence attached."""
    lines, contents = extract_evidence(record.source_code, needles)
    return CitedFile(
        id=record.file_id,
        file_name=record.file_name,
        summary=record.summary,
        source_code=record.text,
        matching_lines=lines,
        matching_line_contents=contents,
    )
