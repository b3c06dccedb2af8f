from __future__ import annotations

"""Render ranked files into the context block handed to the answerer."""

from typing import Iterable

from repobrief.rag.types import FileRecord

EMPTY_CONTEXT = "No specific code context available for this project."
BLOCK_DELIMITER = "---"


def format_file_block(record: FileRecord) -> str:
    """Format one file as a delimited context block."""
    return (
        f"File: {record.file_name}\n"
        f"Summary: {record.summary}\n"
        f"Source Code:\n{record.text}\n"
        f"{BLOCK_DELIMITER}\n"
    )


def assemble_context(records: Iterable[FileRecord]) -> str:
    """Concatenate file blocks in ranked order.

    File bodies are never truncated here; the backend's input limit is the
    only ceiling.
    """
    context = "".join(format_file_block(record) for record in records)
    if not context:
        return EMPTY_CONTEXT
    return context
