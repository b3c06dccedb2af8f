from __future__ import annotations

"""Answer generation adapter and the offline extractive answerer."""

from dataclasses import dataclass
import logging
from typing import Protocol

from repobrief.rag.context import BLOCK_DELIMITER, EMPTY_CONTEXT
from repobrief.rag.llm import LLMError

logger = logging.getLogger(__name__)

FALLBACK_ANSWER = "Sorry, there was an error generating the answer. Please try again later."


class AnswerBackend(Protocol):
    """Anything that can answer a question from a context block."""

    async def generate(self, question: str, context: str) -> str:
        ...


@dataclass
class ExtractiveAnswerer:
    """Answer from the top-ranked file block without calling an LLM."""
    max_chars: int = 480
    provider: str = "extractive"

    async def generate(self, question: str, context: str) -> str:
        """Quote the summary of the first file in the context."""
        if not context.strip() or context == EMPTY_CONTEXT:
            raise LLMError("No context to extract from")
        first_block = context.split(f"\n{BLOCK_DELIMITER}\n", 1)[0]
        file_name = ""
        summary = ""
        for line in first_block.splitlines():
            if line.startswith("File: ") and not file_name:
                file_name = line[len("File: "):].strip()
            elif line.startswith("Summary: ") and not summary:
                summary = line[len("Summary: "):].strip()
        if not file_name:
            raise LLMError("Context has no file blocks")
        if not summary:
            return f"The most relevant file is {file_name}."
        return f"The most relevant file is {file_name}: {self._truncate(summary)}"

    def _truncate(self, text: str) -> str:
        """Trim text to ``max_chars`` without cutting words."""
        if len(text) <= self.max_chars:
            return text
        return text[: self.max_chars].rsplit(" ", 1)[0] + "..."


@dataclass(frozen=True)
class GenerationResult:
    """Answer text and whether it came from the backend."""
    text: str
    generated: bool


@dataclass
class AnswerGenerator:
    """Wrap a backend so callers always receive answer text.

    Backend failures are logged with their cause and replaced by
    ``FALLBACK_ANSWER``. A single attempt is made per request.
    """
    backend: AnswerBackend
    fallback_answer: str = FALLBACK_ANSWER

    @property
    def provider(self) -> str:
        return str(getattr(self.backend, "provider", type(self.backend).__name__))

    async def generate(self, question: str, context: str) -> str:
        """Return answer text; never raises."""
        result = await self.run(question, context)
        return result.text

    async def run(
        self,
        question: str,
        context: str,
        request_id: str | None = None,
    ) -> GenerationResult:
        """Call the backend once and fall back to a fixed answer on failure."""
        try:
            answer = await self.backend.generate(question, context)
        except Exception as exc:
            self._log_failure(exc, request_id)
            return GenerationResult(text=self.fallback_answer, generated=False)
        if not isinstance(answer, str) or not answer.strip():
            self._log_failure(LLMError("Empty answer"), request_id)
            return GenerationResult(text=self.fallback_answer, generated=False)
        return GenerationResult(text=answer.strip(), generated=True)

    def _log_failure(self, exc: Exception, request_id: str | None) -> None:
        logger.error(
            "generation_failed",
            extra={
                "request_id": request_id,
                "provider": self.provider,
                "model": getattr(self.backend, "model", None),
                "detail": type(exc).__name__,
                "reason": str(exc),
            },
        )
