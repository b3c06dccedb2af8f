from __future__ import annotations

"""LLM backends that turn a question and code context into an answer."""

from dataclasses import dataclass
import asyncio

import httpx


class LLMError(RuntimeError):
    """Raised when LLM requests fail or responses are invalid."""
    pass


_PROMPT_TEMPLATE = (
    "You are an AI code assistant. "
    "Use the following context from the user's codebase to answer the question.\n\n"
    "Context:\n{context}\n\n"
    "Question: {question}\n"
    "Answer:"
)


def build_prompt(question: str, context: str) -> str:
    """Compose the single instruction prompt sent to every backend."""
    return _PROMPT_TEMPLATE.format(context=context, question=question)


def _require_text(content: object, provider: str) -> str:
    """Validate that a backend produced a non-empty string."""
    if not isinstance(content, str):
        raise LLMError(f"Invalid {provider} response content")
    text = content.strip()
    if not text:
        raise LLMError(f"Empty {provider} response")
    return text


@dataclass(frozen=True)
class OllamaBackend:
    """Answer generation backed by the Ollama chat API."""
    base_url: str
    model: str
    temperature: float
    max_tokens: int
    timeout: float
    transport: httpx.AsyncBaseTransport | None = None
    provider: str = "ollama"

    async def generate(self, question: str, context: str) -> str:
        """Generate an answer using Ollama."""
        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": build_prompt(question, context)}],
            "stream": False,
            "options": {
                "temperature": self.temperature,
                "num_predict": self.max_tokens,
            },
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(f"{self.base_url}/api/chat", json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as exc:
            raise LLMError(str(exc)) from exc
        except ValueError as exc:
            raise LLMError("Ollama response is not valid JSON") from exc
        if not isinstance(data, dict):
            raise LLMError("Invalid Ollama response")
        message = data.get("message") or {}
        return _require_text(message.get("content"), self.provider)


@dataclass(frozen=True)
class OpenAIBackend:
    """Answer generation backed by OpenAI chat completions."""
    api_key: str
    base_url: str
    model: str
    temperature: float
    max_tokens: int
    timeout: float
    transport: httpx.AsyncBaseTransport | None = None
    provider: str = "openai"

    async def generate(self, question: str, context: str) -> str:
        """Generate an answer using OpenAI chat completions."""
        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": build_prompt(question, context)}],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    f"{self.base_url}/chat/completions",
                    json=payload,
                    headers=headers,
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as exc:
            raise LLMError(str(exc)) from exc
        except ValueError as exc:
            raise LLMError("OpenAI response is not valid JSON") from exc
        if not isinstance(data, dict):
            raise LLMError("Invalid OpenAI response")
        choices = data.get("choices") or []
        if not choices:
            raise LLMError("Invalid OpenAI response")
        message = choices[0].get("message") or {}
        return _require_text(message.get("content"), self.provider)


@dataclass(frozen=True)
class GeminiBackend:
    """Answer generation backed by Gemini generative models."""
    api_key: str
    model: str
    temperature: float
    max_tokens: int
    timeout: float
    provider: str = "gemini"

    async def generate(self, question: str, context: str) -> str:
        """Generate an answer using Gemini."""
        try:
            import google.generativeai as genai
        except ImportError as exc:
            raise LLMError("google-generativeai is required for GeminiBackend") from exc

        prompt = build_prompt(question, context)

        def _run() -> str:
            genai.configure(api_key=self.api_key)
            model = genai.GenerativeModel(self.model)
            response = model.generate_content(
                prompt,
                generation_config={
                    "temperature": self.temperature,
                    "max_output_tokens": self.max_tokens,
                },
            )
            return getattr(response, "text", "") or ""

        try:
            content = await asyncio.wait_for(asyncio.to_thread(_run), timeout=self.timeout)
        except Exception as exc:
            raise LLMError(str(exc)) from exc
        return _require_text(content, self.provider)


def build_llm_backend(
    provider: str,
    *,
    api_key_openai: str | None,
    api_key_gemini: str | None,
    openai_base_url: str,
    openai_model: str | None,
    gemini_model: str | None,
    ollama_base_url: str,
    ollama_model: str,
    temperature: float,
    max_tokens: int,
    timeout: float,
) -> OllamaBackend | OpenAIBackend | GeminiBackend:
    """Factory for LLM backends based on provider."""
    normalized = provider.strip().lower()
    if normalized in {"openai"}:
        if not api_key_openai:
            raise LLMError("OPENAI_API_KEY is required for OpenAI provider")
        if not openai_model:
            raise LLMError("OPENAI_CHAT_MODEL is required for OpenAI provider")
        return OpenAIBackend(
            api_key=api_key_openai,
            base_url=openai_base_url.rstrip("/"),
            model=openai_model,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
        )
    if normalized in {"gemini", "google"}:
        if not api_key_gemini:
            raise LLMError("GEMINI_API_KEY is required for Gemini provider")
        if not gemini_model:
            raise LLMError("GEMINI_CHAT_MODEL is required for Gemini provider")
        return GeminiBackend(
            api_key=api_key_gemini,
            model=gemini_model,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
        )
    if normalized == "ollama":
        return OllamaBackend(
            base_url=ollama_base_url.rstrip("/"),
            model=ollama_model,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
        )
    raise LLMError(f"Unsupported LLM provider: {provider}")


@dataclass(frozen=True)
class UnavailableBackend:
    """Stand-in for a backend that could not be configured."""
    provider: str
    reason: str

    async def generate(self, question: str, context: str) -> str:
        raise LLMError(self.reason)
