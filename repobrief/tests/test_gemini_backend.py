from __future__ import annotations

"""Tests for the Gemini backend against a stand-in SDK module."""

import sys
import time
import types

import pytest

from repobrief.rag.answerer import FALLBACK_ANSWER, AnswerGenerator
from repobrief.rag.llm import GeminiBackend, LLMError, build_prompt

pytestmark = pytest.mark.anyio

QUESTION = "which file handles login"
CONTEXT = "File: auth/login.tsx\nSummary: login form\nSource Code:\n\n---\n"


class FakeGenAI:
    """Records calls made through the google.generativeai surface."""

    def __init__(self, text: str = "", error: Exception | None = None, delay: float = 0.0) -> None:
        self.text = text
        self.error = error
        self.delay = delay
        self.api_key: str | None = None
        self.model_name: str | None = None
        self.prompts: list[str] = []
        self.configs: list[dict] = []

    def configure(self, api_key: str) -> None:
        self.api_key = api_key

    def GenerativeModel(self, model_name: str):
        self.model_name = model_name
        sdk = self

        class _Model:
            def generate_content(self, prompt: str, generation_config: dict):
                sdk.prompts.append(prompt)
                sdk.configs.append(generation_config)
                if sdk.delay:
                    time.sleep(sdk.delay)
                if sdk.error is not None:
                    raise sdk.error
                return types.SimpleNamespace(text=sdk.text)

        return _Model()


def install_sdk(monkeypatch, fake: FakeGenAI | None) -> None:
    module = None
    if fake is not None:
        module = types.ModuleType("google.generativeai")
        module.configure = fake.configure
        module.GenerativeModel = fake.GenerativeModel
    google = types.ModuleType("google")
    google.__path__ = []
    if module is not None:
        google.generativeai = module
    monkeypatch.setitem(sys.modules, "google", google)
    monkeypatch.setitem(sys.modules, "google.generativeai", module)


def gemini_backend(timeout: float = 5.0) -> GeminiBackend:
    return GeminiBackend(
        api_key="g-key",
        model="gemini-1.5-flash",
        temperature=0.3,
        max_tokens=256,
        timeout=timeout,
    )


async def test_gemini_sends_prompt_and_generation_config(monkeypatch) -> None:
    fake = FakeGenAI(text="  auth/login.tsx renders the form.  ")
    install_sdk(monkeypatch, fake)

    answer = await gemini_backend().generate(QUESTION, CONTEXT)

    assert answer == "auth/login.tsx renders the form."
    assert fake.api_key == "g-key"
    assert fake.model_name == "gemini-1.5-flash"
    assert fake.prompts == [build_prompt(QUESTION, CONTEXT)]
    assert fake.configs == [{"temperature": 0.3, "max_output_tokens": 256}]


async def test_gemini_sdk_error_raises_llm_error(monkeypatch) -> None:
    install_sdk(monkeypatch, FakeGenAI(error=RuntimeError("quota exceeded")))

    with pytest.raises(LLMError, match="quota exceeded"):
        await gemini_backend().generate(QUESTION, CONTEXT)


async def test_gemini_blank_text_raises_llm_error(monkeypatch) -> None:
    install_sdk(monkeypatch, FakeGenAI(text="   "))

    with pytest.raises(LLMError):
        await gemini_backend().generate(QUESTION, CONTEXT)


async def test_gemini_timeout_raises_llm_error(monkeypatch) -> None:
    install_sdk(monkeypatch, FakeGenAI(text="late", delay=0.5))

    with pytest.raises(LLMError):
        await gemini_backend(timeout=0.05).generate(QUESTION, CONTEXT)


async def test_gemini_missing_sdk_raises_llm_error(monkeypatch) -> None:
    install_sdk(monkeypatch, None)

    with pytest.raises(LLMError, match="google-generativeai"):
        await gemini_backend().generate(QUESTION, CONTEXT)


async def test_gemini_failure_becomes_fallback_answer(monkeypatch) -> None:
    install_sdk(monkeypatch, FakeGenAI(error=RuntimeError("service unavailable")))
    generator = AnswerGenerator(gemini_backend())

    result = await generator.run(QUESTION, CONTEXT, request_id="req-1")

    assert result.text == FALLBACK_ANSWER
    assert not result.generated
    assert generator.provider == "gemini"
