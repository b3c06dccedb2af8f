from __future__ import annotations

from dataclasses import replace

import pytest

from repobrief.app import dependencies
from repobrief.app.dependencies import build_backend, get_pipeline, reset_caches
from repobrief.app.settings import settings
from repobrief.rag.answerer import ExtractiveAnswerer
from repobrief.rag.llm import OllamaBackend, UnavailableBackend


@pytest.fixture
def configure(monkeypatch):
    def _configure(answerer: str, **overrides) -> None:
        monkeypatch.setenv("REPOBRIEF_ANSWERER", answerer)
        monkeypatch.setattr(dependencies, "settings", replace(settings, **overrides))

    yield _configure
    reset_caches()


def test_default_backend_is_extractive(configure) -> None:
    configure("extractive")
    assert isinstance(build_backend(), ExtractiveAnswerer)


def test_llm_mode_without_credentials_degrades(configure) -> None:
    configure("llm", llm_provider="openai", openai_api_key=None)

    backend = build_backend()

    assert isinstance(backend, UnavailableBackend)
    assert backend.provider == "openai"


def test_unknown_provider_degrades(configure) -> None:
    configure("llm", llm_provider="watson")
    assert isinstance(build_backend(), UnavailableBackend)


def test_llm_mode_builds_ollama_backend(configure) -> None:
    configure("llm", llm_provider="ollama", ollama_model="llama3")

    backend = build_backend()

    assert isinstance(backend, OllamaBackend)
    assert backend.model == "llama3"


def test_pipeline_uses_configured_limits(configure) -> None:
    configure("extractive", top_k=3, candidate_limit=7)
    reset_caches()

    pipeline = get_pipeline()

    assert pipeline.top_k == 3
    assert pipeline.candidate_limit == 7
    assert get_pipeline() is pipeline
