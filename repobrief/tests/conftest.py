from __future__ import annotations

"""Shared pytest fixtures and test environment defaults."""

import os
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

os.environ.setdefault("REPOBRIEF_ALLOW_ANONYMOUS", "true")
os.environ["REPOBRIEF_ANSWERER"] = "extractive"
os.environ["REPOBRIEF_DB_URI"] = "sqlite://"
os.environ.pop("REPOBRIEF_API_KEYS", None)
os.environ.pop("REPOBRIEF_API_KEY_MAP", None)
os.environ.pop("GEMINI_API_KEY", None)
os.environ.pop("OPENAI_API_KEY", None)

import pytest


@pytest.fixture
def anyio_backend():
    return "asyncio"
