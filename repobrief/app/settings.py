from __future__ import annotations

import json
import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes"}


@dataclass(frozen=True)
class Settings:
    top_k: int = int(os.getenv("REPOBRIEF_TOP_K", "5"))
    candidate_limit: int = int(os.getenv("REPOBRIEF_CANDIDATE_LIMIT", "10"))
    db_uri: str = os.getenv("REPOBRIEF_DB_URI", "sqlite://")
    audit_enabled: bool = _env_flag("REPOBRIEF_AUDIT_ENABLED", "true")
    metrics_enabled: bool = _env_flag("REPOBRIEF_METRICS_ENABLED", "true")
    log_level: str = os.getenv("REPOBRIEF_LOG_LEVEL", "INFO")
    answerer_mode_raw: str = os.getenv("REPOBRIEF_ANSWERER", "extractive")
    llm_provider: str = os.getenv("REPOBRIEF_LLM_PROVIDER", "gemini")
    llm_temperature: float = float(os.getenv("REPOBRIEF_LLM_TEMPERATURE", "0.2"))
    llm_max_tokens: int = int(os.getenv("REPOBRIEF_LLM_MAX_TOKENS", "1024"))
    llm_timeout: float = float(os.getenv("REPOBRIEF_LLM_TIMEOUT", "60"))
    gemini_api_key: str | None = os.getenv("GEMINI_API_KEY")
    gemini_chat_model: str = os.getenv("GEMINI_CHAT_MODEL", "gemini-1.5-flash")
    openai_api_key: str | None = os.getenv("OPENAI_API_KEY")
    openai_base_url: str = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
    openai_chat_model: str | None = os.getenv("OPENAI_CHAT_MODEL")
    ollama_base_url: str = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
    ollama_model: str = os.getenv("OLLAMA_MODEL", "qwen2.5-coder:7b")
    api_keys_raw: str = os.getenv("REPOBRIEF_API_KEYS", "")
    api_key_map_raw: str = os.getenv("REPOBRIEF_API_KEY_MAP", "")
    default_user_id: str = os.getenv("REPOBRIEF_DEFAULT_USER_ID", "local")

    @property
    def api_keys(self) -> set[str]:
        raw = os.getenv("REPOBRIEF_API_KEYS", self.api_keys_raw)
        return {value.strip() for value in raw.split(",") if value.strip()}

    @property
    def api_key_map(self) -> dict[str, dict[str, str]]:
        raw = os.getenv("REPOBRIEF_API_KEY_MAP", self.api_key_map_raw).strip()
        if not raw:
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            return {}
        if not isinstance(data, dict):
            return {}
        result: dict[str, dict[str, str]] = {}
        for key, value in data.items():
            if not isinstance(key, str) or not isinstance(value, dict):
                continue
            role = value.get("role")
            user_id = value.get("user_id")
            result[key] = {
                "role": role if isinstance(role, str) else "reader",
                "user_id": user_id if isinstance(user_id, str) else key,
            }
        return result

    @property
    def allow_anonymous(self) -> bool:
        return _env_flag("REPOBRIEF_ALLOW_ANONYMOUS", "false")

    @property
    def answerer_mode(self) -> str:
        return os.getenv("REPOBRIEF_ANSWERER", self.answerer_mode_raw).strip().lower()


settings = Settings()
