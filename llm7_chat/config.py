"""
Configuration constants and Pydantic models for llm7-chat.
"""

import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# ─────────────────────────────────────────────────────────────────────
# DEFAULTS
# ─────────────────────────────────────────────────────────────────────

DEFAULT_BASE_URL: str = "https://api.llm7.io/v1"
DEFAULT_MODEL_NAME: str = "gpt-4.1-nano"
DEFAULT_TEMPERATURE: float = 1.0
DEFAULT_TIMEOUT_SECONDS: float = 120.0
DEFAULT_MAX_RETRIES: int = 3


# ─────────────────────────────────────────────────────────────────────
# INTERNAL CONSTANTS - Wire protocol
# ─────────────────────────────────────────────────────────────────────

COMPLETIONS_PATH: str = "/chat/completions"
SSE_DATA_PREFIX: str = "data:"
SSE_DONE_SENTINEL: str = "[DONE]"

# Exponential backoff bounds between retry attempts (seconds)
DEFAULT_RETRY_MIN_WAIT: float = 1.0
DEFAULT_RETRY_MAX_WAIT: float = 30.0


# ─────────────────────────────────────────────────────────────────────
# ENVIRONMENT LOADING
# ─────────────────────────────────────────────────────────────────────

def _env_float(key: str, default: Optional[float]) -> Optional[float]:
    value = os.environ.get(key)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(key: str, default: Optional[int]) -> Optional[int]:
    value = os.environ.get(key)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        return default


def load_stop_from_env() -> Optional[list[str]]:
    """
    Load default stop sequences from LLM7_STOP.

    Comma-separated; empty entries are dropped. Returns None when unset.
    """
    raw = os.environ.get("LLM7_STOP")
    if not raw:
        return None
    stops = [s for s in raw.split(",") if s]
    return stops or None


# ─────────────────────────────────────────────────────────────────────
# DATA MODELS
# ─────────────────────────────────────────────────────────────────────

class LLM7Config(BaseModel):
    """
    Per-adapter configuration. Immutable after construction.

    One instance is shared by every call made through an LLM7Client, so it
    must never be mutated; per-call variation (stop sequences, observers,
    cancellation) is passed to the call itself.
    """
    model_config = ConfigDict(frozen=True, protected_namespaces=())

    base_url: str = DEFAULT_BASE_URL
    model_name: str = DEFAULT_MODEL_NAME
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: Optional[int] = None
    timeout: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=0)
    stop: Optional[list[str]] = None
    retry_min_wait: float = Field(default=DEFAULT_RETRY_MIN_WAIT, ge=0)
    retry_max_wait: float = Field(default=DEFAULT_RETRY_MAX_WAIT, ge=0)

    @property
    def completions_url(self) -> str:
        return self.base_url.rstrip("/") + COMPLETIONS_PATH

    @classmethod
    def from_env(cls, **overrides) -> "LLM7Config":
        """
        Build a config from LLM7_* environment variables.

        Explicit keyword overrides win over the environment. Values that
        fail to parse fall back to the defaults.
        """
        values = {
            "base_url": os.environ.get("LLM7_BASE_URL") or DEFAULT_BASE_URL,
            "model_name": os.environ.get("LLM7_MODEL") or DEFAULT_MODEL_NAME,
            "temperature": _env_float("LLM7_TEMPERATURE", DEFAULT_TEMPERATURE),
            "max_tokens": _env_int("LLM7_MAX_TOKENS", None),
            "timeout": _env_float("LLM7_TIMEOUT", DEFAULT_TIMEOUT_SECONDS),
            "max_retries": _env_int("LLM7_MAX_RETRIES", DEFAULT_MAX_RETRIES),
            "stop": load_stop_from_env(),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
