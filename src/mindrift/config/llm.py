"""Language model endpoint configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_float, env_int, optional_env_var, require_env_var
from .http_resilience import RateLimit, ResilienceConfig

LLM_DEFAULT_BASE_URL = "https://api.openai.com/v1/"
LLM_DEFAULT_MODEL = "gpt-4o-mini"
LLM_DEFAULT_CANDIDATES = 3
LLM_TIMEOUT_SECONDS = 60.0


@dataclass(frozen=True)
class LlmConfig:
    """Holds settings for an OpenAI-compatible chat completions endpoint."""

    api_key: str
    model: str
    candidates: int
    temperature: float
    resilience: ResilienceConfig


def get_llm_config(*, resilience: ResilienceConfig | None = None) -> LlmConfig:
    api_key = require_env_var("MINDRIFT_LLM_API_KEY")
    base_url = optional_env_var("MINDRIFT_LLM_BASE_URL") or LLM_DEFAULT_BASE_URL
    if not base_url.endswith("/"):
        base_url = f"{base_url}/"
    return LlmConfig(
        api_key=api_key,
        model=optional_env_var("MINDRIFT_LLM_MODEL") or LLM_DEFAULT_MODEL,
        candidates=env_int("MINDRIFT_LLM_CANDIDATES", default=LLM_DEFAULT_CANDIDATES, minimum=1)
        or LLM_DEFAULT_CANDIDATES,
        temperature=env_float("MINDRIFT_LLM_TEMPERATURE", default=0.2, minimum=0.0) or 0.0,
        resilience=resilience
        or ResilienceConfig(
            name="llm",
            base_url=base_url,
            timeout_seconds=LLM_TIMEOUT_SECONDS,
            ratelimit=RateLimit(max_calls=8, per_seconds=1.0),
        ),
    )
