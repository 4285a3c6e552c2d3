"""Application configuration helpers."""

from __future__ import annotations

from .env import require_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .llm import LlmConfig, get_llm_config
from .logging import configure_logging
from .reconcile import ReconcileConfig, get_reconcile_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "LlmConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ReconcileConfig",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "configure_logging",
    "get_database_config",
    "get_llm_config",
    "get_reconcile_config",
    "get_storage_config",
    "require_env_var",
    "require_env_vars",
]
