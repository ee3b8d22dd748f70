"""Application configuration helpers."""

from __future__ import annotations

from .env import optional_env, optional_env_float, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .gateway import GatewayConfig, get_gateway_config
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .processing import get_processing_scores
from .reconciliation import ReconciliationConfig, get_reconciliation_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "GatewayConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ReconciliationConfig",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "configure_logging",
    "get_database_config",
    "get_gateway_config",
    "get_processing_scores",
    "get_reconciliation_config",
    "get_storage_config",
    "optional_env",
    "optional_env_float",
    "require_env_vars",
]
