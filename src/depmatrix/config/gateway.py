"""API gateway configuration values."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from .env import optional_env, optional_env_float, require_env_vars
from .errors import ConfigurationError
from .http_resilience import RateLimit, ResilienceConfig

GATEWAY_URL_ENV: Final[str] = "DEPMATRIX_GATEWAY_URL"
GATEWAY_TOKEN_ENV: Final[str] = "DEPMATRIX_GATEWAY_TOKEN"
GATEWAY_TIMEOUT_ENV: Final[str] = "DEPMATRIX_GATEWAY_TIMEOUT"
GATEWAY_TIMEOUT_SECONDS = 10.0
GATEWAY_PAGE_SIZE = 500


@dataclass(frozen=True)
class GatewayConfig:
    """Holds API gateway access configuration values."""

    base_url: str
    token: str | None
    resilience: ResilienceConfig
    page_size: int = GATEWAY_PAGE_SIZE


def get_gateway_config(*, resilience: ResilienceConfig | None = None) -> GatewayConfig:
    values = require_env_vars((GATEWAY_URL_ENV,))
    base_url = values[GATEWAY_URL_ENV]
    if not base_url.startswith(("http://", "https://")):
        raise ConfigurationError(f"expected an http(s) URL, got {base_url!r}", origin=GATEWAY_URL_ENV)
    timeout = optional_env_float(GATEWAY_TIMEOUT_ENV, GATEWAY_TIMEOUT_SECONDS)
    if timeout <= 0:
        raise ConfigurationError("timeout must be positive", origin=GATEWAY_TIMEOUT_ENV)
    token = optional_env(GATEWAY_TOKEN_ENV)
    headers = {"Accept": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return GatewayConfig(
        base_url=base_url,
        token=token,
        resilience=resilience
        or ResilienceConfig(
            name="api-gateway",
            base_url=base_url,
            timeout_seconds=timeout,
            ratelimit=RateLimit(max_calls=10, per_seconds=1.0),
            default_headers=headers,
        ),
    )
