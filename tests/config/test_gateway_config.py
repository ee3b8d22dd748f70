from __future__ import annotations

import pytest

from depmatrix.config import ConfigurationError, MissingConfigurationError, get_gateway_config
from depmatrix.config.gateway import (
    GATEWAY_TIMEOUT_ENV,
    GATEWAY_TIMEOUT_SECONDS,
    GATEWAY_TOKEN_ENV,
    GATEWAY_URL_ENV,
)
from depmatrix.config.processing import ROUTER_LOG_SCORE_ENV, get_processing_scores


def test_gateway_config_requires_url() -> None:
    with pytest.raises(MissingConfigurationError, match=GATEWAY_URL_ENV):
        get_gateway_config()


def test_gateway_config_builds_resilience_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(GATEWAY_URL_ENV, "https://gateway.internal/v1")
    monkeypatch.setenv(GATEWAY_TOKEN_ENV, "secret")

    config = get_gateway_config()

    assert config.base_url == "https://gateway.internal/v1"
    assert config.token == "secret"
    resilience = config.resilience
    assert resilience.base_url == config.base_url
    assert resilience.timeout_seconds == GATEWAY_TIMEOUT_SECONDS
    assert resilience.ratelimit is not None
    assert resilience.default_headers is not None
    assert resilience.default_headers["Authorization"] == "Bearer secret"
    assert "POST" not in resilience.retry.allowed_methods


def test_gateway_config_without_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(GATEWAY_URL_ENV, "http://localhost:8080")

    config = get_gateway_config()

    assert config.token is None
    assert config.resilience.default_headers == {"Accept": "application/json"}


def test_gateway_config_rejects_non_http_url(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(GATEWAY_URL_ENV, "ftp://gateway")

    with pytest.raises(ConfigurationError) as exc:
        get_gateway_config()

    assert exc.value.origin == GATEWAY_URL_ENV


def test_gateway_config_rejects_non_positive_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(GATEWAY_URL_ENV, "https://gateway")
    monkeypatch.setenv(GATEWAY_TIMEOUT_ENV, "0")

    with pytest.raises(ConfigurationError, match="positive"):
        get_gateway_config()


def test_processing_scores_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(ROUTER_LOG_SCORE_ENV, "0.6")

    scores = get_processing_scores()

    assert scores.router_log == 0.6
    assert scores.codebase == 0.95


def test_processing_scores_out_of_range(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(ROUTER_LOG_SCORE_ENV, "1.2")

    with pytest.raises(ConfigurationError, match="within"):
        get_processing_scores()
