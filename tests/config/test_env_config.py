from __future__ import annotations

import logging
from pathlib import Path  # noqa: TC003

import pytest

from depmatrix.config import (
    ConfigurationError,
    MissingConfigurationError,
    configure_logging,
    optional_env,
    optional_env_float,
    require_env_vars,
)
from depmatrix.config import storage


def test_require_env_vars_returns_stripped_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "  value ")

    result = require_env_vars(["EXAMPLE_VAR"])

    assert result["EXAMPLE_VAR"] == "value"


def test_require_env_vars_lists_every_missing_name(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MISSING_B", raising=False)
    monkeypatch.setenv("MISSING_A", "   ")

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["MISSING_B", "MISSING_A"])

    assert "MISSING_A, MISSING_B" in str(exc.value)


def test_optional_env_treats_blank_as_unset(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", " ")

    assert optional_env("EXAMPLE_VAR") is None


def test_optional_env_float(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("EXAMPLE_FLOAT", raising=False)
    assert optional_env_float("EXAMPLE_FLOAT", 2.5) == 2.5

    monkeypatch.setenv("EXAMPLE_FLOAT", "0.75")
    assert optional_env_float("EXAMPLE_FLOAT", 2.5) == 0.75


@pytest.mark.parametrize("raw", ["fast", "nan", "inf"])
def test_optional_env_float_rejects_bad_numbers(
    monkeypatch: pytest.MonkeyPatch,
    raw: str,
) -> None:
    monkeypatch.setenv("EXAMPLE_FLOAT", raw)

    with pytest.raises(ConfigurationError) as exc:
        optional_env_float("EXAMPLE_FLOAT", 1.0)

    assert exc.value.origin == "EXAMPLE_FLOAT"


def test_data_dir_prefers_explicit_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    custom = tmp_path / "custom-data"
    monkeypatch.setenv(storage.DATA_DIR_ENV, str(custom))

    config = storage.get_storage_config()

    assert config.resolve_data_dir() == custom.resolve()


def test_database_uri_uses_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(storage.DATABASE_URI_ENV, "sqlite:///override.db")

    assert storage.get_database_config().uri == "sqlite:///override.db"


def test_database_uri_creates_data_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv(storage.DATABASE_URI_ENV, raising=False)
    monkeypatch.setenv(storage.DATA_DIR_ENV, str(tmp_path / "data-dir"))

    uri = storage.get_database_config().uri

    expected_path = (tmp_path / "data-dir" / storage.DEFAULT_DB_FILENAME).resolve()
    assert uri == f"sqlite+pysqlite:///{expected_path}"
    assert expected_path.parent.exists()


def test_configure_logging_quiets_http_wire_logs() -> None:
    httpx_logger = logging.getLogger("httpx")
    previous = httpx_logger.level
    try:
        configure_logging(level=logging.INFO)
        assert httpx_logger.level == logging.WARNING
    finally:
        httpx_logger.setLevel(previous)
