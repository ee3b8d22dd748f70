from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002

from depmatrix.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyClaimUnitOfWork,
    shutdown,
    startup,
)

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyClaimUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyClaimUnitOfWork:
        return SqlAlchemyClaimUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()


@pytest.fixture(autouse=True)
def _isolated_config_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "DEPMATRIX_CONFIG",
        "DEPMATRIX_GATEWAY_URL",
        "DEPMATRIX_GATEWAY_TOKEN",
        "DEPMATRIX_GATEWAY_TIMEOUT",
        "DEPMATRIX_CONFIDENCE_ROUTER_LOG",
        "DEPMATRIX_CONFIDENCE_CODEBASE",
        "DEPMATRIX_CONFIDENCE_API_GATEWAY",
        "DEPMATRIX_CONFIDENCE_CONFIGURATION_FILE",
    ):
        monkeypatch.delenv(name, raising=False)
