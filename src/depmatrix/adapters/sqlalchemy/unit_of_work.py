"""SQLAlchemy-backed unit of work for the claim history."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from depmatrix.adapters.sqlalchemy.mappings import create_all_tables
from depmatrix.adapters.sqlalchemy.repositories import (
    SqlAlchemyApplicationRepository,
    SqlAlchemyClaimRepository,
)
from depmatrix.config.storage import get_database_config
from depmatrix.domain.ports.unit_of_work import ClaimRepositories

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Connection, Engine

log = logging.getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when a SQLAlchemy unit of work is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    engine: Engine | None = None
    session_factory: sessionmaker[Session] | None = None

    def bind(self, engine: Engine | None) -> None:
        if self.engine is not None:
            self.engine.dispose()
        self.engine = engine
        self.session_factory = (
            sessionmaker(bind=engine, expire_on_commit=False) if engine is not None else None
        )

    def require_session_factory(self) -> sessionmaker[Session]:
        if self.session_factory is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call depmatrix.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a unit of work."
            )
        return self.session_factory


_STATE = _AdapterState()


def _enable_sqlite_savepoints(engine: Engine) -> None:
    """Let SQLAlchemy emit BEGIN itself so SAVEPOINT works with pysqlite."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection: Any, _connection_record: object) -> None:  # pyright: ignore[reportUnusedFunction]
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(connection: Connection) -> None:  # pyright: ignore[reportUnusedFunction]
        connection.exec_driver_sql("BEGIN")


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Bind the adapter to an engine and create the claim tables."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    resolved_engine = engine or create_engine(
        database_uri or get_database_config().uri, future=True
    )
    if resolved_engine.dialect.name == "sqlite":
        _enable_sqlite_savepoints(resolved_engine)
    create_all_tables(resolved_engine)

    _STATE.bind(resolved_engine)
    log.debug("SQLAlchemy adapter started on %s", resolved_engine.url)


def configured_engine() -> Engine | None:
    return _STATE.engine


def is_started() -> bool:
    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and forget it."""

    _STATE.bind(None)


class SqlAlchemyClaimUnitOfWork:
    """One session per ``with`` block; leaving on an exception rolls back."""

    def __init__(self) -> None:
        self.session_factory = _STATE.require_session_factory()
        self._session: Session | None = None
        self._repositories: ClaimRepositories | None = None

    def __enter__(self) -> SqlAlchemyClaimUnitOfWork:
        if self._session is not None:
            raise StartupError("Unit of work session already initialised")
        session = self.session_factory()
        self._session = session
        self._repositories = ClaimRepositories(
            applications=SqlAlchemyApplicationRepository(session),
            claims=SqlAlchemyClaimRepository(session),
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        session = self.session
        if exc_type is not None:
            session.rollback()
        session.close()
        self._session = None
        self._repositories = None
        return False

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session

    @property
    def repositories(self) -> ClaimRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()


if TYPE_CHECKING:
    from depmatrix.domain.ports.unit_of_work import ClaimUnitOfWork

    _uow_check: ClaimUnitOfWork = SqlAlchemyClaimUnitOfWork()
