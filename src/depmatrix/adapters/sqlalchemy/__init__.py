"""SQLAlchemy adapter package for depmatrix."""

from __future__ import annotations

from .mappings import application_table, claim_table, create_all_tables, mapper_registry
from .repositories import SqlAlchemyApplicationRepository, SqlAlchemyClaimRepository
from .unit_of_work import (
    SqlAlchemyClaimUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyApplicationRepository",
    "SqlAlchemyClaimRepository",
    "SqlAlchemyClaimUnitOfWork",
    "StartupError",
    "application_table",
    "claim_table",
    "configured_engine",
    "create_all_tables",
    "is_started",
    "mapper_registry",
    "shutdown",
    "startup",
]
