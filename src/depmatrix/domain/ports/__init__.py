"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import ApplicationRepository, ClaimRepository, Repository
from .sources import ClaimSource, ClaimSourceError
from .unit_of_work import (
    ClaimRepositories,
    ClaimUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "ApplicationRepository",
    "ClaimRepositories",
    "ClaimRepository",
    "ClaimSource",
    "ClaimSourceError",
    "ClaimUnitOfWork",
    "Repository",
    "RepositoryCollection",
    "UnitOfWork",
]
