"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from depmatrix.adapters.sqlalchemy.mappings import application_table, claim_table
from depmatrix.domain.model import Application, Claim, ClaimRecord

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlalchemy import Row
    from sqlalchemy.orm import Session

log = logging.getLogger(__name__)


class SqlAlchemyApplicationRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Application) -> None:
        self.session.execute(
            application_table.insert().values(id=entity.id, name=entity.name)
        )

    def get_by_name(self, name: str) -> Application | None:
        stmt = select(application_table.c.id, application_table.c.name).where(
            application_table.c.name == name
        )
        row = self.session.execute(stmt).one_or_none()
        if row is None:
            return None
        return Application(id=row.id, name=row.name)

    def find_or_create(self, name: str) -> Application:
        existing = self.get_by_name(name)
        if existing is not None:
            return existing

        application = Application(name=name)
        try:
            # SAVEPOINT so a lost race only rolls back this insert
            with self.session.begin_nested():
                self.add(application)
        except IntegrityError:
            log.debug("Application %r created concurrently; reloading", name)
            existing = self.get_by_name(name)
            if existing is None:
                raise
            return existing
        log.info("Created application %r", name)
        return application

    def list_applications(self) -> list[Application]:
        stmt = select(application_table.c.id, application_table.c.name).order_by(
            application_table.c.name
        )
        return [Application(id=row.id, name=row.name) for row in self.session.execute(stmt)]


class SqlAlchemyClaimRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: ClaimRecord) -> None:
        claim = entity.claim
        self.session.execute(
            claim_table.insert().values(
                record_id=entity.id,
                from_application_id=entity.from_application.id,
                to_application_id=entity.to_application.id,
                raw_from=claim.from_application,
                raw_to=claim.to_application,
                source=str(claim.source),
                dependency_type=claim.dependency_type,
                confidence=claim.confidence,
                confidence_score=entity.confidence_score,
                observed_at=claim.timestamp,
                recorded_at=entity.recorded_at,
                raw_data=claim.raw_data,
                metadata=_serialize_metadata(claim.metadata),
            )
        )

    def list_claims(self) -> list[ClaimRecord]:
        applications: dict[uuid.UUID, Application] = {
            row.id: Application(id=row.id, name=row.name)
            for row in self.session.execute(
                select(application_table.c.id, application_table.c.name)
            )
        }
        stmt = select(claim_table).order_by(claim_table.c.id)
        return [self._to_record(row, applications) for row in self.session.execute(stmt)]

    def count(self) -> int:
        stmt = select(func.count()).select_from(claim_table)
        return int(self.session.execute(stmt).scalar_one())

    @staticmethod
    def _to_record(row: Row[Any], applications: dict[uuid.UUID, Application]) -> ClaimRecord:
        data = row._mapping  # noqa: SLF001
        claim = Claim(
            from_application=data["raw_from"],
            to_application=data["raw_to"],
            source=data["source"],
            dependency_type=data["dependency_type"],
            confidence=data["confidence"],
            timestamp=data["observed_at"],
            raw_data=data["raw_data"],
            metadata=cast("dict[str, object | None]", data["metadata"] or {}),
        )
        return ClaimRecord(
            id=data["record_id"],
            claim=claim,
            from_application=applications[data["from_application_id"]],
            to_application=applications[data["to_application_id"]],
            confidence_score=data["confidence_score"],
            recorded_at=data["recorded_at"],
        )


def _serialize_metadata(metadata: Mapping[str, object | None]) -> dict[str, str]:
    return {str(key): str(value) for key, value in metadata.items() if value is not None}


if TYPE_CHECKING:
    from depmatrix.domain.ports.persistence import ApplicationRepository, ClaimRepository

    _session_stub = cast("Session", object())
    _application_repo: ApplicationRepository = SqlAlchemyApplicationRepository(_session_stub)
    _claim_repo: ClaimRepository = SqlAlchemyClaimRepository(_session_stub)
