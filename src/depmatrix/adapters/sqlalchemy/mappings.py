"""SQLAlchemy table metadata for applications and the raw claim history."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Dialect,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    Uuid,
    orm,
)

from depmatrix.domain.model import ConfidenceLevel, DependencyType

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

application_table = Table(
    "application",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    # unique constraint backs the atomic find-or-create
    Column("name", String, nullable=False, unique=True),
    Column("created_at", UTCDateTime(), nullable=False, default=lambda: datetime.now(tz=UTC)),
)

claim_table = Table(
    "claim",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("record_id", UUIDColumnType, nullable=False, unique=True),
    Column(
        "from_application_id",
        UUIDColumnType,
        ForeignKey("application.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "to_application_id",
        UUIDColumnType,
        ForeignKey("application.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("raw_from", String, nullable=False),
    Column("raw_to", String, nullable=False),
    Column("source", String, nullable=False),
    Column("dependency_type", Enum(DependencyType, native_enum=False), nullable=False),
    Column("confidence", Enum(ConfidenceLevel, native_enum=False), nullable=False),
    Column("confidence_score", Float, nullable=False),
    Column("observed_at", UTCDateTime(), nullable=False),
    Column("recorded_at", UTCDateTime(), nullable=False),
    Column("raw_data", Text, nullable=False, default=""),
    Column("metadata", JSON, nullable=False, default=dict),
    Index("ix_claim_edge", "from_application_id", "to_application_id"),
)


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the claim history."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
