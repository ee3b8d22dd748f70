"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING

from depmatrix.adapters.api_gateway import ApiGatewayClaimSource, ApiGatewayClient
from depmatrix.adapters.configuration_file import (
    ConfigurationFileClaimSource,
    configuration_sources,
)
from depmatrix.adapters.router_log import RouterLogClaimSource
from depmatrix.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyClaimUnitOfWork,
    is_started,
    startup,
)
from depmatrix.config.processing import get_processing_scores
from depmatrix.config.reconciliation import ReconciliationConfig, get_reconciliation_config
from depmatrix.domain.ingestion import ClaimProcessingEngine
from depmatrix.domain.ports.unit_of_work import ClaimUnitOfWork

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence
    from datetime import datetime

    from depmatrix.domain.model import Claim, ClaimRecord, NormalizedClaim
    from depmatrix.domain.ports.sources import ClaimSource
    from depmatrix.domain.reconciliation import ConflictReport

UnitOfWorkFactory = Callable[[], ClaimUnitOfWork]


log = getLogger(__name__)


@dataclass(slots=True)
class ReconcileResult:
    claims: list[Claim] = field(default_factory=list["Claim"])
    normalized: list[NormalizedClaim] = field(default_factory=list["NormalizedClaim"])
    conflicts: list[ConflictReport] = field(default_factory=list["ConflictReport"])


@dataclass(slots=True)
class IngestResult:
    stored: int = 0
    skipped: int = 0


def build_sources(
    *,
    router_logs: Sequence[Path] = (),
    configuration_files: Iterable[tuple[str, Path]] = (),
    hosts: Mapping[str, str] | None = None,
    gateway: bool = False,
    since: datetime | None = None,
) -> list[ClaimSource]:
    """Assemble the claim sources requested on the command line."""

    sources: list[ClaimSource] = [
        RouterLogClaimSource(Path(path), hosts=hosts or {}) for path in router_logs
    ]
    sources.extend(configuration_sources(configuration_files))
    if gateway:
        sources.append(ApiGatewayClaimSource(ApiGatewayClient(), since=since))
    return sources


def gather_claims(sources: Iterable[ClaimSource]) -> list[Claim]:
    claims: list[Claim] = []
    for source in sources:
        produced = list(source.claims())
        log.info("Source %s produced %d claims", source.name, len(produced))
        claims.extend(produced)
    return claims


def reconcile(
    sources: Iterable[ClaimSource],
    *,
    config: ReconciliationConfig | None = None,
) -> ReconcileResult:
    """Collect claims from ``sources``, normalize them and detect conflicts."""

    effective_config = config or get_reconciliation_config()
    claims = gather_claims(sources)
    normalized = effective_config.normalizer().normalize_claims(claims)
    conflicts = effective_config.detector().detect_all_conflicts(claims)
    log.info(
        "Finished reconciliation: claims=%d, dependencies=%d, conflicts=%d",
        len(claims),
        len(normalized),
        len(conflicts),
    )
    return ReconcileResult(claims=claims, normalized=normalized, conflicts=conflicts)


def _processing_engine(
    unit_of_work_factory: UnitOfWorkFactory | None,
    config: ReconciliationConfig | None,
) -> ClaimProcessingEngine:
    if unit_of_work_factory is None:
        if not is_started():
            startup()
        unit_of_work_factory = SqlAlchemyClaimUnitOfWork
    effective_config = config or get_reconciliation_config()
    return ClaimProcessingEngine(
        unit_of_work_factory=unit_of_work_factory,
        canonicalizer=effective_config.canonicalizer(),
        scores=get_processing_scores(),
    )


def ingest_router_log(
    path: Path,
    *,
    hosts: Mapping[str, str] | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: ReconciliationConfig | None = None,
) -> IngestResult:
    """Store every parseable router log line through the processing engine."""

    engine = _processing_engine(unit_of_work_factory, config)
    source = RouterLogClaimSource(Path(path), hosts=hosts or {})
    records = engine.process_router_logs(source.entries())
    log.info("Ingested %d router log entries from %s (%d skipped)", len(records), path, source.skipped)
    return IngestResult(stored=len(records), skipped=source.skipped)


def ingest_configuration_file(
    application: str,
    path: Path,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: ReconciliationConfig | None = None,
) -> IngestResult:
    """Store every dependency found in one application's configuration file."""

    engine = _processing_engine(unit_of_work_factory, config)
    source = ConfigurationFileClaimSource(Path(path), application)
    records = engine.process_configuration_claims(source.claims())
    log.info(
        "Ingested %d configuration dependencies for %s from %s (%d skipped)",
        len(records),
        application,
        path,
        source.skipped,
    )
    return IngestResult(stored=len(records), skipped=source.skipped)


def ingest_gateway_calls(
    *,
    client: ApiGatewayClient | None = None,
    since: datetime | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: ReconciliationConfig | None = None,
) -> IngestResult:
    """Poll the API gateway once and store every call through the processing engine."""

    engine = _processing_engine(unit_of_work_factory, config)
    calls = (client or ApiGatewayClient()).fetch_calls(since=since)
    records = engine.process_api_gateway_calls(calls)
    log.info("Ingested %d API gateway calls", len(records))
    return IngestResult(stored=len(records))


def stored_claims(*, unit_of_work_factory: UnitOfWorkFactory | None = None) -> list[ClaimRecord]:
    if unit_of_work_factory is None:
        if not is_started():
            startup()
        unit_of_work_factory = SqlAlchemyClaimUnitOfWork
    with unit_of_work_factory() as uow:
        return list(uow.repositories.claims.list_claims())


def detect_stored_conflicts(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: ReconciliationConfig | None = None,
) -> ReconcileResult:
    """Reconcile the stored claim history without touching any live source."""

    claims = [record.claim for record in stored_claims(unit_of_work_factory=unit_of_work_factory)]
    effective_config = config or get_reconciliation_config()
    result = ReconcileResult(
        claims=claims,
        normalized=effective_config.normalizer().normalize_claims(claims),
        conflicts=effective_config.detector().detect_all_conflicts(claims),
    )
    log.info(
        "Scanned %d stored claims: conflicts=%d", len(result.claims), len(result.conflicts)
    )
    return result
