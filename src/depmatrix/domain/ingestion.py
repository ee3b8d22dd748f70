"""Claim processing engine: the write path from raw observations to stored claims."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from depmatrix.domain.model import (
    Claim,
    ClaimRecord,
    ConfidenceLevel,
    DependencyType,
    InvalidClaimError,
    Source,
)
from depmatrix.domain.reconciliation.canonicalize import ServiceNameCanonicalizer

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from depmatrix.domain.model import ApiGatewayCall, CodebaseDependency, RouterLogEntry
    from depmatrix.domain.ports.unit_of_work import ClaimUnitOfWork

type UnitOfWorkFactory = Callable[[], ClaimUnitOfWork]

log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def _require_endpoints(
    from_application: str | None,
    to_application: str | None,
    message: str,
) -> tuple[str, str]:
    if (
        from_application is None
        or to_application is None
        or not from_application.strip()
        or not to_application.strip()
    ):
        raise InvalidClaimError(message)
    return from_application, to_application


@dataclass(frozen=True, slots=True, kw_only=True)
class ProcessingScores:
    """Numeric trust score assigned to claims from each observation kind."""

    router_log: float = 0.9
    codebase: float = 0.95
    api_gateway: float = 0.85
    configuration_file: float = 0.8

    def __post_init__(self) -> None:
        for name in ("router_log", "codebase", "api_gateway", "configuration_file"):
            score = getattr(self, name)
            if not 0.0 <= score <= 1.0:
                raise ValueError(f"Confidence score for {name} must be within [0, 1], got {score}")


@dataclass(slots=True, kw_only=True)
class ClaimProcessingEngine:
    """Validate raw observations, persist them as claims and return the stored record.

    Endpoints are resolved to ``Application`` rows by canonical name; the stored
    claim keeps the raw names for audit.
    """

    unit_of_work_factory: UnitOfWorkFactory
    canonicalizer: ServiceNameCanonicalizer = field(default_factory=ServiceNameCanonicalizer)
    scores: ProcessingScores = field(default_factory=ProcessingScores)
    clock: Callable[[], datetime] = _utcnow

    def process_router_log(self, entry: RouterLogEntry) -> ClaimRecord:
        start = time.perf_counter()
        source_ip, target_ip = _require_endpoints(
            entry.source_ip,
            entry.target_ip,
            "Invalid router log entry: source and target are required",
        )
        claim = Claim(
            from_application=source_ip,
            to_application=target_ip,
            source=Source.ROUTER_LOG,
            dependency_type=DependencyType.RUNTIME,
            confidence=ConfidenceLevel.from_score(self.scores.router_log),
            timestamp=entry.timestamp or self.clock(),
            raw_data=entry.raw_line or f"{source_ip} -> {target_ip}",
            metadata={
                "target_port": entry.target_port,
                "http_method": entry.method,
                "path": entry.path,
                "http_status": entry.status,
                "response_time_ms": entry.response_time_ms,
            },
        )
        record = self._store(claim, self.scores.router_log)
        log.info("Processed router log in %d ms", _elapsed_ms(start))
        return record

    def process_codebase_dependency(self, dependency: CodebaseDependency) -> ClaimRecord:
        start = time.perf_counter()
        group_id, artifact_id = _require_endpoints(
            dependency.group_id,
            dependency.artifact_id,
            "Invalid codebase dependency: group_id and artifact_id are required",
        )
        coordinates = f"{group_id}:{artifact_id}"
        if dependency.version:
            coordinates = f"{coordinates}:{dependency.version}"
        claim = Claim(
            from_application=group_id,
            to_application=artifact_id,
            source=Source.CODEBASE,
            dependency_type=DependencyType.BUILD_TIME,
            confidence=ConfidenceLevel.from_score(self.scores.codebase),
            timestamp=self.clock(),
            raw_data=coordinates,
            metadata={"version": dependency.version},
        )
        record = self._store(claim, self.scores.codebase)
        log.info("Processed codebase dependency in %d ms", _elapsed_ms(start))
        return record

    def process_api_gateway_call(self, call: ApiGatewayCall) -> ClaimRecord:
        start = time.perf_counter()
        source_service, target_service = _require_endpoints(
            call.source_service,
            call.target_service,
            "Invalid API gateway call: source and target services are required",
        )
        claim = Claim(
            from_application=source_service,
            to_application=target_service,
            source=Source.API_GATEWAY,
            dependency_type=DependencyType.API_CALL,
            confidence=ConfidenceLevel.from_score(self.scores.api_gateway),
            timestamp=call.timestamp or self.clock(),
            raw_data=(
                f"{call.method or '-'} {call.endpoint or '-'} {source_service} -> {target_service}"
            ),
            metadata={
                "endpoint": call.endpoint,
                "http_method": call.method,
                "http_status": call.status,
                "response_time_ms": call.response_time_ms,
            },
        )
        record = self._store(claim, self.scores.api_gateway)
        log.info("Processed API gateway call in %d ms", _elapsed_ms(start))
        return record

    def process_claim(self, claim: Claim, score: float) -> ClaimRecord:
        """Store a claim an adapter already built, such as a configuration file line."""

        if not 0.0 <= score <= 1.0:
            raise InvalidClaimError(f"Confidence score must be within [0, 1], got {score}")
        start = time.perf_counter()
        record = self._store(claim, score)
        log.info("Processed %s claim in %d ms", claim.source, _elapsed_ms(start))
        return record

    def process_configuration_claims(self, claims: Iterable[Claim]) -> list[ClaimRecord]:
        return [self.process_claim(claim, self.scores.configuration_file) for claim in claims]

    def process_router_logs(self, entries: Iterable[RouterLogEntry]) -> list[ClaimRecord]:
        return [self.process_router_log(entry) for entry in entries]

    def process_api_gateway_calls(self, calls: Iterable[ApiGatewayCall]) -> list[ClaimRecord]:
        return [self.process_api_gateway_call(call) for call in calls]

    def _store(self, claim: Claim, score: float) -> ClaimRecord:
        from_name = self.canonicalizer.canonicalize(claim.from_application)
        to_name = self.canonicalizer.canonicalize(claim.to_application)
        with self.unit_of_work_factory() as uow:
            applications = uow.repositories.applications
            record = ClaimRecord(
                claim=claim,
                from_application=applications.find_or_create(from_name),
                to_application=applications.find_or_create(to_name),
                confidence_score=score,
                recorded_at=self.clock(),
            )
            uow.repositories.claims.add(record)
            uow.commit()
        log.debug("Stored %s as %s -> %s", claim, from_name, to_name)
        return record


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)
