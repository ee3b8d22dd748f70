from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest

from depmatrix.adapters.router_log import (
    RouterLogClaimSource,
    confidence_for,
    parse_router_log_line,
)
from depmatrix.domain.model import ConfidenceLevel, DependencyType
from depmatrix.domain.ports.sources import ClaimSource, ClaimSourceError
from tests.helpers.claims import BASE_TIME, fixed_clock

if TYPE_CHECKING:
    from pathlib import Path

STRUCTURED = (
    "2024-01-15 10:30:45 [INFO] 192.168.1.100 -> 192.168.1.200:8080 GET /api/users 200 45ms"
)


def _write_log(tmp_path: Path, *lines: str) -> Path:
    path = tmp_path / "router.log"
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def test_parse_structured_line() -> None:
    entry = parse_router_log_line(STRUCTURED)

    assert entry is not None
    assert entry.source_ip == "192.168.1.100"
    assert entry.target_ip == "192.168.1.200"
    assert entry.target_port == "8080"
    assert entry.method == "GET"
    assert entry.path == "/api/users"
    assert entry.status == 200
    assert entry.response_time_ms == 45
    assert entry.timestamp == datetime(2024, 1, 15, 10, 30, 45, tzinfo=UTC)


def test_parse_simple_line() -> None:
    entry = parse_router_log_line("  web-portal -> user-service ")

    assert entry is not None
    assert (entry.source_ip, entry.target_ip) == ("web-portal", "user-service")
    assert entry.timestamp is None
    assert entry.status is None


def test_parse_blank_line_returns_none() -> None:
    assert parse_router_log_line("   \n") is None


@pytest.mark.parametrize("line", ["garbage", "a -> ", "a -> b -> c"])
def test_parse_rejects_unrecognized_lines(line: str) -> None:
    with pytest.raises(ValueError, match="Unrecognized router log line"):
        parse_router_log_line(line)


@pytest.mark.parametrize(
    ("status", "elapsed", "expected"),
    [
        (200, 45, ConfidenceLevel.VERY_HIGH),
        (200, 1500, ConfidenceLevel.HIGH),
        (204, 10, ConfidenceLevel.HIGH),
        (404, 10, ConfidenceLevel.MEDIUM),
        (503, 10, ConfidenceLevel.LOW),
        (None, None, ConfidenceLevel.HIGH),
    ],
)
def test_confidence_for_status(
    status: int | None,
    elapsed: int | None,
    expected: ConfidenceLevel,
) -> None:
    assert confidence_for(status, elapsed) is expected


def test_claims_resolve_hosts_and_keep_raw_lines(tmp_path: Path) -> None:
    path = _write_log(tmp_path, STRUCTURED, "", "web-portal -> user-service")
    source = RouterLogClaimSource(
        path,
        hosts={"192.168.1.100": "web-portal", "192.168.1.200": "user-service"},
        clock=fixed_clock(),
    )

    structured, simple = source.claims()

    assert isinstance(source, ClaimSource)
    assert (structured.from_application, structured.to_application) == (
        "web-portal",
        "user-service",
    )
    assert structured.source == "router-log"
    assert structured.dependency_type is DependencyType.RUNTIME
    assert structured.confidence is ConfidenceLevel.VERY_HIGH
    assert structured.raw_data == STRUCTURED
    assert structured.metadata["target_port"] == "8080"
    assert structured.metadata["http_method"] == "GET"
    assert simple.metadata == {"log_format": "simple"}
    assert simple.timestamp == BASE_TIME


def test_unknown_addresses_get_stable_names(tmp_path: Path) -> None:
    source = RouterLogClaimSource(_write_log(tmp_path, STRUCTURED))

    (claim,) = source.claims()

    assert claim.from_application == "service-192-168-1-100"
    assert claim.to_application == "service-192-168-1-200"


def test_unparseable_lines_are_counted_and_logged(
    tmp_path: Path,
    caplog: pytest.LogCaptureFixture,
) -> None:
    source = RouterLogClaimSource(_write_log(tmp_path, "not a log line", "a -> b"))
    caplog.set_level("WARNING", logger="depmatrix.adapters.router_log")

    claims = source.claims()

    assert len(claims) == 1
    assert source.skipped == 1
    assert any("line 1" in message for message in caplog.messages)


def test_missing_file_raises_claim_source_error(tmp_path: Path) -> None:
    source = RouterLogClaimSource(tmp_path / "missing.log")

    with pytest.raises(ClaimSourceError) as excinfo:
        source.claims()

    assert excinfo.value.source == "router-log"


def test_undecodable_lines_are_skipped(tmp_path: Path) -> None:
    path = tmp_path / "router.log"
    path.write_bytes(b"web-portal -> user-service\norders -> caf\xe9-db\nbilling -> ledger\n")
    source = RouterLogClaimSource(path)

    claims = source.claims()

    assert [claim.to_application for claim in claims] == ["user-service", "ledger"]
    assert source.skipped == 1
