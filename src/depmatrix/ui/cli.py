# ruff: noqa: T201

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from depmatrix.app import (
    build_sources,
    detect_stored_conflicts,
    ingest_configuration_file,
    ingest_gateway_calls,
    ingest_router_log,
    reconcile,
)
from depmatrix.config import ConfigurationError, configure_logging, get_reconciliation_config

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from depmatrix.app import ReconcileResult
    from depmatrix.domain.model import NormalizedClaim
    from depmatrix.domain.reconciliation import ConflictReport

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile application dependency claims")
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Reconciliation TOML file (defaults to $DEPMATRIX_CONFIG)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    reconcile_cmd = subparsers.add_parser(
        "reconcile", help="Normalize claims from live sources and report conflicts"
    )
    reconcile_cmd.add_argument(
        "--router-log",
        type=Path,
        action="append",
        default=[],
        help="Router log file to read (repeatable)",
    )
    reconcile_cmd.add_argument(
        "--config-file",
        type=str,
        action="append",
        default=[],
        metavar="APP=PATH",
        help="Configuration file owned by APP (repeatable)",
    )
    reconcile_cmd.add_argument(
        "--host",
        type=str,
        action="append",
        default=[],
        metavar="IP=NAME",
        help="Map a router log address to a service name (repeatable)",
    )
    reconcile_cmd.add_argument(
        "--gateway",
        action="store_true",
        help="Also poll the API gateway call log",
    )
    reconcile_cmd.add_argument(
        "--since",
        type=str,
        help="ISO-8601 timestamp (UTC); only gateway calls after it are fetched",
    )
    _add_output_arguments(reconcile_cmd)

    ingest = subparsers.add_parser("ingest", help="Store raw observations in the claim history")
    ingest.add_argument(
        "--router-log",
        type=Path,
        help="Router log file to ingest",
    )
    ingest.add_argument(
        "--config-file",
        type=str,
        action="append",
        default=[],
        metavar="APP=PATH",
        help="Configuration file owned by APP to ingest (repeatable)",
    )
    ingest.add_argument(
        "--host",
        type=str,
        action="append",
        default=[],
        metavar="IP=NAME",
        help="Map a router log address to a service name (repeatable)",
    )
    ingest.add_argument(
        "--gateway",
        action="store_true",
        help="Poll the API gateway call log once and store the calls",
    )
    ingest.add_argument(
        "--since",
        type=str,
        help="ISO-8601 timestamp (UTC); only gateway calls after it are fetched",
    )

    conflicts = subparsers.add_parser("conflicts", help="Report conflicts in the stored claims")
    _add_output_arguments(conflicts)

    return parser.parse_args(list(argv))


def _add_output_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--format",
        choices=("text", "json"),
        default="text",
        help="Output format (default: %(default)s)",
    )
    parser.add_argument(
        "--conflicts-only",
        action="store_true",
        help="Only print conflict reports",
    )


def _parse_iso_datetime(value: str) -> datetime:
    try:
        normalized = value.strip()
        if normalized.endswith("Z"):
            normalized = normalized[:-1] + "+00:00"
        dt = datetime.fromisoformat(normalized)
    except ValueError as exc:
        raise ValueError(f"Invalid ISO timestamp: {value}") from exc
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def _parse_pairs(values: Sequence[str], *, label: str) -> list[tuple[str, str]]:
    pairs: list[tuple[str, str]] = []
    for value in values:
        key, sep, rest = value.partition("=")
        if not sep or not key.strip() or not rest.strip():
            raise ValueError(f"Expected {label}, got {value!r}")
        pairs.append((key.strip(), rest.strip()))
    return pairs


def _require_inputs(args: argparse.Namespace, assignments: Sequence[tuple[str, Path]]) -> None:
    if args.command == "reconcile" and not (args.router_log or assignments or args.gateway):
        raise ValueError("Nothing to reconcile: pass --router-log, --config-file or --gateway")
    if args.command == "ingest" and not (args.router_log or assignments or args.gateway):
        raise ValueError("Nothing to ingest: pass --router-log, --config-file or --gateway")


def _claim_to_dict(claim: NormalizedClaim) -> dict[str, object]:
    return {
        "from": claim.from_application,
        "to": claim.to_application,
        "type": claim.dependency_type.value,
        "confidence": claim.confidence.name,
        "sources": list(claim.sources),
        "timestamp": claim.timestamp.isoformat(),
        "metadata": dict(claim.metadata),
    }


def _conflict_to_dict(report: ConflictReport) -> dict[str, object]:
    return {
        "type": report.type.value,
        "severity": report.severity.name,
        "edge": str(report.edge),
        "description": report.description,
        "sources": list(report.sources),
        "details": dict(report.details),
    }


def render(result: ReconcileResult, *, output_format: str, conflicts_only: bool) -> str:
    if output_format == "json":
        payload: dict[str, object] = {
            "conflicts": [_conflict_to_dict(report) for report in result.conflicts]
        }
        if not conflicts_only:
            payload["dependencies"] = [_claim_to_dict(claim) for claim in result.normalized]
        return json.dumps(payload, indent=2, sort_keys=True)

    lines: list[str] = []
    if not conflicts_only:
        lines.append(f"Dependencies ({len(result.normalized)}):")
        lines.extend(
            f"  {claim.edge} [{claim.confidence.display_name}] "
            f"sources={','.join(claim.sources)}"
            for claim in result.normalized
        )
    lines.append(f"Conflicts ({len(result.conflicts)}):")
    lines.extend(f"  {report}" for report in result.conflicts)
    return "\n".join(lines)


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args: argparse.Namespace
    try:
        parsed_args = _parse_args(args_list)
        configure_logging(
            level=logging.DEBUG if parsed_args.verbose else logging.INFO,
            force=parsed_args.verbose,
        )
        config = get_reconciliation_config(parsed_args.config)
        since = _parse_iso_datetime(parsed_args.since) if getattr(parsed_args, "since", None) else None
        hosts = dict(_parse_pairs(getattr(parsed_args, "host", []), label="IP=NAME"))
        assignments = [
            (application, Path(path))
            for application, path in _parse_pairs(
                getattr(parsed_args, "config_file", []), label="APP=PATH"
            )
        ]
        _require_inputs(parsed_args, assignments)
    except (ValueError, ConfigurationError):
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.command == "reconcile":
            sources = build_sources(
                router_logs=parsed_args.router_log,
                configuration_files=assignments,
                hosts=hosts,
                gateway=parsed_args.gateway,
                since=since,
            )
            result = reconcile(sources, config=config)
            print(
                render(
                    result,
                    output_format=parsed_args.format,
                    conflicts_only=parsed_args.conflicts_only,
                )
            )
        elif parsed_args.command == "ingest":
            if parsed_args.router_log is not None:
                ingested = ingest_router_log(parsed_args.router_log, hosts=hosts, config=config)
                log.info("Stored %d claims (%d lines skipped)", ingested.stored, ingested.skipped)
            for application, path in assignments:
                ingested = ingest_configuration_file(application, path, config=config)
                log.info(
                    "Stored %d configuration claims for %s (%d lines skipped)",
                    ingested.stored,
                    application,
                    ingested.skipped,
                )
            if parsed_args.gateway:
                ingested = ingest_gateway_calls(since=since, config=config)
                log.info("Stored %d gateway claims", ingested.stored)
        elif parsed_args.command == "conflicts":
            result = detect_stored_conflicts(config=config)
            print(
                render(
                    result,
                    output_format=parsed_args.format,
                    conflicts_only=parsed_args.conflicts_only,
                )
            )
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
