from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from depmatrix.app import IngestResult, ReconcileResult
from depmatrix.config import ReconciliationConfig
from depmatrix.domain.reconciliation import ClaimNormalizer, detect_all_conflicts
from depmatrix.ui import cli as cli_module
from tests.helpers.claims import fixed_clock, make_claim

if TYPE_CHECKING:
    from collections.abc import Sequence


def _conflicting_result() -> ReconcileResult:
    claims = [
        make_claim("web-portal", "mysql-primary", metadata={"target_port": "3306"}),
        make_claim("web-portal", "mysql-service", metadata={"target_port": "3307"}),
    ]
    return ReconcileResult(
        claims=claims,
        normalized=ClaimNormalizer(clock=fixed_clock()).normalize_claims(claims),
        conflicts=detect_all_conflicts(claims),
    )


@pytest.fixture
def captured_reconcile(monkeypatch: pytest.MonkeyPatch) -> dict[str, object]:
    captured: dict[str, object] = {}

    def fake_build_sources(**kwargs: object) -> list[object]:
        captured.update(kwargs)
        return ["source"]

    def fake_reconcile(sources: Sequence[object], *, config: ReconciliationConfig) -> ReconcileResult:
        captured["sources"] = sources
        captured["config"] = config
        return _conflicting_result()

    monkeypatch.setattr(cli_module, "build_sources", fake_build_sources)
    monkeypatch.setattr(cli_module, "reconcile", fake_reconcile)
    return captured


def test_reconcile_passes_inputs_to_sources(
    captured_reconcile: dict[str, object],
    capsys: pytest.CaptureFixture[str],
) -> None:
    cli_module.main(
        [
            "reconcile",
            "--router-log",
            "router.log",
            "--config-file",
            "web-portal=portal.properties",
            "--host",
            "10.0.0.1=web-portal",
            "--gateway",
            "--since",
            "2024-01-15T12:30:00+02:00",
        ]
    )

    assert captured_reconcile["router_logs"] == [Path("router.log")]
    assert captured_reconcile["configuration_files"] == [("web-portal", Path("portal.properties"))]
    assert captured_reconcile["hosts"] == {"10.0.0.1": "web-portal"}
    assert captured_reconcile["gateway"] is True
    assert captured_reconcile["since"] == datetime(2024, 1, 15, 10, 30, tzinfo=UTC)
    assert captured_reconcile["sources"] == ["source"]
    assert isinstance(captured_reconcile["config"], ReconciliationConfig)
    output = capsys.readouterr().out
    assert "Dependencies (1):" in output
    assert "web-portal-service -> mysql-database" in output
    assert "Conflicts (1):" in output
    assert "Value Mismatch" in output


def test_reconcile_json_output(
    captured_reconcile: dict[str, object],
    capsys: pytest.CaptureFixture[str],
) -> None:
    _ = captured_reconcile

    cli_module.main(["reconcile", "--router-log", "router.log", "--format", "json"])

    payload = json.loads(capsys.readouterr().out)
    (dependency,) = payload["dependencies"]
    assert dependency["from"] == "web-portal-service"
    assert dependency["to"] == "mysql-database"
    assert dependency["sources"] == ["configuration-file"]
    (conflict,) = payload["conflicts"]
    assert conflict["type"] == "value_mismatch"
    assert conflict["details"]["target_port"] == "3306, 3307"


def test_conflicts_only_output(
    captured_reconcile: dict[str, object],
    capsys: pytest.CaptureFixture[str],
) -> None:
    _ = captured_reconcile

    cli_module.main(["reconcile", "--router-log", "router.log", "--conflicts-only"])

    output = capsys.readouterr().out
    assert "Dependencies" not in output
    assert output.startswith("Conflicts (1):")
    assert output.count("web-portal-service -> mysql-database") == 1


def test_reconcile_requires_an_input() -> None:
    with pytest.raises(SystemExit) as exc:
        cli_module.main(["reconcile"])

    assert exc.value.code == 2


@pytest.mark.parametrize(
    "argv",
    [
        ["reconcile", "--router-log", "r.log", "--since", "yesterday"],
        ["reconcile", "--config-file", "portal.properties"],
        ["reconcile", "--router-log", "r.log", "--host", "10.0.0.1"],
        ["ingest"],
        ["unknown-command"],
    ],
)
def test_invalid_arguments_exit_with_usage_error(argv: list[str]) -> None:
    with pytest.raises(SystemExit) as exc:
        cli_module.main(argv)

    assert exc.value.code == 2


def test_invalid_config_file_exits_with_usage_error(tmp_path: Path) -> None:
    config = tmp_path / "bad.toml"
    config.write_text("[aliases\n", encoding="utf-8")

    with pytest.raises(SystemExit) as exc:
        cli_module.main(["--config", str(config), "reconcile", "--router-log", "r.log"])

    assert exc.value.code == 2


def test_ingest_router_log(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_ingest(path: Path, **kwargs: object) -> IngestResult:
        captured["path"] = path
        captured.update(kwargs)
        return IngestResult(stored=2, skipped=1)

    monkeypatch.setattr(cli_module, "ingest_router_log", fake_ingest)

    cli_module.main(["ingest", "--router-log", "router.log", "--host", "10.0.0.2=user-service"])

    assert captured["path"] == Path("router.log")
    assert captured["hosts"] == {"10.0.0.2": "user-service"}


def test_ingest_configuration_files(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[tuple[str, Path]] = []

    def fake_ingest(application: str, path: Path, **_: object) -> IngestResult:
        calls.append((application, path))
        return IngestResult(stored=3)

    monkeypatch.setattr(cli_module, "ingest_configuration_file", fake_ingest)

    cli_module.main(
        [
            "ingest",
            "--config-file",
            "web-portal=portal.properties",
            "--config-file",
            "order-processor=orders.properties",
        ]
    )

    assert calls == [
        ("web-portal", Path("portal.properties")),
        ("order-processor", Path("orders.properties")),
    ]


def test_ingest_gateway(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_ingest(**kwargs: object) -> IngestResult:
        captured.update(kwargs)
        return IngestResult(stored=5)

    monkeypatch.setattr(cli_module, "ingest_gateway_calls", fake_ingest)

    cli_module.main(["ingest", "--gateway", "--since", "2024-01-15T10:30:00Z"])

    assert captured["since"] == datetime(2024, 1, 15, 10, 30, tzinfo=UTC)


def test_conflicts_command_renders_stored_history(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.setattr(
        cli_module,
        "detect_stored_conflicts",
        lambda **_: _conflicting_result(),
    )

    cli_module.main(["conflicts", "--format", "json", "--conflicts-only"])

    payload = json.loads(capsys.readouterr().out)
    assert list(payload) == ["conflicts"]
    assert payload["conflicts"][0]["severity"] == "MEDIUM"


def test_failures_exit_with_error(monkeypatch: pytest.MonkeyPatch) -> None:
    def failing(**_: object) -> ReconcileResult:
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(cli_module, "detect_stored_conflicts", failing)

    with pytest.raises(SystemExit) as exc:
        cli_module.main(["conflicts"])

    assert exc.value.code == 1


def test_render_empty_result_as_text() -> None:
    rendered = cli_module.render(ReconcileResult(), output_format="text", conflicts_only=False)

    assert rendered == "Dependencies (0):\nConflicts (0):"
