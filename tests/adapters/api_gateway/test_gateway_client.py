"""Gateway client checks over an in-process transport."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import httpx
import pytest

from depmatrix.adapters.api_gateway import ApiGatewayClient, ApiGatewayError
from depmatrix.adapters.http_resilience import ResilientClient
from depmatrix.config.gateway import GatewayConfig
from depmatrix.config.http_resilience import RateLimit, ResilienceConfig

if TYPE_CHECKING:
    from collections.abc import Callable

BASE_URL = "https://gateway.test"


def _client(
    handler: Callable[[httpx.Request], httpx.Response],
    *,
    page_size: int = 2,
) -> ApiGatewayClient:
    resilience = ResilienceConfig(
        name="api-gateway-test",
        base_url=BASE_URL,
        timeout_seconds=1.0,
        ratelimit=RateLimit(max_calls=100, per_seconds=1.0),
        default_headers={"Authorization": "Bearer secret"},
    )
    config = GatewayConfig(
        base_url=BASE_URL,
        token="secret",
        resilience=resilience,
        page_size=page_size,
    )
    transport = httpx.MockTransport(handler)
    return ApiGatewayClient(
        config=config,
        client_factory=lambda cfg: ResilientClient(cfg, transport=transport),
    )


def _call(source: str, target: str, **extra: object) -> dict[str, object]:
    return {"sourceService": source, "targetService": target, **extra}


def test_fetch_calls_follows_cursor() -> None:
    requests: list[httpx.Request] = []
    pages = {
        None: {
            "calls": [
                _call(
                    "web-portal",
                    "user-service",
                    timestamp="2024-01-15T10:30:00Z",
                    endpoint="/api/users",
                    method="get",
                    status=200,
                    responseTimeMs=45,
                ),
                _call("web-portal", "payment-service"),
            ],
            "nextCursor": "page-2",
        },
        "page-2": {"calls": [_call("order-processor", "kafka-cluster")], "nextCursor": ""},
    }

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        assert request.url.path == "/calls"
        assert request.headers["Authorization"] == "Bearer secret"
        return httpx.Response(200, json=pages[request.url.params.get("cursor")])

    calls = _client(handler).fetch_calls()

    assert [(call.source_service, call.target_service) for call in calls] == [
        ("web-portal", "user-service"),
        ("web-portal", "payment-service"),
        ("order-processor", "kafka-cluster"),
    ]
    first = calls[0]
    assert first.timestamp == datetime(2024, 1, 15, 10, 30, tzinfo=UTC)
    assert first.method == "GET"
    assert first.status == 200
    assert first.response_time_ms == 45
    assert calls[1].timestamp is None
    assert [request.url.params.get("limit") for request in requests] == ["2", "2"]
    assert [request.url.params.get("cursor") for request in requests] == [None, "page-2"]


def test_fetch_calls_sends_since_parameter() -> None:
    seen: dict[str, str | None] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["since"] = request.url.params.get("since")
        return httpx.Response(200, json={"calls": []})

    calls = _client(handler).fetch_calls(since=datetime(2024, 1, 15, 10, 30, tzinfo=UTC))

    assert calls == []
    assert seen["since"] == "2024-01-15T10:30:00+00:00"


def test_fetch_calls_stops_at_max_calls() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            200,
            json={"calls": [_call("a", "b"), _call("a", "c")], "nextCursor": "more"},
        )

    calls = _client(handler).fetch_calls(max_calls=3)

    assert len(calls) == 3
    assert len(requests) == 2


def test_error_payload_raises_gateway_error() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"error": "token expired", "code": 17})

    with pytest.raises(ApiGatewayError, match="token expired") as excinfo:
        _client(handler).fetch_calls()

    assert excinfo.value.code == 17


def test_malformed_payload_raises_gateway_error() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"calls": [{"sourceService": "", "targetService": "b"}]})

    with pytest.raises(ApiGatewayError, match="Malformed gateway payload"):
        _client(handler).fetch_calls()


def test_http_errors_propagate() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"detail": "not found"})

    with pytest.raises(httpx.HTTPStatusError):
        _client(handler).fetch_calls()


def test_repeated_cursor_stops_pagination() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"calls": [_call("a", "b")], "nextCursor": "stuck"})

    calls = _client(handler).fetch_calls()

    assert len(calls) == 2
    assert [request.url.params.get("cursor") for request in requests] == [None, "stuck"]
