"""HTTP client for the API gateway call log."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING, cast

from pydantic import ValidationError

from depmatrix.adapters.http_resilience import ResilientClient
from depmatrix.config.gateway import GatewayConfig, get_gateway_config

from .schema import ErrorResponse, GatewayCallsPage
from .translator import parse_gateway_call

if TYPE_CHECKING:
    from collections.abc import Callable

    from depmatrix.config.http_resilience import ResilienceConfig
    from depmatrix.domain.model import ApiGatewayCall

log = getLogger(__name__)

CALLS_PATH = "calls"


class ApiGatewayError(RuntimeError):
    """Raised when the gateway returns an application-level error or a malformed payload."""

    def __init__(self, message: str, *, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


def _isoformat(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat()


@dataclass(slots=True)
class ApiGatewayClient:
    config: GatewayConfig = field(default_factory=get_gateway_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )

    def fetch_calls(
        self,
        *,
        since: datetime | None = None,
        max_calls: int | None = None,
    ) -> list[ApiGatewayCall]:
        """Fetch logged calls page by page, oldest first."""

        return asyncio.run(self._fetch_calls_async(since=since, max_calls=max_calls))

    async def _fetch_calls_async(
        self,
        *,
        since: datetime | None,
        max_calls: int | None,
    ) -> list[ApiGatewayCall]:
        calls: list[ApiGatewayCall] = []
        cursor: str | None = None
        pages = 0
        seen_cursors: set[str] = set()

        async with self.client_factory(self.config.resilience) as client:
            while True:
                page = await self._request_page(client, since=since, cursor=cursor)
                pages += 1
                for payload in page.calls:
                    calls.append(parse_gateway_call(payload))
                    if max_calls is not None and len(calls) >= max_calls:
                        log.info("Fetched %d gateway calls (limit reached)", len(calls))
                        return calls
                if page.next_cursor is None:
                    break
                if page.next_cursor in seen_cursors:
                    log.warning("Gateway repeated cursor %r; stopping pagination", page.next_cursor)
                    break
                seen_cursors.add(page.next_cursor)
                cursor = page.next_cursor

        log.info("Fetched %d gateway calls in %d pages", len(calls), pages)
        return calls

    async def _request_page(
        self,
        client: ResilientClient,
        *,
        since: datetime | None,
        cursor: str | None,
    ) -> GatewayCallsPage:
        params: dict[str, str] = {"limit": str(self.config.page_size)}
        if since is not None:
            params["since"] = _isoformat(since)
        if cursor is not None:
            params["cursor"] = cursor

        response = await client.get(CALLS_PATH, params=params)
        response.raise_for_status()
        payload = response.json()

        if isinstance(payload, dict) and "error" in payload:
            error = ErrorResponse.model_validate(cast("dict[str, object]", payload))
            raise ApiGatewayError(error.error, code=error.code)

        try:
            return GatewayCallsPage.model_validate(payload)
        except ValidationError as exc:
            raise ApiGatewayError(f"Malformed gateway payload: {exc}") from exc
