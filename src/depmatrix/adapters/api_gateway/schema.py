"""Pydantic models describing the API gateway call-log payloads."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        return value.strip() or None
    return value


class GatewayBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, str_strip_whitespace=True)


class GatewayCallPayload(GatewayBaseModel):
    source_service: str = Field(alias="sourceService", min_length=1)
    target_service: str = Field(alias="targetService", min_length=1)
    timestamp: datetime | None = None
    endpoint: str | None = None
    method: str | None = None
    status: int | None = None
    response_time_ms: int | None = Field(default=None, alias="responseTimeMs", ge=0)

    @field_validator("endpoint", "method", mode="before")
    @classmethod
    def _optional_text(cls, value: object) -> object:
        return _blank_to_none(value)


class GatewayCallsPage(GatewayBaseModel):
    calls: list[GatewayCallPayload] = Field(default_factory=list)
    next_cursor: str | None = Field(default=None, alias="nextCursor")

    @field_validator("next_cursor", mode="before")
    @classmethod
    def _optional_cursor(cls, value: object) -> object:
        return _blank_to_none(value)


class ErrorResponse(GatewayBaseModel):
    error: str
    code: int | None = None
