"""Trust scores used by the claim processing engine."""

from __future__ import annotations

from typing import Final

from depmatrix.domain.ingestion import ProcessingScores

from .env import optional_env_float
from .errors import ConfigurationError

ROUTER_LOG_SCORE_ENV: Final[str] = "DEPMATRIX_CONFIDENCE_ROUTER_LOG"
CODEBASE_SCORE_ENV: Final[str] = "DEPMATRIX_CONFIDENCE_CODEBASE"
API_GATEWAY_SCORE_ENV: Final[str] = "DEPMATRIX_CONFIDENCE_API_GATEWAY"
CONFIGURATION_FILE_SCORE_ENV: Final[str] = "DEPMATRIX_CONFIDENCE_CONFIGURATION_FILE"


def get_processing_scores() -> ProcessingScores:
    defaults = ProcessingScores()
    try:
        return ProcessingScores(
            router_log=optional_env_float(ROUTER_LOG_SCORE_ENV, defaults.router_log),
            codebase=optional_env_float(CODEBASE_SCORE_ENV, defaults.codebase),
            api_gateway=optional_env_float(API_GATEWAY_SCORE_ENV, defaults.api_gateway),
            configuration_file=optional_env_float(
                CONFIGURATION_FILE_SCORE_ENV, defaults.configuration_file
            ),
        )
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc
