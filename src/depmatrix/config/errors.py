"""Configuration error definitions."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Raised when configuration values are invalid.

    ``origin`` names where the bad value came from (an environment variable or
    a config file path) when that is known.
    """

    def __init__(self, message: str, *, origin: str | None = None) -> None:
        super().__init__(f"{origin}: {message}" if origin else message)
        self.origin = origin


class MissingConfigurationError(ConfigurationError):
    """Raised when required configuration values are absent or blank."""
