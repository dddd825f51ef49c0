"""Application-level exception types for flare-ai."""

from __future__ import annotations


class FlareError(Exception):
    """Base exception for flare-ai."""


class ConfigurationError(FlareError):
    """Base exception for configuration errors raised before any request is sent."""


class AiDisabledError(ConfigurationError):
    """Raised when AI features are switched off in settings."""


class ApiKeyNotConfiguredError(ConfigurationError):
    """Raised when the provider needs an API key and none is stored."""


class TransportError(FlareError):
    """Raised when the provider cannot be reached or answers with a non-success status.

    Transport failures abort the whole ask and are never retried.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UsageFetchError(FlareError):
    """Raised when generation stats cannot be fetched or parsed."""
