"""Exception hierarchy shared by tagcoder components."""

from __future__ import annotations

NO_CONTENT_MESSAGE = (
    "No content returned from the API. Please double-check for typos in your configuration!"
)


class TagcoderError(Exception):
    """Base class for all tagcoder errors."""


class DocumentParseError(TagcoderError):
    """Raised when a source document cannot be turned into text."""


class ProviderError(TagcoderError):
    """Raised when an LLM backend fails to produce a usable reply."""

    def __init__(self, message: str = NO_CONTENT_MESSAGE) -> None:
        super().__init__(message)


class ConfigurationError(ProviderError):
    """Raised for missing or invalid provider configuration."""
