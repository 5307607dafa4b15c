"""Core tagcoder data models."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Tuple

from tagcoder.errors import ConfigurationError


class TagStatus(str, Enum):
    IDLE = "idle"
    PROCESSING = "processing"
    COMPLETED = "completed"
    NO_RESULTS = "no-results"
    ERROR = "error"


class Provider(str, Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    CUSTOM = "custom"


@dataclass(frozen=True, slots=True)
class Tag:
    """A named concept to search for in a document.

    Tags are immutable; every state change produces a new instance via
    ``dataclasses.replace``.
    """

    id: str
    name: str
    description: str
    status: TagStatus = TagStatus.IDLE
    quotes: Tuple[str, ...] = ()
    fingerprint: str | None = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "status": self.status.value,
            "quotes": list(self.quotes),
            "fingerprint": self.fingerprint,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Tag":
        return cls(
            id=str(data.get("id") or uuid.uuid4().hex),
            name=data["name"],
            description=data.get("description", ""),
            status=TagStatus(data.get("status") or TagStatus.IDLE.value),
            quotes=tuple(data.get("quotes") or ()),
            fingerprint=data.get("fingerprint") or None,
        )


@dataclass(frozen=True, slots=True)
class Document:
    """Plain text extracted from an uploaded file."""

    name: str
    content: str
    page_count: int


@dataclass(frozen=True, slots=True)
class ProviderConfig:
    """Resolved settings for one LLM backend."""

    api_key: str
    provider: Provider = Provider.OPENAI
    model: str = ""
    endpoint: str | None = None

    def validate(self) -> "ProviderConfig":
        """Raise ``ConfigurationError`` unless the configuration is usable."""
        if not self.api_key or not self.api_key.strip():
            raise ConfigurationError("An API key is required")
        if not isinstance(self.provider, Provider):
            raise ConfigurationError(f"Unsupported AI provider: {self.provider}")
        if self.provider is Provider.CUSTOM and not self.endpoint:
            raise ConfigurationError("Custom endpoint URL is required")
        return self


@dataclass(frozen=True, slots=True)
class AnalysisProgress:
    current_tag_index: int = 0
    total_tags: int = 0
    is_processing: bool = False
    has_error: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_tag_index": self.current_tag_index,
            "total_tags": self.total_tags,
            "is_processing": self.is_processing,
            "has_error": self.has_error,
        }
