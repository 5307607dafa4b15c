"""Application configuration defaults."""

from __future__ import annotations

from dataclasses import dataclass

from tagcoder.errors import ConfigurationError
from tagcoder.models import Provider, ProviderConfig


@dataclass(slots=True)
class AppConfig:
    request_delay: float = 1.0
    request_timeout: float = 60.0
    temperature: float = 0.1
    max_tokens: int = 4096
    anthropic_version: str = "2023-06-01"


def build_provider_config(
    api_key: str | None,
    provider: str = Provider.OPENAI.value,
    model: str | None = None,
    endpoint: str | None = None,
) -> ProviderConfig:
    """Assemble and validate a ``ProviderConfig`` from loose option values.

    Raises ``ConfigurationError`` when the values cannot form a usable
    configuration.
    """
    try:
        backend = Provider(provider.strip().lower())
    except ValueError as exc:
        raise ConfigurationError(f"Unsupported AI provider: {provider}") from exc

    config = ProviderConfig(
        api_key=(api_key or "").strip(),
        provider=backend,
        model=(model or "").strip(),
        endpoint=(endpoint or "").strip() or None,
    )
    return config.validate()
