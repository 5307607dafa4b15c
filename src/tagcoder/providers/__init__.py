"""LLM backends that extract quotes for a tag."""

from tagcoder.providers.client import DEFAULT_MODELS, ProviderClient
from tagcoder.providers.parsing import NO_MATCHES, build_prompt, parse_quotes

__all__ = ["DEFAULT_MODELS", "NO_MATCHES", "ProviderClient", "build_prompt", "parse_quotes"]
