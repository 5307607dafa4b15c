"""HTTP client dispatching quote extraction to an LLM backend."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

import requests

from tagcoder.config import AppConfig
from tagcoder.errors import ConfigurationError, ProviderError
from tagcoder.models import Provider, ProviderConfig, Tag
from tagcoder.providers.parsing import build_prompt, parse_quotes

LOGGER = logging.getLogger(__name__)

OPENAI_URL = "https://api.openai.com/v1/chat/completions"
ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"

DEFAULT_MODELS = {
    Provider.OPENAI: "gpt-4o",
    Provider.ANTHROPIC: "claude-sonnet-4-20250514",
}


class ProviderClient:
    """Send one prompt per tag to the configured backend and parse the reply."""

    def __init__(
        self,
        config: ProviderConfig,
        *,
        app_config: AppConfig | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.config = config
        self.app_config = app_config or AppConfig()
        self.session = session or requests.Session()

    @property
    def model(self) -> str:
        return self.config.model or DEFAULT_MODELS.get(self.config.provider, "")

    def analyze(self, document_text: str, tag: Tag) -> List[str]:
        """Return the quotes the backend extracted for ``tag``.

        Raises ``ProviderError`` (or ``ConfigurationError``) on any failure.
        """
        prompt = build_prompt(document_text, tag)
        LOGGER.debug("Analyzing tag %r with %s (%s)", tag.name, self.config.provider, self.model)

        try:
            match self.config.provider:
                case Provider.OPENAI:
                    content = self._call_openai(prompt)
                case Provider.ANTHROPIC:
                    content = self._call_anthropic(prompt)
                case Provider.CUSTOM:
                    content = self._call_custom(prompt)
                case _:
                    raise ConfigurationError(f"Unsupported AI provider: {self.config.provider}")
        except (AttributeError, IndexError, TypeError) as exc:
            LOGGER.error("Malformed reply from %s: %s", self.config.provider, exc)
            raise ProviderError() from exc

        if not isinstance(content, str):
            LOGGER.error("Reply from %s carries no text", self.config.provider)
            raise ProviderError()
        return parse_quotes(content)

    def _call_openai(self, prompt: str) -> str:
        data = self._post(
            OPENAI_URL,
            {
                "model": self.model,
                "messages": [{"role": "user", "content": prompt}],
                "temperature": self.app_config.temperature,
            },
            {"Authorization": f"Bearer {self.config.api_key}"},
        )
        choices = data.get("choices") or [{}]
        message = choices[0].get("message") or {}
        return message.get("content") or ""

    def _call_anthropic(self, prompt: str) -> str:
        data = self._post(
            ANTHROPIC_URL,
            {
                "model": self.model,
                "max_tokens": self.app_config.max_tokens,
                "messages": [{"role": "user", "content": prompt}],
            },
            {
                "x-api-key": self.config.api_key,
                "anthropic-version": self.app_config.anthropic_version,
            },
        )
        blocks = data.get("content") or [{}]
        return blocks[0].get("text") or ""

    def _call_custom(self, prompt: str) -> str:
        if not self.config.endpoint:
            raise ConfigurationError("Custom endpoint URL is required")

        data = self._post(
            self.config.endpoint,
            {"prompt": prompt, "model": self.config.model},
            {"Authorization": f"Bearer {self.config.api_key}"},
        )
        return data.get("response") or data.get("content") or ""

    def _post(self, url: str, payload: Dict[str, Any], headers: Dict[str, str]) -> Dict[str, Any]:
        """POST JSON and return the decoded body, normalizing every failure."""
        headers = {"Content-Type": "application/json", **headers}
        try:
            response = self.session.post(
                url, json=payload, headers=headers, timeout=self.app_config.request_timeout
            )
        except requests.RequestException as exc:
            LOGGER.error("Request to %s failed: %s", url, exc)
            raise ProviderError() from exc

        if response.status_code != 200:
            LOGGER.error("Request to %s returned HTTP %s", url, response.status_code)
            raise ProviderError()

        try:
            data = response.json()
        except ValueError as exc:
            LOGGER.error("Response from %s is not valid JSON: %s", url, exc)
            raise ProviderError() from exc

        if not isinstance(data, dict):
            LOGGER.error("Unexpected response shape from %s", url)
            raise ProviderError()
        return data
