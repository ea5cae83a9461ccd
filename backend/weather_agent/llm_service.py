"""
llm_service.py
~~~~~~~~~~~~~~
Text-generation backends, posted directly with httpx.

    backend = create_backend(settings)
    text = await backend.generate(user_message)

Every failure – transport, non-200, or a body without text – surfaces as
:class:`GenerationError` carrying the provider and HTTP status.
"""

from __future__ import annotations

import abc
import logging
from typing import Final

import httpx

from .api_logging import logged_request_async
from .config import Settings
from .errors import GenerationError

LOG = logging.getLogger("llm_service")

ANTHROPIC_URL: Final = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION: Final = "2023-06-01"
OPENAI_URL: Final = "https://api.openai.com/v1/chat/completions"
MAX_TOKENS: Final = 500


class LLMBackend(abc.ABC):
    """Shared plumbing: one JSON POST, one text extraction."""

    provider = ""
    url = ""

    def __init__(
        self,
        api_key: str,
        model: str,
        *,
        temperature: float = 0.7,
        system_prompt: str = "",
        timeout: float = 30.0,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.system_prompt = system_prompt
        self.timeout = timeout

    @abc.abstractmethod
    def headers(self) -> dict[str, str]: ...

    @abc.abstractmethod
    def body(self, user_message: str) -> dict: ...

    @abc.abstractmethod
    def extract(self, data: dict) -> str: ...

    async def generate(self, user_message: str) -> str:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await logged_request_async(
                    client,
                    "post",
                    self.url,
                    json=self.body(user_message),
                    headers=self.headers(),
                    raise_for_status=False,
                )
        except httpx.HTTPError as exc:
            raise GenerationError(f"request failed: {exc!r}", provider=self.provider) from exc

        if resp.status_code != 200:
            raise GenerationError(
                f"API error (status {resp.status_code}): {resp.text[:200]}",
                provider=self.provider,
                status=resp.status_code,
            )

        try:
            text = self.extract(resp.json())
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise GenerationError(
                f"unparseable response: {exc!r}", provider=self.provider, status=200
            ) from exc

        if not text or not text.strip():
            raise GenerationError("no content in response", provider=self.provider, status=200)
        return text


class AnthropicBackend(LLMBackend):
    provider = "anthropic"
    url = ANTHROPIC_URL

    def headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }

    def body(self, user_message: str) -> dict:
        return {
            "model": self.model,
            "system": self.system_prompt,
            "messages": [{"role": "user", "content": user_message}],
            "temperature": self.temperature,
            "max_tokens": MAX_TOKENS,
        }

    def extract(self, data: dict) -> str:
        return data["content"][0]["text"]


class OpenAIBackend(LLMBackend):
    provider = "openai"
    url = OPENAI_URL

    def headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    def body(self, user_message: str) -> dict:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": self.system_prompt},
                {"role": "user", "content": user_message},
            ],
            "temperature": self.temperature,
            "max_tokens": MAX_TOKENS,
        }

    def extract(self, data: dict) -> str:
        return data["choices"][0]["message"]["content"]


BACKENDS: Final = {
    "anthropic": AnthropicBackend,
    "openai": OpenAIBackend,
}


def create_backend(settings: Settings) -> LLMBackend:
    """Instantiate the backend named by ``settings.llm_provider``."""
    provider = settings.llm_provider.strip().lower()
    cls = BACKENDS.get(provider)
    if cls is None:
        raise GenerationError(f"unsupported LLM provider: {settings.llm_provider!r}")
    if not settings.llm_api_key:
        LOG.warning("LLM_API_KEY is empty – %s calls will be rejected", provider)
    return cls(
        settings.llm_api_key,
        settings.llm_model,
        temperature=settings.llm_temperature,
        system_prompt=settings.system_prompt,
        timeout=settings.llm_timeout_s,
    )
