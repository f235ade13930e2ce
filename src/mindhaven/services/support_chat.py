"""Client for the remote text-generation service behind the support chatbot.

The chatbot is a thin conversation relay: the recent turns are flattened
into a single prompt, posted to the configured model's ``generateContent``
endpoint, and the first candidate's text is returned. Rate limiting (429)
and overload (503) responses are retried with a linear backoff.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import httpx

from mindhaven.core.settings import settings

# Configure logger for this module
logger = logging.getLogger(__name__)

# HTTP status codes
HTTP_TOO_MANY_REQUESTS = 429
HTTP_SERVICE_UNAVAILABLE = 503
HTTP_BAD_REQUEST = 400

RETRYABLE_STATUSES = frozenset({HTTP_TOO_MANY_REQUESTS, HTTP_SERVICE_UNAVAILABLE})
CONTEXT_TURNS = 10
DEFAULT_BOT_NAME = "Haven"


class SupportChatError(RuntimeError):
    """Base exception for support chatbot failures."""


class SupportChatDisabledError(SupportChatError):
    """Raised when the chatbot is called while disabled or unconfigured."""


class SupportChatRateLimitedError(SupportChatError):
    """Raised when the service still rate limits after every retry."""


@dataclass(frozen=True)
class SupportChatConfig:
    """Immutable configuration for chatbot requests."""

    enabled: bool
    base_url: str
    model: str
    api_key: str | None
    timeout_seconds: float
    max_retries: int
    backoff_seconds: float
    system_prompt: str
    max_output_tokens: int
    temperature: float


@dataclass(frozen=True)
class ChatTurn:
    """One message in a chatbot conversation."""

    role: str
    content: str


def load_support_chat_config() -> SupportChatConfig:
    """Build configuration object from global settings."""

    return SupportChatConfig(
        enabled=bool(settings.support_chat_enabled and settings.support_chat_api_key),
        base_url=settings.support_chat_base_url.rstrip("/"),
        model=settings.support_chat_model,
        api_key=settings.support_chat_api_key,
        timeout_seconds=float(settings.support_chat_timeout_seconds),
        max_retries=max(0, settings.support_chat_max_retries),
        backoff_seconds=float(settings.support_chat_backoff_seconds),
        system_prompt=settings.support_chat_system_prompt,
        max_output_tokens=settings.support_chat_max_output_tokens,
        temperature=settings.support_chat_temperature,
    )


def build_prompt(
    history: Sequence[ChatTurn], message: str, system_prompt: str, bot_name: str
) -> str:
    """Flatten the recent conversation and the new message into one prompt."""
    lines = [f"{'User' if turn.role == 'user' else bot_name}: {turn.content}"
             for turn in history[-CONTEXT_TURNS:]]
    parts = []
    if system_prompt:
        parts.append(system_prompt.format(bot_name=bot_name))
    if lines:
        parts.append("Previous conversation:\n" + "\n".join(lines))
    parts.append(f"User's latest message: {message}")
    return "\n\n".join(parts)


class SupportChatClient:
    """HTTP client wrapper for the support chatbot model."""

    def __init__(
        self,
        config: SupportChatConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or load_support_chat_config()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    @property
    def enabled(self) -> bool:
        return self.config.enabled and bool(self.config.api_key)

    async def _ensure_client(self) -> httpx.AsyncClient:
        if not self.enabled:
            raise SupportChatDisabledError("Support chatbot is not enabled")

        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self.config.base_url,
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                    transport=self._transport,
                )
        return self._client

    def _payload(self, prompt: str) -> dict[str, Any]:
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.config.temperature,
                "topK": 40,
                "topP": 0.95,
                "maxOutputTokens": self.config.max_output_tokens,
            },
        }

    async def reply(
        self,
        message: str,
        history: Sequence[ChatTurn] = (),
        bot_name: str = DEFAULT_BOT_NAME,
    ) -> str:
        """Return the model's reply to ``message`` given the prior turns.

        Raises:
            SupportChatDisabledError: If the chatbot is not configured.
            SupportChatRateLimitedError: If every attempt was rate limited.
            SupportChatError: For any other failed or malformed response.
        """
        client = await self._ensure_client()
        prompt = build_prompt(history, message, self.config.system_prompt, bot_name)
        path = f"/models/{self.config.model}:generateContent"

        attempt = 0
        while True:
            try:
                response = await client.post(
                    path,
                    params={"key": self.config.api_key},
                    json=self._payload(prompt),
                )
            except httpx.HTTPError as exc:
                raise SupportChatError(f"Support chat request failed: {exc}") from exc

            if response.status_code in RETRYABLE_STATUSES and attempt < self.config.max_retries:
                delay = (attempt + 1) * self.config.backoff_seconds
                logger.warning(
                    "Support chat returned %s, retrying in %.1fs (attempt %d of %d)",
                    response.status_code,
                    delay,
                    attempt + 1,
                    self.config.max_retries,
                )
                await asyncio.sleep(delay)
                attempt += 1
                continue
            break

        if response.status_code == HTTP_TOO_MANY_REQUESTS:
            raise SupportChatRateLimitedError("Support chat is rate limited; try again later")
        if response.status_code >= HTTP_BAD_REQUEST:
            raise SupportChatError(f"Support chat responded with {response.status_code}")

        try:
            payload = response.json()
            text = payload["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise SupportChatError("Support chat returned an unexpected payload") from exc
        return str(text)

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""

        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None


class _SupportChatClientSingleton:
    """Singleton wrapper for SupportChatClient."""

    _instance: SupportChatClient | None = None

    @classmethod
    def get_instance(cls) -> SupportChatClient:
        if cls._instance is None:
            cls._instance = SupportChatClient()
        return cls._instance


def get_support_chat_client() -> SupportChatClient:
    """Return a singleton support chat client instance."""
    return _SupportChatClientSingleton.get_instance()
