# tests/services/test_support_chat.py
"""Tests for the support chatbot client and its retry policy."""

from __future__ import annotations

import json
from dataclasses import replace
from unittest.mock import AsyncMock

import httpx
import pytest

from mindhaven.services.support_chat import (
    ChatTurn,
    SupportChatClient,
    SupportChatConfig,
    SupportChatDisabledError,
    SupportChatError,
    SupportChatRateLimitedError,
    build_prompt,
)

CONFIG = SupportChatConfig(
    enabled=True,
    base_url="https://chat.test/v1beta",
    model="test-model",
    api_key="secret-key",
    timeout_seconds=5.0,
    max_retries=3,
    backoff_seconds=2.0,
    system_prompt="You are {bot_name}, a supportive wellness assistant.",
    max_output_tokens=150,
    temperature=0.7,
)


def _reply(text: str) -> httpx.Response:
    return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": text}]}}]})


class _Scripted:
    """Transport handler that returns queued responses and records requests."""

    def __init__(self, *responses: httpx.Response) -> None:
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]


@pytest.fixture()
def no_sleep(mocker) -> AsyncMock:
    return mocker.patch("mindhaven.services.support_chat.asyncio.sleep", new_callable=AsyncMock)


def _client(handler: _Scripted, config: SupportChatConfig = CONFIG) -> SupportChatClient:
    return SupportChatClient(config, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_reply_posts_prompt_and_returns_text(no_sleep) -> None:
    handler = _Scripted(_reply("You are doing great 🌱"))
    client = _client(handler)

    text = await client.reply(
        "I slept badly",
        [ChatTurn("user", "hi"), ChatTurn("assistant", "Hello!")],
        bot_name="Sage",
    )

    assert text == "You are doing great 🌱"
    [request] = handler.requests
    assert request.url.path == "/v1beta/models/test-model:generateContent"
    assert request.url.params["key"] == "secret-key"
    body = json.loads(request.content)
    prompt = body["contents"][0]["parts"][0]["text"]
    assert prompt.startswith("You are Sage, a supportive wellness assistant.")
    assert "User: hi\nSage: Hello!" in prompt
    assert prompt.endswith("User's latest message: I slept badly")
    assert body["generationConfig"]["maxOutputTokens"] == 150
    no_sleep.assert_not_awaited()
    await client.close()


@pytest.mark.asyncio
async def test_retries_with_linear_backoff(no_sleep) -> None:
    handler = _Scripted(httpx.Response(503), httpx.Response(429), _reply("ok"))
    client = _client(handler)

    assert await client.reply("hello") == "ok"

    assert len(handler.requests) == 3
    assert [call.args[0] for call in no_sleep.await_args_list] == [2.0, 4.0]
    await client.close()


@pytest.mark.asyncio
async def test_rate_limited_after_all_retries(no_sleep) -> None:
    handler = _Scripted(httpx.Response(429))
    client = _client(handler)

    with pytest.raises(SupportChatRateLimitedError):
        await client.reply("hello")

    assert len(handler.requests) == 4
    assert [call.args[0] for call in no_sleep.await_args_list] == [2.0, 4.0, 6.0]
    await client.close()


@pytest.mark.asyncio
async def test_overloaded_after_all_retries(no_sleep) -> None:
    client = _client(_Scripted(httpx.Response(503)))

    with pytest.raises(SupportChatError) as excinfo:
        await client.reply("hello")

    assert not isinstance(excinfo.value, SupportChatRateLimitedError)
    await client.close()


@pytest.mark.asyncio
async def test_client_errors_are_not_retried(no_sleep) -> None:
    handler = _Scripted(httpx.Response(400, json={"error": "bad request"}))
    client = _client(handler)

    with pytest.raises(SupportChatError):
        await client.reply("hello")

    assert len(handler.requests) == 1
    no_sleep.assert_not_awaited()
    await client.close()


@pytest.mark.asyncio
async def test_malformed_payload(no_sleep) -> None:
    client = _client(_Scripted(httpx.Response(200, json={"candidates": []})))

    with pytest.raises(SupportChatError):
        await client.reply("hello")
    await client.close()


@pytest.mark.asyncio
async def test_disabled_client_refuses() -> None:
    handler = _Scripted(_reply("unused"))
    client = _client(handler, replace(CONFIG, enabled=False))

    assert not client.enabled
    with pytest.raises(SupportChatDisabledError):
        await client.reply("hello")
    assert handler.requests == []


def test_prompt_keeps_last_ten_turns() -> None:
    history = [ChatTurn("user", f"message {index}") for index in range(12)]

    prompt = build_prompt(history, "latest", "", "Haven")

    assert "message 0" not in prompt
    assert "message 1\n" not in prompt
    assert "User: message 2" in prompt
    assert "User: message 11" in prompt
    assert prompt.startswith("Previous conversation:")
