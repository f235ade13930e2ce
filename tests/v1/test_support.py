# mypy: ignore-errors
# tests/v1/test_support.py
"""Tests for the support chatbot relay endpoint."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import status

from mindhaven.api.v1.dependencies import get_support_chat_dep
from mindhaven.services.support_chat import (
    ChatTurn,
    SupportChatDisabledError,
    SupportChatError,
    SupportChatRateLimitedError,
)

SUPPORT_CHAT = "/api/v1/support/chat"


@pytest.fixture()
def chat_client(app):
    """Replace the chatbot client with a mock for the duration of a test."""
    client = MagicMock()
    client.enabled = True
    client.reply = AsyncMock(return_value="Take a slow breath with me.")
    app.dependency_overrides[get_support_chat_dep] = lambda: client
    try:
        yield client
    finally:
        app.dependency_overrides.pop(get_support_chat_dep, None)


def test_support_chat_relays_history(client, chat_client, alice_headers) -> None:
    response = client.post(
        SUPPORT_CHAT,
        json={
            "message": "I feel anxious",
            "history": [
                {"role": "user", "content": "hi"},
                {"role": "assistant", "content": "Hello, how are you?"},
            ],
            "bot_name": "Sage",
        },
        headers=alice_headers,
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"reply": "Take a slow breath with me.", "bot_name": "Sage"}
    chat_client.reply.assert_awaited_once_with(
        "I feel anxious",
        [ChatTurn("user", "hi"), ChatTurn("assistant", "Hello, how are you?")],
        "Sage",
    )


def test_support_chat_defaults_bot_name(client, chat_client, alice_headers) -> None:
    response = client.post(SUPPORT_CHAT, json={"message": "hello"}, headers=alice_headers)

    assert response.json()["bot_name"] == "Haven"


def test_support_chat_requires_sign_in(client, chat_client) -> None:
    response = client.post(SUPPORT_CHAT, json={"message": "hello"})

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    chat_client.reply.assert_not_awaited()


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (SupportChatRateLimitedError("slow down"), status.HTTP_429_TOO_MANY_REQUESTS),
        (SupportChatDisabledError("off"), status.HTTP_503_SERVICE_UNAVAILABLE),
        (SupportChatError("upstream exploded"), status.HTTP_502_BAD_GATEWAY),
    ],
)
def test_support_chat_errors(client, chat_client, alice_headers, error, expected) -> None:
    chat_client.reply.side_effect = error

    response = client.post(SUPPORT_CHAT, json={"message": "hello"}, headers=alice_headers)

    assert response.status_code == expected
