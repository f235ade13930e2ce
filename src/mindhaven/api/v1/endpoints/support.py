# src/mindhaven/api/v1/endpoints/support.py
"""Support chatbot relay endpoint."""

from __future__ import annotations

from fastapi import APIRouter

from mindhaven.core.errors import AuthenticationRequiredError
from mindhaven.schemas.support import SupportChatRequest, SupportChatResponse
from mindhaven.services.support_chat import DEFAULT_BOT_NAME, ChatTurn

from ..dependencies import IdentityDep, SupportChatDep

router = APIRouter(prefix="/support", tags=["support"])


@router.post("/chat", response_model=SupportChatResponse)
async def support_chat(
    request: SupportChatRequest,
    client: SupportChatDep,
    identity: IdentityDep,
) -> SupportChatResponse:
    """Relay a message and its recent history to the support chatbot.

    Raises:
        AuthenticationRequiredError: If nobody is signed in.
    """
    if identity is None:
        raise AuthenticationRequiredError("Sign in required")
    bot_name = request.bot_name or DEFAULT_BOT_NAME
    history = [ChatTurn(role=turn.role, content=turn.content) for turn in request.history]
    reply = await client.reply(request.message, history, bot_name)
    return SupportChatResponse(reply=reply, bot_name=bot_name)
