"""Support chatbot Pydantic schemas."""

from typing import Literal

from pydantic import BaseModel, Field


class ChatTurnSchema(BaseModel):
    role: Literal["user", "assistant"]
    content: str = Field(..., max_length=4000)


class SupportChatRequest(BaseModel):
    """A new message plus the conversation so far."""

    message: str = Field(..., min_length=1, max_length=4000)
    history: list[ChatTurnSchema] = Field(default_factory=list)
    bot_name: str | None = Field(None, max_length=40)


class SupportChatResponse(BaseModel):
    reply: str
    bot_name: str
