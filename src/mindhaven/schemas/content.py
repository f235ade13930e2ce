"""Post, comment and chat Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class PostCreate(BaseModel):
    """Schema for creating a new post."""

    content: str = Field(..., min_length=1, max_length=5000)


class PostResponse(BaseModel):
    """Schema for post information returned by the API."""

    id: str
    community_id: str
    author_id: str
    author_name: str
    author_photo: str | None = None
    content: str
    like_count: int = 0
    comment_count: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ChatMessageCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000)


class ChatMessageResponse(BaseModel):
    id: str
    community_id: str
    user_id: str
    user_name: str
    user_photo: str | None = None
    content: str
    created_at: datetime | None = None


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000)


class CommentResponse(BaseModel):
    """Schema for a comment under a post."""

    id: str
    post_id: str
    community_id: str
    user_id: str
    user_name: str
    user_photo: str | None = None
    content: str
    created_at: datetime | None = None
