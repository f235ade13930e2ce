# src/mindhaven/models/__init__.py
"""SQLAlchemy models for the MindHaven application."""

from .community import Community, CommunityMember
from .notification import Notification
from .post import ChatMessage, Post, PostComment, PostLike
from .user import UserProfile

__all__ = [
    "Community", "CommunityMember",
    "Notification",
    "Post", "PostLike", "PostComment", "ChatMessage",
    "UserProfile",
]
