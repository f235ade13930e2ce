"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .community import (
    CommunityCreate,
    CommunityResponse,
    CommunityUpdate,
    MemberCountResponse,
    MemberResponse,
    OutcomeResponse,
    RoleChange,
    UserCommunityResponse,
)
from .content import (
    ChatMessageCreate,
    ChatMessageResponse,
    CommentCreate,
    CommentResponse,
    PostCreate,
    PostResponse,
)
from .notification import MarkAllReadResponse, NotificationResponse, UnreadCountResponse
from .support import SupportChatRequest, SupportChatResponse

__all__ = [
    "CommunityCreate", "CommunityResponse", "CommunityUpdate",
    "MemberCountResponse", "MemberResponse", "OutcomeResponse", "RoleChange",
    "UserCommunityResponse",
    "ChatMessageCreate", "ChatMessageResponse", "CommentCreate", "CommentResponse",
    "PostCreate", "PostResponse",
    "MarkAllReadResponse", "NotificationResponse", "UnreadCountResponse",
    "SupportChatRequest", "SupportChatResponse",
]
