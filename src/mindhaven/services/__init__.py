# src/mindhaven/services/__init__.py
"""Business logic services for the MindHaven community service."""

from .content import CommunityContentService
from .identity import Identity, IdentityProvider
from .live import LiveView
from .membership import CommunityDetails, MembershipManager
from .notifications import NotificationService, StoreNotificationHook
from .outcome import Outcome, OutcomeReason
from .support_chat import SupportChatClient

__all__ = [
    "CommunityContentService",
    "CommunityDetails",
    "Identity",
    "IdentityProvider",
    "LiveView",
    "MembershipManager",
    "NotificationService",
    "Outcome",
    "OutcomeReason",
    "StoreNotificationHook",
    "SupportChatClient",
]
