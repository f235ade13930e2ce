"""Shared API dependencies for identity resolution and service wiring."""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from mindhaven.db.session import get_db
from mindhaven.services.content import CommunityContentService
from mindhaven.services.identity import Identity, IdentityProvider
from mindhaven.services.membership import MembershipManager
from mindhaven.services.notifications import NotificationService, StoreNotificationHook
from mindhaven.services.support_chat import SupportChatClient, get_support_chat_client
from mindhaven.store import DocumentStore, SqlDocumentStore

# Browsing is allowed anonymously, so a missing header is not an error here.
bearer_scheme = HTTPBearer(auto_error=False)

identity_provider = IdentityProvider()

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_store(db: SessionDep) -> DocumentStore:
    """Return a document store bound to the request's database session."""
    return SqlDocumentStore(db)


StoreDep = Annotated[DocumentStore, Depends(get_store)]


def get_current_identity(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> Identity | None:
    """Resolve the bearer token, if any, into the signed-in identity.

    Invalid or expired tokens resolve to no user; operations that need a
    user then refuse with an unauthenticated outcome.
    """
    if credentials is None:
        return None
    return identity_provider.resolve(credentials.credentials)


# Type alias for the optional identity dependency
IdentityDep = Annotated[Identity | None, Depends(get_current_identity)]


def get_manager(store: StoreDep) -> MembershipManager:
    return MembershipManager(store, StoreNotificationHook(store))


def get_content_service(store: StoreDep) -> CommunityContentService:
    return CommunityContentService(store, StoreNotificationHook(store))


def get_notification_service(store: StoreDep) -> NotificationService:
    return NotificationService(store)


def get_support_chat_dep() -> SupportChatClient:
    """Get SupportChatClient dependency for dependency injection."""
    return get_support_chat_client()


ManagerDep = Annotated[MembershipManager, Depends(get_manager)]
ContentDep = Annotated[CommunityContentService, Depends(get_content_service)]
NotificationServiceDep = Annotated[NotificationService, Depends(get_notification_service)]
SupportChatDep = Annotated[SupportChatClient, Depends(get_support_chat_dep)]


def actor_id(identity: Identity | None) -> str | None:
    """Return the acting user id, or None when nobody is signed in."""
    return identity.user_id if identity is not None else None
