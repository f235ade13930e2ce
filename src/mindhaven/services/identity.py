"""Resolve bearer tokens into the signed-in user's identity."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from mindhaven.core.security import create_access_token, decode_access_token
from mindhaven.db.time import utcnow
from mindhaven.store.base import DocumentStore
from mindhaven.store.collections import USERS

# Configure logger for this module
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """The signed-in user as seen by the membership core."""

    user_id: str
    display_name: str | None = None
    photo_url: str | None = None


class IdentityProvider:
    """Turns identity-provider tokens into :class:`Identity` values."""

    def resolve(self, token: str | None) -> Identity | None:
        """Return the identity for ``token``, or None for no user."""
        if not token:
            return None
        claims = decode_access_token(token)
        if claims is None:
            logger.debug("Rejected invalid or expired bearer token")
            return None
        user_id = claims.get("sub")
        if not user_id:
            return None
        return Identity(
            user_id=str(user_id),
            display_name=claims.get("name"),
            photo_url=claims.get("picture"),
        )

    def issue(self, identity: Identity, expires_minutes: int | None = None) -> str:
        """Mint a token for ``identity``. Used by local development and tests."""
        claims = {}
        if identity.display_name:
            claims["name"] = identity.display_name
        if identity.photo_url:
            claims["picture"] = identity.photo_url
        return create_access_token(identity.user_id, claims, expires_minutes)


async def remember_profile(store: DocumentStore, identity: Identity) -> None:
    """Cache the identity's display fields for member listings."""
    await store.set(
        USERS,
        identity.user_id,
        {
            "display_name": identity.display_name,
            "photo_url": identity.photo_url,
            "updated_at": utcnow(),
        },
    )
