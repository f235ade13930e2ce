# tests/services/test_identity.py
"""Tests for bearer token resolution."""

from unittest.mock import patch

import pytest

from mindhaven.core.security import create_access_token
from mindhaven.core.settings import settings
from mindhaven.services.identity import Identity, IdentityProvider, remember_profile
from mindhaven.store.collections import USERS


def test_issue_and_resolve_round_trip() -> None:
    provider = IdentityProvider()
    identity = Identity(user_id="u1", display_name="Ann", photo_url="https://img/ann.png")

    assert provider.resolve(provider.issue(identity)) == identity


def test_missing_or_invalid_tokens_resolve_to_no_user() -> None:
    provider = IdentityProvider()

    assert provider.resolve(None) is None
    assert provider.resolve("") is None
    assert provider.resolve("not-a-jwt") is None
    assert provider.resolve(create_access_token("u1", expires_minutes=-1)) is None


def test_token_signed_with_other_secret_is_rejected() -> None:
    provider = IdentityProvider()
    with patch.object(settings, "secret_key", "another-secret"):
        token = provider.issue(Identity(user_id="u1"))

    assert provider.resolve(token) is None


def test_token_without_subject_is_rejected() -> None:
    token = create_access_token("", extra_claims={"name": "Nobody"})

    assert IdentityProvider().resolve(token) is None


@pytest.mark.asyncio
async def test_remember_profile_caches_display_fields(store) -> None:
    await remember_profile(store, Identity(user_id="u1", display_name="Ann"))

    profile = await store.get(USERS, "u1")
    assert profile["display_name"] == "Ann"
    assert profile["photo_url"] is None
