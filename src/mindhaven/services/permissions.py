"""Role-based permission checks for community actions."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from mindhaven.models.community import ROLE_ADMIN

ACTION_VIEW_COMMUNITY = "view_community"
ACTION_CREATE_POST = "create_post"
ACTION_DELETE_OWN_POST = "delete_own_post"
ACTION_DELETE_ANY_POST = "delete_any_post"
ACTION_INVITE_MEMBERS = "invite_members"
ACTION_MANAGE_MEMBERS = "manage_members"
ACTION_MANAGE_SETTINGS = "manage_settings"
ACTION_ASSIGN_ROLES = "assign_roles"

_MEMBER_ACTIONS = frozenset(
    {
        ACTION_VIEW_COMMUNITY,
        ACTION_CREATE_POST,
        ACTION_DELETE_OWN_POST,
        ACTION_INVITE_MEMBERS,
    }
)
_ADMIN_ACTIONS = frozenset(
    {
        ACTION_DELETE_ANY_POST,
        ACTION_MANAGE_MEMBERS,
        ACTION_MANAGE_SETTINGS,
        ACTION_ASSIGN_ROLES,
    }
)


def has_permission(membership: Mapping[str, Any] | None, action: str) -> bool:
    """Return True if ``membership`` allows ``action``.

    Non-members may do nothing; unknown actions are always refused.
    """
    if not membership:
        return False
    if action in _MEMBER_ACTIONS:
        return True
    if action in _ADMIN_ACTIONS:
        return membership.get("role") == ROLE_ADMIN
    return False
