# src/mindhaven/api/v1/endpoints/communities.py
"""Community, membership, post, comment and chat endpoints for the MindHaven API."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query, Response, status

from mindhaven.core.errors import AuthenticationRequiredError, AuthorizationError, NotFoundError
from mindhaven.schemas.community import (
    CommunityCreate,
    CommunityResponse,
    CommunityUpdate,
    MemberCountResponse,
    MemberResponse,
    OutcomeResponse,
    RoleChange,
    UserCommunityResponse,
)
from mindhaven.schemas.content import (
    ChatMessageCreate,
    ChatMessageResponse,
    CommentCreate,
    CommentResponse,
    PostCreate,
    PostResponse,
)
from mindhaven.services.identity import Identity, remember_profile
from mindhaven.services.membership import CommunityDetails
from mindhaven.services.outcome import Outcome
from mindhaven.store import DocumentStore
from mindhaven.store.collections import COMMUNITIES, POST_COMMENTS, POSTS

from ..dependencies import ContentDep, IdentityDep, ManagerDep, StoreDep, actor_id

router = APIRouter(prefix="/communities", tags=["communities"])


def _outcome_response(outcome: Outcome) -> OutcomeResponse:
    outcome.raise_for_failure()
    value = outcome.value if isinstance(outcome.value, str) else None
    return OutcomeResponse(ok=True, reason=outcome.reason.value, id=value)


async def _remember(store: DocumentStore, identity: Identity | None) -> None:
    if identity is not None and (identity.display_name or identity.photo_url):
        await remember_profile(store, identity)


def _require_identity(identity: Identity | None) -> Identity:
    if identity is None:
        raise AuthenticationRequiredError("Sign in required")
    return identity


async def _require_post(store: DocumentStore, community_id: str, post_id: str) -> dict[str, Any]:
    post = await store.get(POSTS, post_id)
    if post is None or post["community_id"] != community_id:
        raise NotFoundError("Post not found")
    return post


@router.get("/", response_model=list[CommunityResponse])
async def list_communities(manager: ManagerDep) -> list[dict[str, Any]]:
    """List all communities, newest first."""
    return await manager.list_communities()


@router.get("/mine", response_model=list[UserCommunityResponse])
async def list_my_communities(
    manager: ManagerDep,
    identity: IdentityDep,
) -> list[dict[str, Any]]:
    """List the communities the signed-in user belongs to."""
    user = _require_identity(identity)
    return await manager.list_user_communities(user.user_id)


@router.get("/{community_id}", response_model=CommunityResponse)
async def get_community(community_id: str, manager: ManagerDep) -> dict[str, Any]:
    """Get a specific community by ID."""
    community = await manager.get_community(community_id)
    if community is None:
        raise NotFoundError("Community not found")
    return community


@router.post("/", response_model=CommunityResponse, status_code=status.HTTP_201_CREATED)
async def create_community(
    community_data: CommunityCreate,
    manager: ManagerDep,
    store: StoreDep,
    identity: IdentityDep,
) -> dict[str, Any] | None:
    """Create a new community with the caller as its admin."""
    await _remember(store, identity)
    outcome = await manager.create_community(
        CommunityDetails(**community_data.model_dump()),
        actor_id(identity),
    )
    outcome.raise_for_failure()
    return await store.get(COMMUNITIES, outcome.value)


@router.patch("/{community_id}", response_model=CommunityResponse)
async def update_community(
    community_id: str,
    changes: CommunityUpdate,
    manager: ManagerDep,
    identity: IdentityDep,
) -> dict[str, Any] | None:
    """Edit community metadata. Admin only."""
    outcome = await manager.update_community(
        community_id,
        actor_id(identity),
        changes.model_dump(exclude_unset=True, exclude_none=True),
    )
    outcome.raise_for_failure()
    return await manager.get_community(community_id)


@router.delete(
    "/{community_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
async def delete_community(
    community_id: str,
    manager: ManagerDep,
    identity: IdentityDep,
) -> Response:
    """Delete a community and all of its members, posts and chat. Admin only."""
    outcome = await manager.delete_community(community_id, actor_id(identity))
    outcome.raise_for_failure()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{community_id}/join", response_model=OutcomeResponse)
async def join_community(
    community_id: str,
    manager: ManagerDep,
    store: StoreDep,
    identity: IdentityDep,
) -> OutcomeResponse:
    """Join a community. Joining twice is not an error."""
    await _remember(store, identity)
    outcome = await manager.join_community(community_id, actor_id(identity))
    return _outcome_response(outcome)


@router.delete(
    "/{community_id}/leave",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
async def leave_community(
    community_id: str,
    manager: ManagerDep,
    identity: IdentityDep,
) -> Response:
    """Leave a community. The last admin cannot leave."""
    outcome = await manager.leave_community(community_id, actor_id(identity))
    outcome.raise_for_failure()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{community_id}/member-count", response_model=MemberCountResponse)
async def get_member_count(community_id: str, manager: ManagerDep) -> MemberCountResponse:
    """Live member count; may differ from the cached ``member_count`` field."""
    if await manager.get_community(community_id) is None:
        raise NotFoundError("Community not found")
    count = await manager.get_active_member_count(community_id)
    return MemberCountResponse(community_id=community_id, member_count=count)


@router.post("/{community_id}/reconcile", response_model=MemberCountResponse)
async def reconcile_member_count(
    community_id: str,
    manager: ManagerDep,
    identity: IdentityDep,
) -> MemberCountResponse:
    """Repair duplicate memberships and the cached member count. Admin only."""
    user = _require_identity(identity)
    if await manager.get_community(community_id) is None:
        raise NotFoundError("Community not found")
    if not await manager.is_admin(community_id, user.user_id):
        raise AuthorizationError("Only admins can reconcile a community")
    count = await manager.reconcile_member_count(community_id)
    return MemberCountResponse(community_id=community_id, member_count=count)


@router.get("/{community_id}/members", response_model=list[MemberResponse])
async def list_members(community_id: str, manager: ManagerDep) -> list[dict[str, Any]]:
    return await manager.list_members(community_id)


@router.patch("/{community_id}/members/{membership_id}", response_model=OutcomeResponse)
async def change_member_role(
    community_id: str,
    membership_id: str,
    change: RoleChange,
    manager: ManagerDep,
    identity: IdentityDep,
) -> OutcomeResponse:
    """Promote or demote a member. Admin only."""
    outcome = await manager.change_member_role(
        community_id, actor_id(identity), membership_id, change.role
    )
    return _outcome_response(outcome)


@router.delete(
    "/{community_id}/members/{membership_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
async def remove_member(
    community_id: str,
    membership_id: str,
    manager: ManagerDep,
    identity: IdentityDep,
) -> Response:
    """Remove another member. Admin only."""
    outcome = await manager.remove_member(community_id, actor_id(identity), membership_id)
    outcome.raise_for_failure()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{community_id}/posts", response_model=list[PostResponse])
async def list_posts(
    community_id: str,
    content: ContentDep,
    limit: int | None = Query(None, ge=1, le=100),
) -> list[dict[str, Any]]:
    """Get posts from a specific community, newest first."""
    return await content.list_posts(community_id, limit)


@router.post(
    "/{community_id}/posts",
    response_model=PostResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_post(
    community_id: str,
    post_data: PostCreate,
    content: ContentDep,
    store: StoreDep,
    identity: IdentityDep,
) -> dict[str, Any] | None:
    """Publish a post. Members only."""
    await _remember(store, identity)
    outcome = await content.create_post(community_id, identity, post_data.content)
    outcome.raise_for_failure()
    return await store.get(POSTS, outcome.value)


@router.delete(
    "/{community_id}/posts/{post_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
async def delete_post(
    community_id: str,
    post_id: str,
    content: ContentDep,
    store: StoreDep,
    identity: IdentityDep,
) -> Response:
    """Delete a post. Its author or a community admin only."""
    await _require_post(store, community_id, post_id)
    outcome = await content.delete_post(post_id, actor_id(identity))
    outcome.raise_for_failure()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{community_id}/posts/{post_id}/like", response_model=PostResponse)
async def like_post(
    community_id: str,
    post_id: str,
    content: ContentDep,
    store: StoreDep,
    identity: IdentityDep,
) -> dict[str, Any] | None:
    """Like a post. Liking twice is not an error. Members only."""
    await _require_post(store, community_id, post_id)
    outcome = await content.like_post(post_id, identity)
    outcome.raise_for_failure()
    return await store.get(POSTS, post_id)


@router.delete("/{community_id}/posts/{post_id}/like", response_model=PostResponse)
async def unlike_post(
    community_id: str,
    post_id: str,
    content: ContentDep,
    store: StoreDep,
    identity: IdentityDep,
) -> dict[str, Any] | None:
    await _require_post(store, community_id, post_id)
    outcome = await content.unlike_post(post_id, actor_id(identity))
    outcome.raise_for_failure()
    return await store.get(POSTS, post_id)


@router.get("/{community_id}/posts/{post_id}/comments", response_model=list[CommentResponse])
async def list_comments(
    community_id: str,
    post_id: str,
    content: ContentDep,
    store: StoreDep,
) -> list[dict[str, Any]]:
    """Comments on a post, oldest first."""
    await _require_post(store, community_id, post_id)
    return await content.list_comments(post_id)


@router.post(
    "/{community_id}/posts/{post_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    community_id: str,
    post_id: str,
    comment: CommentCreate,
    content: ContentDep,
    store: StoreDep,
    identity: IdentityDep,
) -> dict[str, Any] | None:
    """Comment on a post. Members only."""
    await _require_post(store, community_id, post_id)
    await _remember(store, identity)
    outcome = await content.add_comment(post_id, identity, comment.content)
    outcome.raise_for_failure()
    return await store.get(POST_COMMENTS, outcome.value)


@router.get("/{community_id}/chat", response_model=list[ChatMessageResponse])
async def list_chat(
    community_id: str,
    content: ContentDep,
    limit: int | None = Query(None, ge=1, le=500),
) -> list[dict[str, Any]]:
    """Recent chat messages in chronological order."""
    return await content.list_chat(community_id, limit)


@router.post(
    "/{community_id}/chat",
    response_model=OutcomeResponse,
    status_code=status.HTTP_201_CREATED,
)
async def send_chat_message(
    community_id: str,
    message: ChatMessageCreate,
    content: ContentDep,
    store: StoreDep,
    identity: IdentityDep,
) -> OutcomeResponse:
    await _remember(store, identity)
    outcome = await content.send_chat_message(community_id, identity, message.content)
    return _outcome_response(outcome)
