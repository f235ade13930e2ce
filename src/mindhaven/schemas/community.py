"""Community-related Pydantic schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class CommunityCreate(BaseModel):
    """Schema for creating a new community."""

    name: str = Field(..., max_length=120, description="Display name")
    description: str = Field(..., max_length=2000)
    tags: list[str] = Field(default_factory=list, description="Topic tags, at least one")
    rules: list[str] = Field(default_factory=list)
    is_public: bool = True
    image_url: str | None = None
    banner_url: str | None = None


class CommunityUpdate(BaseModel):
    """Schema for partial community edits; omitted fields are unchanged."""

    name: str | None = Field(None, max_length=120)
    description: str | None = Field(None, max_length=2000)
    tags: list[str] | None = None
    rules: list[str] | None = None
    is_public: bool | None = None
    image_url: str | None = None
    banner_url: str | None = None


class CommunityResponse(BaseModel):
    """Schema for community information returned by the API."""

    id: str
    name: str
    description: str
    tags: list[str]
    rules: list[str]
    is_public: bool
    image_url: str | None = None
    banner_url: str | None = None
    created_by: str
    member_count: int
    post_count: int
    created_at: datetime | None = None
    updated_at: datetime | None = None
    last_activity_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class UserCommunityResponse(CommunityResponse):
    """A community seen from one member, with that member's role."""

    membership_id: str
    role: str


class MemberProfile(BaseModel):
    display_name: str | None = None
    photo_url: str | None = None


class MemberResponse(BaseModel):
    """Schema for one membership in a member listing."""

    id: str
    community_id: str
    user_id: str
    role: str
    joined_at: datetime | None = None
    updated_at: datetime | None = None
    profile: MemberProfile | None = None


class RoleChange(BaseModel):
    role: Literal["admin", "member"]


class MemberCountResponse(BaseModel):
    community_id: str
    member_count: int


class OutcomeResponse(BaseModel):
    """Result of a membership command."""

    ok: bool
    reason: str
    id: str | None = None
