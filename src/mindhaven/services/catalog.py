"""Starter communities offered on a fresh deployment."""

from __future__ import annotations

import logging

from mindhaven.services.membership import CommunityDetails, MembershipManager

# Configure logger for this module
logger = logging.getLogger(__name__)

PREDEFINED_COMMUNITIES: dict[str, CommunityDetails] = {
    "mindfulness": CommunityDetails(
        name="Mindfulness Practitioners",
        description="Share and learn mindfulness techniques to stay present and reduce anxiety.",
        tags=["meditation", "presence", "awareness"],
        image_url="/images/mindfulness.jpg",
    ),
    "stress-management": CommunityDetails(
        name="Stress Management",
        description="Strategies and support for managing daily stress and building resilience.",
        tags=["coping", "relaxation", "work-life balance"],
        image_url="/images/stress.jpg",
    ),
    "sleep-improvement": CommunityDetails(
        name="Sleep Improvement",
        description=(
            "Tips and discussions about improving sleep quality and establishing "
            "healthy sleep routines."
        ),
        tags=["insomnia", "rest", "circadian rhythm"],
        image_url="/images/sleep.jpg",
    ),
    "mood-boosters": CommunityDetails(
        name="Mood Boosters",
        description="Activities, techniques and support for elevating mood and fighting depression.",
        tags=["positivity", "joy", "emotional wellbeing"],
        image_url="/images/mood.jpg",
    ),
    "daily-gratitude": CommunityDetails(
        name="Daily Gratitude",
        description="Practice gratitude together and share what you're thankful for each day.",
        tags=["thankfulness", "appreciation", "positive psychology"],
        image_url="/images/gratitude.jpg",
    ),
}


async def seed_predefined_communities(manager: MembershipManager, creator_id: str) -> list[str]:
    """Create any missing starter community with ``creator_id`` as its admin.

    Returns:
        Ids of the communities created by this call.
    """
    created: list[str] = []
    for community_id, details in PREDEFINED_COMMUNITIES.items():
        if await manager.get_community(community_id) is not None:
            continue
        outcome = await manager.create_community(details, creator_id, community_id=community_id)
        if outcome:
            created.append(community_id)
    if created:
        logger.info("Seeded %d predefined communities", len(created))
    return created
