from __future__ import annotations
from datetime import datetime, timezone
from typing import Mapping, Optional

from core.type import RelationshipLabel, ScoredPost


BADGES = {
    RelationshipLabel.OWN: "Your post",
    RelationshipLabel.MUTUAL: "Mutual friends",
    RelationshipLabel.FOLLOWING: "Following",
    RelationshipLabel.FOLLOWER: "Follows you",
    RelationshipLabel.SUGGESTED: "Suggested for you",
}


def relationship_badge(label: RelationshipLabel | str | None) -> Optional[str]:
    """Badge text shown next to the author name. Unranked posts get no badge."""
    if label is None:
        return None
    return BADGES.get(RelationshipLabel(label))


def format_age(created_at: datetime | None, now: datetime | None = None) -> str:
    if created_at is None:
        return "Just now"
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)

    minutes = int((now - created_at).total_seconds() // 60)
    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes}m"
    if minutes < 1440:
        return f"{minutes // 60}h"
    return f"{minutes // 1440}d"


def display_name(user_id: str, names: Mapping[str, str]) -> str:
    """Look up a display name, falling back to a short id-based placeholder."""
    name = names.get(user_id)
    if name:
        return name
    return f"User {user_id[:6]}"


def page(scored_posts: list[ScoredPost], limit: int | None = None, offset: int = 0) -> list[ScoredPost]:
    """Slice an already ranked feed. Ranking always runs over the full post set first."""
    offset = max(offset, 0)
    if limit is None:
        return scored_posts[offset:]
    return scored_posts[offset:offset + max(limit, 0)]
