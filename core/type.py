from __future__ import annotations
import logging
import math
from collections.abc import Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

logger = logging.getLogger(__name__)


def _coerce_ids(value: Any) -> frozenset[str]:
    if isinstance(value, (list, tuple, set, frozenset)):
        return frozenset(str(v) for v in value if v is not None and v != "")
    return frozenset()


def _coerce_timestamp(value: Any) -> Optional[datetime]:
    """Best-effort timestamp parsing. Returns None when nothing usable is found."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        created = value
    elif isinstance(value, (int, float)):
        try:
            created = datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        try:
            created = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    elif isinstance(value, Mapping):
        # document-store timestamp: {"seconds": ..., "nanoseconds": ...}
        seconds = value.get("seconds", value.get("_seconds"))
        nanos = value.get("nanoseconds", value.get("_nanoseconds", 0)) or 0
        if not isinstance(seconds, (int, float)) or isinstance(seconds, bool):
            return None
        if not isinstance(nanos, (int, float)):
            nanos = 0
        return _coerce_timestamp(seconds + nanos / 1e9)
    else:
        return None
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return created


class Post(BaseModel):
    """A candidate post. Malformed fields are normalized here, once, before scoring."""

    model_config = ConfigDict(frozen=True)

    id: str
    author_id: str = ""
    created_at: Optional[datetime] = None
    likes: frozenset[str] = frozenset()
    comment_signal: int = 0
    has_visual_media: bool = False
    caption: str = ""
    image_url: Optional[str] = None

    @field_validator("id", "author_id", "caption", mode="before")
    @classmethod
    def _text(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("created_at", mode="before")
    @classmethod
    def _created_at(cls, v: Any) -> Optional[datetime]:
        return _coerce_timestamp(v)

    @field_validator("likes", mode="before")
    @classmethod
    def _likes(cls, v: Any) -> frozenset[str]:
        return _coerce_ids(v)

    @field_validator("comment_signal", mode="before")
    @classmethod
    def _comment_signal(cls, v: Any) -> int:
        if isinstance(v, (list, tuple, set, frozenset)):
            return len(v)
        if isinstance(v, str):
            try:
                v = float(v)
            except ValueError:
                return 0
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            return 0
        if isinstance(v, float) and not math.isfinite(v):
            return 0
        return max(int(v), 0)

    @field_validator("has_visual_media", mode="before")
    @classmethod
    def _has_visual_media(cls, v: Any) -> bool:
        if isinstance(v, str):
            return bool(v.strip())
        return bool(v)

    @property
    def like_count(self) -> int:
        return len(self.likes)

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> Post:
        """Build a post from the document-store shape (uid, createdAt, commentCount, image)."""
        image = doc.get("image", doc.get("image_url"))
        return cls(
            id=doc.get("id"),
            author_id=doc.get("uid", doc.get("author_id")),
            created_at=doc.get("createdAt", doc.get("created_at")),
            likes=doc.get("likes"),
            comment_signal=doc.get("commentCount", doc.get("comment_signal")),
            has_visual_media=doc.get("has_visual_media", image),
            caption=doc.get("caption") or doc.get("text") or "",
            image_url=image if isinstance(image, str) and image else None,
        )


class RelationshipIndex(BaseModel):
    """Who the viewer follows and who follows the viewer."""

    model_config = ConfigDict(frozen=True)

    following: frozenset[str] = frozenset()
    followers: frozenset[str] = frozenset()

    @field_validator("following", "followers", mode="before")
    @classmethod
    def _ids(cls, v: Any) -> frozenset[str]:
        return _coerce_ids(v)

    def is_mutual(self, user_id: str) -> bool:
        return user_id in self.following and user_id in self.followers

    def with_following(self, user_id: str, present: bool = True) -> RelationshipIndex:
        following = self.following | {user_id} if present else self.following - {user_id}
        return self.model_copy(update={"following": frozenset(following)})

    def with_follower(self, user_id: str, present: bool = True) -> RelationshipIndex:
        followers = self.followers | {user_id} if present else self.followers - {user_id}
        return self.model_copy(update={"followers": frozenset(followers)})


class RelationshipLabel(str, Enum):
    OWN = "own"
    MUTUAL = "mutual"
    FOLLOWING = "following"
    FOLLOWER = "follower"
    SUGGESTED = "suggested"


class ScoredPost(BaseModel):
    """Ranked post. Anonymous pass-through entries have no score and no label."""

    post: Post
    score: Optional[float] = None
    relationship_label: Optional[RelationshipLabel] = None
    recency: float = 0.0
    engagement: float = 0.0
    relationship: float = 0.0
    content_type: float = 0.0

    @property
    def is_scored(self) -> bool:
        return self.score is not None


def get_current_posts(raw: list | dict) -> list[Post]:
    """Parse a document-store export into posts, skipping records that carry no id."""
    records: list = []
    if isinstance(raw, dict):
        for key in raw:
            if isinstance(raw[key], list):
                records = raw[key]
                break
    elif isinstance(raw, list):
        records = raw

    posts = []
    for doc in records:
        if not isinstance(doc, Mapping) or not doc.get("id"):
            logger.warning("skipping post record without id: %r", doc)
            continue
        try:
            posts.append(Post.from_document(doc))
        except ValidationError as e:
            logger.warning("skipping invalid post %s: %s", doc.get("id"), e)
    return posts


def get_relationships(raw: Mapping[str, Any] | None) -> RelationshipIndex:
    if not raw:
        return RelationshipIndex()
    return RelationshipIndex(
        following=raw.get("following"),
        followers=raw.get("followers"),
    )
