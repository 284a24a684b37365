from __future__ import annotations
from datetime import datetime
from pydantic import BaseModel, Field


# ─── Posts ───────────────────────────────────────────────────────────────────

class PostCreate(BaseModel):
    author_id: str = Field(min_length=1)
    caption: str = ""
    image_url: str | None = None


class PostResponse(BaseModel):
    id: str
    author_id: str
    caption: str
    image_url: str | None
    has_visual_media: bool
    created_at: datetime | None
    like_count: int
    comment_signal: int


class LikeRequest(BaseModel):
    user_id: str = Field(min_length=1)


class LikeResponse(BaseModel):
    post_id: str
    liked: bool
    like_count: int


class CommentRequest(BaseModel):
    user_id: str = Field(min_length=1)
    text: str = Field(min_length=1)


# ─── Feed ────────────────────────────────────────────────────────────────────

class FeedEntry(BaseModel):
    rank: int
    post_id: str
    author_id: str
    author_name: str
    caption: str
    age: str
    score: float | None
    relationship_label: str | None
    badge: str | None
    recency: float
    engagement: float
    relationship: float
    content_type: float


class FeedResponse(BaseModel):
    viewer_id: str | None
    ranked: bool
    total_candidates: int
    feed: list[FeedEntry]


# ─── Relationships ───────────────────────────────────────────────────────────

class RelationshipsRequest(BaseModel):
    following: list[str] = []
    followers: list[str] = []


class RelationshipsResponse(BaseModel):
    user_id: str
    following: list[str]
    followers: list[str]
    mutual: list[str]


class FollowRequest(BaseModel):
    target_id: str = Field(min_length=1)


# ─── Config ──────────────────────────────────────────────────────────────────

class ConfigResponse(BaseModel):
    weights: dict[str, float]
    recency_window_hours: float
    engagement_cap: float
    relationship_scores: dict[str, float]
