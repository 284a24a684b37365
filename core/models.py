from __future__ import annotations
import logging
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any, Optional

import numpy as np

from core.config import RankingSettings, get_settings
from core.type import Post, RelationshipIndex, RelationshipLabel, ScoredPost

logger = logging.getLogger(__name__)


# ─── Component scores ───────────────────────────────────────────────────────

def _utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def hours_since(created_at: Optional[datetime], now: datetime) -> float:
    """Age in hours, clamped at zero. A missing timestamp counts as just created."""
    if created_at is None:
        return 0.0
    return max((_utc(now) - _utc(created_at)).total_seconds() / 3600.0, 0.0)


def recency_score(post: Post, now: datetime, settings: RankingSettings) -> float:
    # linear decay, reaches 0 at the window edge; older posts stay eligible
    age = hours_since(post.created_at, now)
    return max(0.0, 1.0 - age / settings.recency_window_hours)


def engagement_score(post: Post, settings: RankingSettings) -> float:
    raw = settings.like_weight * post.like_count + settings.comment_weight * post.comment_signal
    return min(1.0, raw / settings.engagement_cap)


def content_type_score(post: Post, settings: RankingSettings) -> float:
    return settings.visual_media_score if post.has_visual_media else settings.text_only_score


def classify_relationship(
    author_id: str,
    viewer_id: str,
    relationships: Optional[RelationshipIndex],
    settings: RankingSettings,
) -> tuple[RelationshipLabel, float]:
    """First match wins: own, mutual, following, follower, suggested."""
    if author_id and author_id == viewer_id:
        return RelationshipLabel.OWN, settings.own_score

    if relationships is None:
        return RelationshipLabel.SUGGESTED, settings.suggested_score

    follows_author = author_id in relationships.following
    followed_by_author = author_id in relationships.followers
    if follows_author and followed_by_author:
        return RelationshipLabel.MUTUAL, settings.mutual_score
    if follows_author:
        # NOTE: following_score defaults to 1.0, the same as own and above mutual.
        return RelationshipLabel.FOLLOWING, settings.following_score
    if followed_by_author:
        return RelationshipLabel.FOLLOWER, settings.follower_score
    return RelationshipLabel.SUGGESTED, settings.suggested_score


def _as_post(item: Post | Mapping[str, Any]) -> Post:
    if isinstance(item, Post):
        return item
    return Post.from_document(item)


# ─── Ranker ─────────────────────────────────────────────────────────────────

class FeedRanker:
    """Deterministic linear feed ranking.

    Each post gets four component scores in [0, 1] (recency, engagement,
    relationship to the viewer, content type) combined with fixed weights.
    The ranker performs no I/O and never mutates its arguments.
    """

    def __init__(self, settings: RankingSettings | None = None):
        self.settings = settings or get_settings()
        self._weights = self.settings.weight_vector()

    def components(
        self,
        post: Post,
        viewer_id: str,
        relationships: Optional[RelationshipIndex],
        now: datetime,
    ) -> tuple[RelationshipLabel, np.ndarray]:
        label, relationship = classify_relationship(post.author_id, viewer_id, relationships, self.settings)
        vector = np.array([
            recency_score(post, now, self.settings),
            engagement_score(post, self.settings),
            relationship,
            content_type_score(post, self.settings),
        ])
        return label, vector

    def score_post(
        self,
        post: Post | Mapping[str, Any],
        viewer_id: str,
        relationships: Optional[RelationshipIndex] = None,
        now: Optional[datetime] = None,
    ) -> ScoredPost:
        post = _as_post(post)
        now = _utc(now) if now else datetime.now(timezone.utc)
        label, vector = self.components(post, viewer_id, relationships, now)
        score = float(np.clip((vector * self._weights).sum(), 0.0, 1.0))
        return self._scored(post, score, label, vector)

    def rank(
        self,
        posts: Iterable[Post | Mapping[str, Any]],
        viewer_id: Optional[str],
        relationships: Optional[RelationshipIndex] = None,
        now: Optional[datetime] = None,
    ) -> list[ScoredPost]:
        """Score every post and order by score descending, ties kept in input order.

        Without a viewer the posts come back in input order, unscored.
        """
        candidates = [_as_post(p) for p in posts]

        if not viewer_id:
            logger.debug("anonymous viewer, passing %d posts through unranked", len(candidates))
            return [ScoredPost(post=p) for p in candidates]

        if not candidates:
            return []

        now = _utc(now) if now else datetime.now(timezone.utc)

        labels: list[RelationshipLabel] = []
        matrix = np.zeros((len(candidates), len(self._weights)))
        for i, post in enumerate(candidates):
            label, matrix[i] = self.components(post, viewer_id, relationships, now)
            labels.append(label)

        scores = np.clip((matrix * self._weights).sum(axis=1), 0.0, 1.0)
        order = np.argsort(-scores, kind="stable")

        ranked = [
            self._scored(candidates[i], float(scores[i]), labels[i], matrix[i])
            for i in order
        ]
        logger.debug(
            "ranked %d posts for viewer %s (top score %.4f)",
            len(ranked), viewer_id, ranked[0].score,
        )
        return ranked

    @staticmethod
    def _scored(post: Post, score: float, label: RelationshipLabel, vector: np.ndarray) -> ScoredPost:
        return ScoredPost(
            post=post,
            score=score,
            relationship_label=label,
            recency=float(vector[0]),
            engagement=float(vector[1]),
            relationship=float(vector[2]),
            content_type=float(vector[3]),
        )


def rank_posts(
    posts: Iterable[Post | Mapping[str, Any]],
    viewer_id: Optional[str],
    relationships: Optional[RelationshipIndex] = None,
    now: Optional[datetime] = None,
) -> list[ScoredPost]:
    return FeedRanker().rank(posts, viewer_id, relationships, now)
