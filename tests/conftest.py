from __future__ import annotations

from datetime import datetime, timedelta, timezone
from itertools import count

import pytest

from core.config import RankingSettings
from core.models import FeedRanker
from core.type import Post, RelationshipIndex

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)

_ids = count(1)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def ranker() -> FeedRanker:
    return FeedRanker(RankingSettings())


@pytest.fixture
def make_post():
    def _make_post(
        author_id: str = "a1",
        *,
        hours_ago: float | None = 0.0,
        likes: int = 0,
        comments: int = 0,
        media: bool = False,
        post_id: str | None = None,
    ) -> Post:
        created = NOW - timedelta(hours=hours_ago) if hours_ago is not None else None
        return Post(
            id=post_id or f"p{next(_ids)}",
            author_id=author_id,
            created_at=created,
            likes=[f"u{i}" for i in range(likes)],
            comment_signal=comments,
            has_visual_media=media,
        )

    return _make_post


@pytest.fixture
def relationships() -> RelationshipIndex:
    # v1 follows a1, is followed by a2, mutual with a4
    return RelationshipIndex(following=["a1", "a4"], followers=["a2", "a4"])
