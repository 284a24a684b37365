from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from core.db import Database, setup_db
from core.models import FeedRanker
from core.type import Post, RelationshipIndex, ScoredPost

logger = logging.getLogger(__name__)


@dataclass
class FeedSnapshot:
    """Posts, relationships and author names fetched together for one ranking pass."""

    viewer_id: Optional[str]
    posts: list[Post]
    relationships: Optional[RelationshipIndex]
    display_names: dict[str, str] = field(default_factory=dict)

    @property
    def is_complete(self) -> bool:
        return self.viewer_id is not None and self.relationships is not None

    def rank(self, ranker: FeedRanker, now: datetime | None = None) -> list[ScoredPost]:
        # a viewer without relationships is served the unranked feed
        viewer_id = self.viewer_id if self.relationships is not None else None
        return ranker.rank(self.posts, viewer_id, self.relationships, now)


class FeedRetriever:
    """Fetches the inputs of a ranking pass concurrently and joins them."""

    def __init__(self, db: Database | None = None):
        self.db = db or setup_db()

    async def _fetch_posts(self) -> list[Post]:
        return await asyncio.to_thread(self.db.retrieve_posts)

    async def _fetch_relationships(self, viewer_id: str) -> RelationshipIndex:
        return await asyncio.to_thread(self.db.retrieve_relationships, viewer_id)

    async def _fetch_display_names(self) -> dict[str, str]:
        return await asyncio.to_thread(self.db.retrieve_display_names)

    async def snapshot(self, viewer_id: str | None) -> FeedSnapshot:
        if not viewer_id:
            posts, names = await asyncio.gather(self._fetch_posts(), self._fetch_display_names(),
                                                return_exceptions=True)
            if isinstance(posts, BaseException):
                raise posts
            if isinstance(names, BaseException):
                logger.warning("display name fetch failed: %s", names)
                names = {}
            return FeedSnapshot(None, posts, None, names)

        posts, relationships, names = await asyncio.gather(
            self._fetch_posts(),
            self._fetch_relationships(viewer_id),
            self._fetch_display_names(),
            return_exceptions=True,
        )

        if isinstance(posts, BaseException):
            raise posts
        if isinstance(relationships, BaseException):
            logger.warning("relationship fetch failed for %s: %s", viewer_id, relationships)
            relationships = None
        if isinstance(names, BaseException):
            logger.warning("display name fetch failed: %s", names)
            names = {}

        return FeedSnapshot(viewer_id, posts, relationships, names)
