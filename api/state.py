"""
Application state — singleton that holds the post list, per-user relationship
indexes, and display names in memory. Initialized at FastAPI startup.

Every change to posts or relationships triggers a full re-rank of the affected
cached feeds; nothing is patched incrementally.
"""
from __future__ import annotations
import logging
import uuid
from datetime import datetime, timezone

from context.user.user import Viewer
from core.db import Database, setup_db
from core.models import FeedRanker
from core.type import Post, RelationshipIndex, ScoredPost
from core.utils import page

logger = logging.getLogger(__name__)


class AppState:
    def __init__(self, ranker: FeedRanker | None = None):
        self.ranker = ranker or FeedRanker()
        self.posts: list[Post] = []
        self.viewers: dict[str, Viewer] = {}
        self.display_names: dict[str, str] = {}
        self.feeds: dict[str | None, list[ScoredPost]] = {}

    def initialize(self, db: Database | None = None):
        """Load posts, relationships and names from disk."""
        db = db or setup_db()
        self.reset()
        self.posts = db.retrieve_posts()
        for user_id, index in db.retrieve_all_relationships().items():
            self.viewers[user_id] = Viewer(user_id, index)
        self.display_names = db.retrieve_display_names()
        logger.info("loaded %d posts and %d relationship indexes", len(self.posts), len(self.viewers))

    def reset(self):
        self.posts = []
        self.viewers = {}
        self.display_names = {}
        self.feeds = {}

    # ─── Ranking ─────────────────────────────────────────────────────────────

    def recompute(self, viewer_id: str | None, now: datetime | None = None) -> list[ScoredPost]:
        if viewer_id:
            ranked_for, relationships = self.get_viewer(viewer_id).ranking_context()
        else:
            ranked_for, relationships = None, None
        feed = self.ranker.rank(self.posts, ranked_for, relationships, now)
        self.feeds[viewer_id or None] = feed
        return feed

    def _recompute_cached(self, viewer_ids=None):
        targets = list(self.feeds) if viewer_ids is None else [v for v in viewer_ids if v in self.feeds]
        for viewer_id in targets:
            self.recompute(viewer_id)

    def get_feed(self, viewer_id: str | None, limit: int | None = None, offset: int = 0) -> list[ScoredPost]:
        key = viewer_id or None
        feed = self.feeds.get(key)
        if feed is None:
            feed = self.recompute(key)
        return page(feed, limit, offset)

    # ─── Posts ───────────────────────────────────────────────────────────────

    def get_post(self, post_id: str) -> Post | None:
        for post in self.posts:
            if post.id == post_id:
                return post
        return None

    def _replace_post(self, updated: Post):
        self.posts = [updated if p.id == updated.id else p for p in self.posts]
        self._recompute_cached()

    def add_post(self, author_id: str, caption: str = "", image_url: str | None = None) -> Post:
        post = Post(
            id=f"post_{uuid.uuid4().hex[:8]}",
            author_id=author_id,
            created_at=datetime.now(timezone.utc),
            caption=caption,
            image_url=image_url,
            has_visual_media=image_url,
        )
        # newest first, matching the order posts are fetched in
        self.posts = [post] + self.posts
        self._recompute_cached()
        return post

    def toggle_like(self, post_id: str, user_id: str) -> Post | None:
        post = self.get_post(post_id)
        if post is None:
            return None
        if user_id in post.likes:
            likes = post.likes - {user_id}
        else:
            likes = post.likes | {user_id}
        updated = post.model_copy(update={"likes": frozenset(likes)})
        self._replace_post(updated)
        return updated

    def add_comment(self, post_id: str) -> Post | None:
        post = self.get_post(post_id)
        if post is None:
            return None
        updated = post.model_copy(update={"comment_signal": post.comment_signal + 1})
        self._replace_post(updated)
        return updated

    # ─── Relationships ───────────────────────────────────────────────────────

    def get_viewer(self, viewer_id: str) -> Viewer:
        viewer = self.viewers.get(viewer_id)
        if viewer is None:
            # unknown users have no relationships yet; everyone else is a stranger
            viewer = Viewer(viewer_id, RelationshipIndex())
            self.viewers[viewer_id] = viewer
        return viewer

    def set_relationships(self, viewer_id: str, following: list[str], followers: list[str]) -> RelationshipIndex:
        viewer = self.get_viewer(viewer_id)
        viewer.load(RelationshipIndex(following=following, followers=followers))
        self._recompute_cached([viewer_id])
        return viewer.relationships

    def follow(self, viewer_id: str, target_id: str) -> bool:
        changed = self.get_viewer(viewer_id).follow(target_id)
        if changed:
            self.get_viewer(target_id).add_follower(viewer_id)
            self._recompute_cached([viewer_id, target_id])
        return changed

    def unfollow(self, viewer_id: str, target_id: str) -> bool:
        changed = self.get_viewer(viewer_id).unfollow(target_id)
        if changed:
            self.get_viewer(target_id).remove_follower(viewer_id)
            self._recompute_cached([viewer_id, target_id])
        return changed


# singleton
app_state = AppState()
