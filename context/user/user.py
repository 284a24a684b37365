from __future__ import annotations
import logging
from typing import Optional

from core.config import get_settings
from core.models import classify_relationship
from core.type import RelationshipIndex, RelationshipLabel

logger = logging.getLogger(__name__)


class Viewer:
    """The signed-in user whose feed is being ranked, plus their relationship index.

    `relationships` stays None until the first fetch completes; until then the
    viewer is ranked as anonymous rather than against a partial index. Follow
    changes made while loading are queued and applied on top of the fetched index.
    """

    def __init__(self, viewer_id: str, relationships: RelationshipIndex | None = None):
        self.viewer_id = viewer_id
        self.relationships: Optional[RelationshipIndex] = relationships
        self._queued: list[tuple[str, str, bool]] = []

    @property
    def is_loaded(self) -> bool:
        return self.relationships is not None

    def load(self, relationships: RelationshipIndex):
        for side, user_id, present in self._queued:
            if side == "following":
                relationships = relationships.with_following(user_id, present)
            else:
                relationships = relationships.with_follower(user_id, present)
        self._queued = []
        self.relationships = relationships

    def _change(self, side: str, user_id: str, present: bool) -> bool:
        """Returns True if the index changed, or the change was queued while loading."""
        if not user_id or user_id == self.viewer_id:
            return False
        if self.relationships is None:
            self._queued.append((side, user_id, present))
            return True
        members = self.relationships.following if side == "following" else self.relationships.followers
        if (user_id in members) == present:
            return False
        if side == "following":
            self.relationships = self.relationships.with_following(user_id, present)
        else:
            self.relationships = self.relationships.with_follower(user_id, present)
        return True

    def follow(self, user_id: str) -> bool:
        return self._change("following", user_id, True)

    def unfollow(self, user_id: str) -> bool:
        return self._change("following", user_id, False)

    def add_follower(self, user_id: str) -> bool:
        return self._change("followers", user_id, True)

    def remove_follower(self, user_id: str) -> bool:
        return self._change("followers", user_id, False)

    def label_for(self, author_id: str) -> RelationshipLabel:
        label, _ = classify_relationship(author_id, self.viewer_id, self.relationships, get_settings())
        return label

    def ranking_context(self) -> tuple[Optional[str], Optional[RelationshipIndex]]:
        if not self.is_loaded:
            logger.info("relationships for %s still loading, feed left unranked", self.viewer_id)
            return None, None
        return self.viewer_id, self.relationships
