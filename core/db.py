import json
import logging
import os
from core.type import Post, RelationshipIndex, get_current_posts, get_relationships

logger = logging.getLogger(__name__)

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

POSTS_FILE = os.path.join(BASE_DIR, "datasets", "raw", "posts.json")
RELATIONSHIPS_FILE = os.path.join(BASE_DIR, "datasets", "raw", "relationships.json")
USERS_FILE = os.path.join(BASE_DIR, "datasets", "raw", "users.json")


def _read_json(filepath: str):
    try:
        with open(filepath, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        logger.warning("file not found: %s", filepath)
    except json.JSONDecodeError as e:
        logger.warning("json decode error in %s: %s", filepath, e)
    return None


class Database:
    """Read-only view over JSON exports of the post, relationship and user collections."""

    def __init__(self, posts_file: str, relationships_file: str, users_file: str):
        self.posts_file = posts_file
        self.relationships_file = relationships_file
        self.users_file = users_file

    def retrieve_posts(self) -> list[Post]:
        """All posts, newest first. Posts without a timestamp sort as newest."""
        raw = _read_json(self.posts_file)
        if raw is None:
            return []
        posts = get_current_posts(raw)
        return sorted(
            posts,
            key=lambda p: (p.created_at is None, p.created_at.timestamp() if p.created_at else 0.0),
            reverse=True,
        )

    def retrieve_relationships(self, user_id: str) -> RelationshipIndex:
        raw = _read_json(self.relationships_file)
        if not isinstance(raw, dict):
            return RelationshipIndex()
        return get_relationships(raw.get(user_id))

    def retrieve_all_relationships(self) -> dict[str, RelationshipIndex]:
        raw = _read_json(self.relationships_file)
        if not isinstance(raw, dict):
            return {}
        return {user_id: get_relationships(entry) for user_id, entry in raw.items()}

    def retrieve_display_names(self) -> dict[str, str]:
        raw = _read_json(self.users_file)
        if not isinstance(raw, dict):
            return {}
        names = {}
        for user_id, user in raw.items():
            if isinstance(user, dict):
                name = user.get("name") or user.get("displayName")
                if name:
                    names[user_id] = str(name)
        return names


def setup_db(
    posts_file: str = POSTS_FILE,
    relationships_file: str = RELATIONSHIPS_FILE,
    users_file: str = USERS_FILE,
) -> Database:
    return Database(posts_file, relationships_file, users_file)
