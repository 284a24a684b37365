"""
rank_feed.py — Rank a snapshot of posts for one viewer and print the feed.

Reads the post, relationship and user exports (datasets/raw/ by default),
fetches them concurrently, runs one ranking pass and prints the ordered feed
with each post's score breakdown.

Usage:
    python rank_feed.py --viewer v1
    python rank_feed.py --viewer v1 --limit 5 --now 2025-06-01T12:00:00+00:00
    python rank_feed.py                 # anonymous: unranked pass-through
"""

import argparse
import asyncio
import logging
from datetime import datetime, timezone

from core.db import POSTS_FILE, RELATIONSHIPS_FILE, USERS_FILE, setup_db
from core.models import FeedRanker
from core.utils import display_name, format_age, page, relationship_badge
from context.feed.retrieve import FeedRetriever


def parse_now(value: str | None) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    now = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now


def run(args: argparse.Namespace) -> int:
    print("=" * 72)
    print("  Leaf Feed — Ranking pass")
    print("=" * 72)

    db = setup_db(args.posts, args.relationships, args.users)
    snapshot = asyncio.run(FeedRetriever(db).snapshot(args.viewer))
    now = parse_now(args.now)

    print(f"\n  Viewer: {args.viewer or '(anonymous)'}")
    print(f"  Candidates: {len(snapshot.posts)}")
    if snapshot.relationships is not None:
        print(f"  Following: {len(snapshot.relationships.following)}"
              f"  Followers: {len(snapshot.relationships.followers)}")

    ranked = page(snapshot.rank(FeedRanker(), now), args.limit)
    if not ranked:
        print("\n  No posts to rank.")
        return 0

    print(f"\n  {'#':>3}  {'score':>6}  {'badge':<18} {'author':<16} {'age':>8}  post")
    print("  " + "-" * 68)
    for i, sp in enumerate(ranked, 1):
        score = f"{sp.score:.4f}" if sp.score is not None else "-"
        badge = relationship_badge(sp.relationship_label) or ""
        author = display_name(sp.post.author_id, snapshot.display_names)
        age = format_age(sp.post.created_at, now)
        print(f"  {i:>3}  {score:>6}  {badge:<18} {author:<16} {age:>8}  {sp.post.id}")
        if args.explain and sp.score is not None:
            print(f"       recency={sp.recency:.3f} engagement={sp.engagement:.3f} "
                  f"relationship={sp.relationship:.3f} content_type={sp.content_type:.3f}")

    print("\n" + "=" * 72)
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Rank a feed snapshot for one viewer")
    parser.add_argument("--viewer", default=None, help="Viewer id (omit for the anonymous feed)")
    parser.add_argument("--posts", default=POSTS_FILE, help="Posts export (JSON)")
    parser.add_argument("--relationships", default=RELATIONSHIPS_FILE, help="Relationships export (JSON)")
    parser.add_argument("--users", default=USERS_FILE, help="Users export (JSON)")
    parser.add_argument("--limit", type=int, default=None, help="Show only the first N posts")
    parser.add_argument("--now", default=None, help="Rank as of this ISO-8601 instant (default: now)")
    parser.add_argument("--explain", action="store_true", help="Print the component scores")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
    )
    raise SystemExit(run(args))
