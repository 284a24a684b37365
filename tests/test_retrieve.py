from __future__ import annotations

import json
import logging

import pytest

from context.feed.retrieve import FeedRetriever
from core.db import setup_db
from core.type import RelationshipIndex, RelationshipLabel


@pytest.fixture
def raw_db(tmp_path):
    posts = tmp_path / "posts.json"
    relationships = tmp_path / "relationships.json"
    users = tmp_path / "users.json"
    posts.write_text(json.dumps({"posts": [
        {"id": "old", "uid": "a3", "createdAt": {"seconds": 1748419200}, "likes": []},
        {"id": "new", "uid": "a1", "createdAt": {"seconds": 1748779200}, "likes": ["v1"]},
        {"id": "undated", "uid": "a2"},
        {"uid": "nobody"},
    ]}))
    relationships.write_text(json.dumps({"v1": {"following": ["a1"], "followers": ["a2"]}}))
    users.write_text(json.dumps({"a1": {"name": "Ari"}, "a2": {"displayName": "Bo"}, "a3": {}}))
    return setup_db(str(posts), str(relationships), str(users))


def test_database_orders_posts_newest_first(raw_db):
    assert [p.id for p in raw_db.retrieve_posts()] == ["undated", "new", "old"]


def test_database_relationships_and_names(raw_db):
    assert raw_db.retrieve_relationships("v1") == RelationshipIndex(following=["a1"], followers=["a2"])
    assert raw_db.retrieve_relationships("stranger") == RelationshipIndex()
    assert raw_db.retrieve_display_names() == {"a1": "Ari", "a2": "Bo"}
    assert set(raw_db.retrieve_all_relationships()) == {"v1"}


def test_database_tolerates_missing_and_corrupt_files(tmp_path):
    corrupt = tmp_path / "posts.json"
    corrupt.write_text("{not json")
    db = setup_db(str(corrupt), str(tmp_path / "missing.json"), str(tmp_path / "missing.json"))

    assert db.retrieve_posts() == []
    assert db.retrieve_relationships("v1") == RelationshipIndex()
    assert db.retrieve_display_names() == {}


@pytest.mark.asyncio
async def test_snapshot_joins_all_sources(raw_db, ranker, now):
    snapshot = await FeedRetriever(raw_db).snapshot("v1")

    assert snapshot.is_complete
    assert len(snapshot.posts) == 3
    assert snapshot.display_names["a1"] == "Ari"

    ranked = snapshot.rank(ranker, now)
    labels = {sp.post.id: sp.relationship_label for sp in ranked}
    assert labels == {
        "new": RelationshipLabel.FOLLOWING,
        "undated": RelationshipLabel.FOLLOWER,
        "old": RelationshipLabel.SUGGESTED,
    }


@pytest.mark.asyncio
async def test_failed_relationship_fetch_falls_back_to_unranked(raw_db, ranker, now, monkeypatch):
    def _boom(viewer_id):
        raise ConnectionError("relationship store unavailable")

    monkeypatch.setattr(raw_db, "retrieve_relationships", _boom)

    snapshot = await FeedRetriever(raw_db).snapshot("v1")
    ranked = snapshot.rank(ranker, now)

    assert snapshot.relationships is None
    assert not snapshot.is_complete
    assert [sp.post.id for sp in ranked] == [p.id for p in snapshot.posts]
    assert all(sp.score is None for sp in ranked)


@pytest.mark.asyncio
async def test_failed_post_fetch_raises(raw_db, monkeypatch):
    def _boom():
        raise ConnectionError("post store unavailable")

    monkeypatch.setattr(raw_db, "retrieve_posts", _boom)

    with pytest.raises(ConnectionError):
        await FeedRetriever(raw_db).snapshot("v1")


@pytest.mark.asyncio
async def test_failed_name_fetch_keeps_ranking(raw_db, monkeypatch):
    def _boom():
        raise TimeoutError

    monkeypatch.setattr(raw_db, "retrieve_display_names", _boom)

    snapshot = await FeedRetriever(raw_db).snapshot("v1")

    assert snapshot.display_names == {}
    assert snapshot.is_complete


@pytest.mark.asyncio
async def test_anonymous_snapshot_skips_relationships(raw_db, ranker, now):
    snapshot = await FeedRetriever(raw_db).snapshot(None)

    assert snapshot.relationships is None
    assert all(sp.score is None for sp in snapshot.rank(ranker, now))


@pytest.mark.asyncio
async def test_anonymous_snapshot_logs_failed_name_fetch(raw_db, monkeypatch, caplog):
    def _boom():
        raise TimeoutError("user store timed out")

    monkeypatch.setattr(raw_db, "retrieve_display_names", _boom)

    with caplog.at_level(logging.WARNING, logger="context.feed.retrieve"):
        snapshot = await FeedRetriever(raw_db).snapshot(None)

    assert snapshot.display_names == {}
    assert len(snapshot.posts) == 3
    assert "display name fetch failed: user store timed out" in caplog.text
