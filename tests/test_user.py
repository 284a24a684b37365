from __future__ import annotations

from context.user.user import Viewer
from core.type import RelationshipIndex, RelationshipLabel


def test_pending_viewer_ranks_as_anonymous(ranker, make_post, now):
    viewer = Viewer("v1")
    posts = [make_post("a3", hours_ago=90), make_post("a1", hours_ago=0)]

    viewer_id, relationships = viewer.ranking_context()
    ranked = ranker.rank(posts, viewer_id, relationships, now)

    assert not viewer.is_loaded
    assert (viewer_id, relationships) == (None, None)
    assert [sp.post for sp in ranked] == posts
    assert all(sp.score is None for sp in ranked)


def test_loaded_viewer_context(relationships):
    viewer = Viewer("v1")
    viewer.load(relationships)

    assert viewer.is_loaded
    assert viewer.ranking_context() == ("v1", relationships)


def test_follow_and_unfollow():
    viewer = Viewer("v1", RelationshipIndex(followers=["a2"]))

    assert viewer.follow("a2") is True
    assert viewer.follow("a2") is False
    assert viewer.label_for("a2") == RelationshipLabel.MUTUAL

    assert viewer.unfollow("a2") is True
    assert viewer.unfollow("a2") is False
    assert viewer.label_for("a2") == RelationshipLabel.FOLLOWER


def test_cannot_follow_self():
    viewer = Viewer("v1", RelationshipIndex())

    assert viewer.follow("v1") is False
    assert viewer.add_follower("v1") is False
    assert viewer.label_for("v1") == RelationshipLabel.OWN


def test_followers_and_labels():
    viewer = Viewer("v1", RelationshipIndex())

    assert viewer.add_follower("a2") is True
    assert viewer.label_for("a2") == RelationshipLabel.FOLLOWER
    assert viewer.remove_follower("a2") is True
    assert viewer.remove_follower("a2") is False
    assert viewer.label_for("a2") == RelationshipLabel.SUGGESTED


def test_follow_on_pending_viewer_keeps_feed_unranked(ranker, make_post, now):
    viewer = Viewer("v1")
    posts = [make_post("a2", hours_ago=1), make_post("a1", hours_ago=0)]

    assert viewer.follow("a1") is True
    assert viewer.add_follower("a2") is True

    assert not viewer.is_loaded
    assert viewer.relationships is None
    assert viewer.ranking_context() == (None, None)
    ranked = ranker.rank(posts, *viewer.ranking_context(), now)
    assert all(sp.score is None for sp in ranked)


def test_queued_changes_apply_on_load():
    viewer = Viewer("v1")
    viewer.follow("a1")
    viewer.follow("a3")
    viewer.unfollow("a3")
    viewer.remove_follower("a4")

    viewer.load(RelationshipIndex(following=["a2"], followers=["a4", "a5"]))

    assert viewer.is_loaded
    assert viewer.relationships.following == frozenset({"a1", "a2"})
    assert viewer.relationships.followers == frozenset({"a5"})
    assert viewer.label_for("a1") == RelationshipLabel.FOLLOWING


def test_pending_viewer_rejects_self_follow():
    viewer = Viewer("v1")

    assert viewer.follow("v1") is False
    assert viewer.follow("") is False

    viewer.load(RelationshipIndex())
    assert viewer.relationships.following == frozenset()
