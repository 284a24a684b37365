"""
Leaf Feed API

Usage:
    uvicorn api.app:app --reload --port 8000
"""
from __future__ import annotations
from datetime import datetime, timezone

from fastapi import FastAPI, HTTPException, Query
from contextlib import asynccontextmanager

from api.state import app_state
from api.schemas import (
    PostCreate, PostResponse, LikeRequest, LikeResponse, CommentRequest,
    FeedEntry, FeedResponse,
    RelationshipsRequest, RelationshipsResponse, FollowRequest,
    ConfigResponse,
)
from core.type import RelationshipIndex
from core.utils import display_name, format_age, relationship_badge


@asynccontextmanager
async def lifespan(app: FastAPI):
    app_state.initialize()
    yield


app = FastAPI(
    title="Leaf Feed",
    description="Personalized feed ordering from recency, engagement, relationship and content-type signals.",
    version="1.0.0",
    lifespan=lifespan,
)


# ─── Health ──────────────────────────────────────────────────────────────────

@app.get("/health")
def health():
    return {
        "status": "ok",
        "posts": len(app_state.posts),
        "users": len(app_state.viewers),
    }


@app.get("/config", response_model=ConfigResponse)
def config():
    s = app_state.ranker.settings
    return ConfigResponse(
        weights=s.weights(),
        recency_window_hours=s.recency_window_hours,
        engagement_cap=s.engagement_cap,
        relationship_scores={
            "own": s.own_score,
            "mutual": s.mutual_score,
            "following": s.following_score,
            "follower": s.follower_score,
            "suggested": s.suggested_score,
        },
    )


# ─── Posts ───────────────────────────────────────────────────────────────────

def _post_to_response(p) -> PostResponse:
    return PostResponse(
        id=p.id,
        author_id=p.author_id,
        caption=p.caption,
        image_url=p.image_url,
        has_visual_media=p.has_visual_media,
        created_at=p.created_at,
        like_count=p.like_count,
        comment_signal=p.comment_signal,
    )


@app.get("/posts/{post_id}", response_model=PostResponse)
def get_post(post_id: str):
    post = app_state.get_post(post_id)
    if post is None:
        raise HTTPException(status_code=404, detail=f"Post {post_id} not found")
    return _post_to_response(post)


@app.post("/posts", response_model=PostResponse, status_code=201)
def create_post(body: PostCreate):
    post = app_state.add_post(author_id=body.author_id, caption=body.caption, image_url=body.image_url)
    return _post_to_response(post)


@app.post("/posts/{post_id}/like", response_model=LikeResponse)
def toggle_like(post_id: str, body: LikeRequest):
    post = app_state.toggle_like(post_id, body.user_id)
    if post is None:
        raise HTTPException(status_code=404, detail=f"Post {post_id} not found")
    return LikeResponse(post_id=post.id, liked=body.user_id in post.likes, like_count=post.like_count)


@app.post("/posts/{post_id}/comments", response_model=PostResponse, status_code=201)
def add_comment(post_id: str, body: CommentRequest):
    # comment bodies live with the storage layer; only the count feeds ranking
    post = app_state.add_comment(post_id)
    if post is None:
        raise HTTPException(status_code=404, detail=f"Post {post_id} not found")
    return _post_to_response(post)


# ─── Feed ────────────────────────────────────────────────────────────────────

@app.get("/feed", response_model=FeedResponse)
def get_feed(
    viewer_id: str | None = Query(None, description="Omit for the anonymous, unranked feed"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    feed = app_state.get_feed(viewer_id, limit=limit, offset=offset)
    now = datetime.now(timezone.utc)

    entries = []
    for i, sp in enumerate(feed, offset + 1):
        label = sp.relationship_label.value if sp.relationship_label else None
        entries.append(FeedEntry(
            rank=i,
            post_id=sp.post.id,
            author_id=sp.post.author_id,
            author_name=display_name(sp.post.author_id, app_state.display_names),
            caption=sp.post.caption,
            age=format_age(sp.post.created_at, now),
            score=round(sp.score, 4) if sp.score is not None else None,
            relationship_label=label,
            badge=relationship_badge(sp.relationship_label),
            recency=round(sp.recency, 4),
            engagement=round(sp.engagement, 4),
            relationship=round(sp.relationship, 4),
            content_type=round(sp.content_type, 4),
        ))

    return FeedResponse(
        viewer_id=viewer_id,
        ranked=bool(feed) and feed[0].is_scored,
        total_candidates=len(app_state.posts),
        feed=entries,
    )


# ─── Relationships ───────────────────────────────────────────────────────────

def _relationships_to_response(user_id: str, index: RelationshipIndex) -> RelationshipsResponse:
    return RelationshipsResponse(
        user_id=user_id,
        following=sorted(index.following),
        followers=sorted(index.followers),
        mutual=sorted(index.following & index.followers),
    )


def _current_index(user_id: str) -> RelationshipIndex:
    # a viewer still loading has no index to show yet
    viewer = app_state.viewers.get(user_id)
    return viewer.relationships if viewer and viewer.relationships else RelationshipIndex()


@app.get("/users/{user_id}/relationships", response_model=RelationshipsResponse)
def get_relationships(user_id: str):
    return _relationships_to_response(user_id, _current_index(user_id))


@app.put("/users/{user_id}/relationships", response_model=RelationshipsResponse)
def set_relationships(user_id: str, body: RelationshipsRequest):
    index = app_state.set_relationships(user_id, body.following, body.followers)
    return _relationships_to_response(user_id, index)


@app.post("/users/{user_id}/follow", response_model=RelationshipsResponse)
def follow(user_id: str, body: FollowRequest):
    if body.target_id == user_id:
        raise HTTPException(status_code=400, detail="Users cannot follow themselves")
    app_state.follow(user_id, body.target_id)
    return _relationships_to_response(user_id, _current_index(user_id))


@app.delete("/users/{user_id}/follow/{target_id}", response_model=RelationshipsResponse)
def unfollow(user_id: str, target_id: str):
    if not app_state.unfollow(user_id, target_id):
        raise HTTPException(status_code=404, detail=f"{user_id} does not follow {target_id}")
    return _relationships_to_response(user_id, _current_index(user_id))
