"""
Ranking configuration. Every value can be overridden with a FEED_RANK_* environment
variable or a .env file, e.g. FEED_RANK_RECENCY_WINDOW_HOURS=48.
"""
from __future__ import annotations
import math
from functools import lru_cache

import numpy as np
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

COMPONENTS = ("recency", "engagement", "relationship", "content_type")


class RankingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="FEED_RANK_", env_file=".env", extra="ignore")

    # ── Component weights (must sum to 1.0) ────────────────────────────────
    recency_weight: float = Field(default=0.35, ge=0.0, le=1.0)
    engagement_weight: float = Field(default=0.30, ge=0.0, le=1.0)
    relationship_weight: float = Field(default=0.25, ge=0.0, le=1.0)
    content_type_weight: float = Field(default=0.10, ge=0.0, le=1.0)

    # ── Recency ────────────────────────────────────────────────────────────
    recency_window_hours: float = Field(default=72.0, gt=0.0)

    # ── Engagement ─────────────────────────────────────────────────────────
    like_weight: float = Field(default=0.6, ge=0.0)
    comment_weight: float = Field(default=0.4, ge=0.0)
    engagement_cap: float = Field(default=50.0, gt=0.0)

    # ── Relationship components ────────────────────────────────────────────
    own_score: float = Field(default=1.0, ge=0.0, le=1.0)
    mutual_score: float = Field(default=0.8, ge=0.0, le=1.0)
    # NOTE: following-only equals own and outranks mutual. Left as shipped
    # until the relationship weighting is revisited.
    following_score: float = Field(default=1.0, ge=0.0, le=1.0)
    follower_score: float = Field(default=0.6, ge=0.0, le=1.0)
    suggested_score: float = Field(default=0.1, ge=0.0, le=1.0)

    # ── Content type ───────────────────────────────────────────────────────
    visual_media_score: float = Field(default=1.0, ge=0.0, le=1.0)
    text_only_score: float = Field(default=0.3, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _weights_sum_to_one(self) -> RankingSettings:
        total = sum(self.weights().values())
        if not math.isclose(total, 1.0, abs_tol=1e-6):
            raise ValueError(f"component weights must sum to 1.0, got {total:.6f}")
        return self

    def weights(self) -> dict[str, float]:
        return {
            "recency": self.recency_weight,
            "engagement": self.engagement_weight,
            "relationship": self.relationship_weight,
            "content_type": self.content_type_weight,
        }

    def weight_vector(self) -> np.ndarray:
        """Weights in COMPONENTS order, for a dot product with the component matrix."""
        w = self.weights()
        return np.array([w[name] for name in COMPONENTS], dtype=float)


@lru_cache
def get_settings() -> RankingSettings:
    return RankingSettings()
