"""Adaptation and business profile Pydantic schemas."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, Field

from inbox_signals.schemas.pattern import PatternKind


class AdaptationBase(BaseModel):
    """Fields shared by every adaptation."""

    kind: PatternKind
    discriminator: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    recommendation: str


class TimingAdaptation(AdaptationBase):
    """When to follow up, learned from response or follow-up timing."""

    type: Literal["timing"] = "timing"
    recommended_follow_up_hours: float
    urgency_label: str
    customer_type: str
    segment: str
    average_hours: float


class ToneAdaptation(AdaptationBase):
    """How to phrase drafted replies for a customer segment."""

    type: Literal["tone"] = "tone"
    tone: str
    vocabulary: str
    structure: str


class CustomerSegmentAdaptation(AdaptationBase):
    """Known category for a customer."""

    type: Literal["customer_segment"] = "customer_segment"
    identifier: str
    category: str
    average_job_value: float | None = None


class JobValueAdaptation(AdaptationBase):
    """Typical value of a job type."""

    type: Literal["job_value"] = "job_value"
    keyword: str
    estimated_value: float


class BatchingAdaptation(AdaptationBase):
    """Preferred task batching rhythm."""

    type: Literal["batching"] = "batching"
    batch_size: int
    interval_minutes: int


Adaptation = Annotated[
    TimingAdaptation
    | ToneAdaptation
    | CustomerSegmentAdaptation
    | JobValueAdaptation
    | BatchingAdaptation,
    Field(discriminator="type"),
]


class BusinessProfile(BaseModel):
    """Summary of what has been learned about a user's business.

    Computed on demand from confident patterns; never stored.
    """

    user_id: str
    communication_tone: str = "professional"
    customer_types: list[str] = Field(default_factory=list)
    average_job_value: float | None = None
    response_hours_by_priority: dict[str, float] = Field(default_factory=dict)
    patterns_considered: int = 0
