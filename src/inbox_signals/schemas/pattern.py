"""Learned pattern Pydantic schemas.

A pattern is addressed by ``(user_id, kind, discriminator)``. The payload
is a tagged union selected by ``kind`` so each kind carries its own typed
fields instead of a free-form JSON blob.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

RECENT_SAMPLES = 10


class PatternKind(str, Enum):
    """Semantic kind of a learned pattern."""

    RESPONSE_TIMING = "response_timing"
    FOLLOW_UP_TIMING = "follow_up_timing"
    COMMUNICATION_TONE = "communication_tone"
    CUSTOMER_CATEGORIZATION = "customer_categorization"
    JOB_VALUE_ESTIMATION = "job_value_estimation"
    TASK_BATCHING = "task_batching"


class Feedback(str, Enum):
    """Outcome signal attached to an observation."""

    POSITIVE = "positive"
    NEGATIVE = "negative"
    NONE = "none"

    @classmethod
    def from_label(cls, label: str | None) -> Feedback:
        """Map reviewer labels (approved/rejected/modified) onto feedback."""
        if label is None:
            return cls.NONE
        normalized = label.strip().lower()
        if normalized in ("approved", "positive", "accepted"):
            return cls.POSITIVE
        if normalized in ("rejected", "negative"):
            return cls.NEGATIVE
        return cls.NONE


class PatternKey(BaseModel):
    """Structured two-part pattern key."""

    kind: PatternKind
    discriminator: str = Field(..., min_length=1)

    model_config = ConfigDict(frozen=True)

    @field_validator("discriminator")
    @classmethod
    def _normalize(cls, value: str) -> str:
        normalized = value.strip().lower()
        if not normalized:
            raise ValueError("discriminator must not be blank")
        return normalized

    def __str__(self) -> str:
        """Return display form used in log lines."""
        return f"{self.kind.value}[{self.discriminator}]"

    @classmethod
    def response_timing(cls, priority: str, customer_type: str | None = None) -> PatternKey:
        """Key for response timing by email priority and customer type."""
        return cls(
            kind=PatternKind.RESPONSE_TIMING,
            discriminator=f"{priority}:{customer_type or 'general'}",
        )

    @classmethod
    def follow_up_timing(cls, customer_type: str, customer_value: str) -> PatternKey:
        """Key for follow-up timing by customer type and value band."""
        return cls(
            kind=PatternKind.FOLLOW_UP_TIMING,
            discriminator=f"{customer_type}:{customer_value}",
        )

    @classmethod
    def communication_tone(cls, customer_type: str) -> PatternKey:
        """Key for tone preference per customer segment."""
        return cls(kind=PatternKind.COMMUNICATION_TONE, discriminator=customer_type)

    @classmethod
    def customer(cls, identifier: str) -> PatternKey:
        """Key for the category assigned to one customer identifier."""
        return cls(kind=PatternKind.CUSTOMER_CATEGORIZATION, discriminator=identifier)

    @classmethod
    def job_value(cls, keyword: str) -> PatternKey:
        """Key for job value estimates per job keyword."""
        return cls(kind=PatternKind.JOB_VALUE_ESTIMATION, discriminator=keyword)

    @classmethod
    def task_batching(cls) -> PatternKey:
        """Key for the single task batching preference."""
        return cls(kind=PatternKind.TASK_BATCHING, discriminator="preference")


def _most_frequent(counts: dict[str, int], default: str | None = None) -> str | None:
    if not counts:
        return default
    return Counter(counts).most_common(1)[0][0]


class ResponseTimingPayload(BaseModel):
    """Average response time for a priority/customer-type pair."""

    kind: Literal["response_timing"] = "response_timing"
    email_priority: str
    customer_type: str
    average_hours: float
    last_hours: float
    recent_hours: list[float] = Field(default_factory=list, max_length=RECENT_SAMPLES)


class FollowUpTimingPayload(BaseModel):
    """Average follow-up delay for a customer type/value band."""

    kind: Literal["follow_up_timing"] = "follow_up_timing"
    customer_type: str
    customer_value: str
    average_hours: float
    last_hours: float
    recent_hours: list[float] = Field(default_factory=list, max_length=RECENT_SAMPLES)


class TonePayload(BaseModel):
    """Tone usage counts for a customer segment."""

    kind: Literal["communication_tone"] = "communication_tone"
    customer_type: str
    tone_frequency: dict[str, int] = Field(default_factory=dict)
    formality_frequency: dict[str, int] = Field(default_factory=dict)
    technicality_frequency: dict[str, int] = Field(default_factory=dict)
    last_tone: str | None = None
    last_context: str | None = None

    @property
    def dominant_tone(self) -> str | None:
        """Most frequently used tone label."""
        return _most_frequent(self.tone_frequency)

    @property
    def dominant_formality(self) -> str | None:
        """Most frequent formality (formal/casual)."""
        return _most_frequent(self.formality_frequency)

    @property
    def dominant_technicality(self) -> str | None:
        """Most frequent technicality (technical/accessible)."""
        return _most_frequent(self.technicality_frequency)


class CustomerCategoryPayload(BaseModel):
    """Category assigned to a customer identifier."""

    kind: Literal["customer_categorization"] = "customer_categorization"
    identifier: str
    category: str
    category_frequency: dict[str, int] = Field(default_factory=dict)
    average_job_value: float | None = None
    job_value_samples: int = Field(default=0, ge=0)


class JobValuePayload(BaseModel):
    """Running estimate of job value for a job keyword."""

    kind: Literal["job_value_estimation"] = "job_value_estimation"
    keyword: str
    average_value: float
    last_value: float
    actual_value: float | None = None


class TaskBatchingPayload(BaseModel):
    """Preferred batch size and spacing between tasks."""

    kind: Literal["task_batching"] = "task_batching"
    average_batch_size: float
    average_gap_minutes: float
    task_types: list[str] = Field(default_factory=list)


PatternPayload = Annotated[
    ResponseTimingPayload
    | FollowUpTimingPayload
    | TonePayload
    | CustomerCategoryPayload
    | JobValuePayload
    | TaskBatchingPayload,
    Field(discriminator="kind"),
]

_payload_adapter: TypeAdapter[Any] = TypeAdapter(PatternPayload)


def parse_payload(kind: PatternKind, raw: Any) -> PatternPayload:
    """Validate stored payload data for a pattern kind.

    Args:
        kind: Kind taken from the pattern key.
        raw: Decoded JSON payload (a dict) as stored.

    Returns:
        The typed payload variant.

    Raises:
        pydantic.ValidationError: If the data does not match the kind.
    """
    if isinstance(raw, dict):
        raw = {**raw, "kind": kind.value}
    payload: PatternPayload = _payload_adapter.validate_python(raw)
    return payload


class PatternRecord(BaseModel):
    """A learned pattern as returned by the pattern store.

    ``id`` is None for a pattern that was computed but never stored.
    """

    id: int | None
    user_id: str
    key: PatternKey
    payload: PatternPayload
    confidence: float = Field(..., ge=0.0, le=1.0)
    occurrences: int = Field(..., ge=1)
    is_active: bool = True
    last_seen: datetime

    model_config = ConfigDict(frozen=True)


class PatternCreate(BaseModel):
    """Fields for creating a pattern on its first observation."""

    user_id: str
    key: PatternKey
    payload: PatternPayload
    confidence: float = Field(..., ge=0.0, le=1.0)
    occurrences: int = Field(default=1, ge=1)
    is_active: bool = True
    last_seen: datetime


class PatternUpdate(BaseModel):
    """Fields written when an observation is folded into a pattern."""

    payload: PatternPayload
    confidence: float = Field(..., ge=0.0, le=1.0)
    occurrences: int = Field(..., ge=1)
    is_active: bool
    last_seen: datetime
