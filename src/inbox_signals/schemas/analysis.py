"""Email analysis Pydantic schemas."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_MATCHED_KEYWORDS = 10


class Priority(str, Enum):
    """How urgently an email must be handled."""

    URGENT = "urgent"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Sort rank, higher is more pressing."""
        return {"urgent": 4, "high": 3, "medium": 2, "low": 1}[self.value]


class Category(str, Enum):
    """What kind of email this is."""

    URGENT = "urgent"
    STANDARD = "standard"
    FOLLOW_UP = "follow_up"
    ADMIN = "admin"
    SPAM = "spam"


class EmailSignal(BaseModel):
    """Email metadata supplied for one analysis call.

    Text fields that arrive as ``None`` are coerced to empty strings so
    scoring degrades to base scores instead of failing.
    """

    user_id: str
    email_id: str
    subject: str = ""
    from_email: str = Field(default="", alias="from")
    snippet: str = ""
    body_preview: str | None = None
    received_at: datetime

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @field_validator("subject", "from_email", "snippet", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value)

    @field_validator("received_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value


class EmailAnalysisResult(BaseModel):
    """Classification output for one email.

    ``notification_sent`` belongs to the notification dispatcher; the
    analyzer always produces ``False``.
    """

    user_id: str
    email_id: str
    priority: Priority
    category: Category
    urgency_score: int = Field(..., ge=0, le=100)
    business_relevance_score: int = Field(..., ge=0, le=100)
    spam_score: int = Field(default=0, ge=0, le=100)
    action_required: bool
    matched_keywords: list[str] = Field(default_factory=list, max_length=MAX_MATCHED_KEYWORDS)
    suggested_actions: list[str] = Field(default_factory=list)
    reasoning: str
    notification_sent: bool = False

    model_config = ConfigDict(from_attributes=True, frozen=True)


class StoredAnalysis(BaseModel):
    """An analysis together with the outcome of persisting it.

    When ``persisted`` is False the scores are still valid; the caller
    decides whether an unsaved result is acceptable.
    """

    analysis: EmailAnalysisResult
    record_id: int | None = None
    analyzed_at: datetime | None = None
    persisted: bool = False
