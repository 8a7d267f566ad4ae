"""Email analysis model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from inbox_signals.models.base import Base


class EmailAnalysis(Base):
    """Persisted classification of one email."""

    __tablename__ = "email_analyses"
    __table_args__ = (UniqueConstraint("user_id", "email_id", name="uq_email_analyses_email"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    email_id: Mapped[str] = mapped_column(String, nullable=False)
    priority: Mapped[str] = mapped_column(String, nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False)
    urgency_score: Mapped[int] = mapped_column(Integer, nullable=False)
    business_relevance_score: Mapped[int] = mapped_column(Integer, nullable=False)
    spam_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    action_required: Mapped[bool] = mapped_column(Boolean, nullable=False)
    matched_keywords: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    suggested_actions: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    reasoning: Mapped[str] = mapped_column(String, nullable=False)
    notification_sent: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false"
    )
    analyzed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    @property
    def is_urgent(self) -> bool:
        """Check if the email was classified urgent."""
        return self.priority == "urgent"

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"EmailAnalysis(id={self.id}, email_id={self.email_id!r}, "
            f"priority={self.priority!r}, category={self.category!r})"
        )
