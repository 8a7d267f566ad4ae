"""Email analysis repository for database operations."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import and_, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from inbox_signals.models.email_analysis import EmailAnalysis
from inbox_signals.schemas.analysis import EmailAnalysisResult


class EmailAnalysisRepository:
    """Repository for persisted email analyses."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async SQLAlchemy session.
        """
        self.session = session

    async def get_by_email(self, user_id: str, email_id: str) -> EmailAnalysis | None:
        """Get the analysis stored for an email.

        Args:
            user_id: Owning user.
            email_id: Provider email ID.

        Returns:
            Analysis if found, None otherwise.
        """
        result = await self.session.execute(
            select(EmailAnalysis).where(
                and_(EmailAnalysis.user_id == user_id, EmailAnalysis.email_id == email_id)
            )
        )
        return result.scalar_one_or_none()

    async def save(self, analysis: EmailAnalysisResult) -> EmailAnalysis:
        """Insert or replace the analysis for an email.

        Re-analysis overwrites the scores and ``analyzed_at`` but keeps
        ``notification_sent``, which belongs to the notification dispatcher.
        A failed write is rolled back so the session stays usable.

        Args:
            analysis: Result from the analyzer.

        Returns:
            Stored row with ``id`` and ``analyzed_at`` assigned.

        Raises:
            SQLAlchemyError: If the write fails.
        """
        fields = analysis.model_dump(mode="json", exclude={"notification_sent"})
        try:
            row = await self.get_by_email(analysis.user_id, analysis.email_id)
            if row is None:
                row = EmailAnalysis(**fields)
                self.session.add(row)
            else:
                for key, value in fields.items():
                    setattr(row, key, value)
                row.analyzed_at = func.now()  # type: ignore[assignment]
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise

        await self.session.refresh(row)
        return row

    async def mark_notification_sent(self, user_id: str, email_id: str) -> bool:
        """Flag an analysis as notified.

        Returns:
            True if updated, False if not found.
        """
        row = await self.get_by_email(user_id, email_id)
        if row is None:
            return False

        row.notification_sent = True
        await self.session.commit()
        return True

    async def list_urgent_since(
        self,
        user_id: str,
        since: datetime,
        *,
        min_urgency: int = 60,
        limit: int = 10,
    ) -> list[EmailAnalysis]:
        """List the most urgent analyses since a point in time.

        Args:
            user_id: Owning user.
            since: Lower bound on ``analyzed_at``.
            min_urgency: Minimum urgency score.
            limit: Maximum number of results.

        Returns:
            Analyses ordered by urgency, highest first.
        """
        query = (
            select(EmailAnalysis)
            .where(
                and_(
                    EmailAnalysis.user_id == user_id,
                    EmailAnalysis.analyzed_at >= since,
                    EmailAnalysis.urgency_score >= min_urgency,
                )
            )
            .order_by(EmailAnalysis.urgency_score.desc())
            .limit(limit)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())
