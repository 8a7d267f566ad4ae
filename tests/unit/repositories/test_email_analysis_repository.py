"""Tests for the email analysis repository."""

from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.sql import functions

from inbox_signals.models.email_analysis import EmailAnalysis
from inbox_signals.repositories.email_analysis import EmailAnalysisRepository
from inbox_signals.schemas.analysis import Category, EmailAnalysisResult, Priority


@pytest.fixture
def mock_session() -> AsyncMock:
    """Create a mock async session."""
    session = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def repository(mock_session: AsyncMock) -> EmailAnalysisRepository:
    """Create repository with mock session."""
    return EmailAnalysisRepository(mock_session)


@pytest.fixture
def analysis() -> EmailAnalysisResult:
    """Create a sample analysis result."""
    return EmailAnalysisResult(
        user_id="user-1",
        email_id="msg-1",
        priority=Priority.URGENT,
        category=Category.URGENT,
        urgency_score=75,
        business_relevance_score=45,
        spam_score=0,
        action_required=True,
        matched_keywords=["urgent", "asap"],
        suggested_actions=["Prioritize this email", "Respond immediately"],
        reasoning="High urgency score (75) from urgent keywords or time sensitivity.",
    )


@pytest.fixture
def stored_row() -> EmailAnalysis:
    """Create a stored analysis row."""
    return EmailAnalysis(
        id=3,
        user_id="user-1",
        email_id="msg-1",
        priority="medium",
        category="standard",
        urgency_score=20,
        business_relevance_score=40,
        spam_score=0,
        action_required=False,
        matched_keywords=[],
        suggested_actions=[],
        reasoning="Standard email with medium priority.",
        notification_sent=True,
        analyzed_at=datetime(2026, 3, 1, tzinfo=UTC),
    )


def result_returning(value: object) -> MagicMock:
    """Build an execute() result whose scalar_one_or_none returns value."""
    mock_result = MagicMock()
    mock_result.scalar_one_or_none.return_value = value
    return mock_result


class TestEmailAnalysisRepository:
    """Tests for EmailAnalysisRepository."""

    @pytest.mark.asyncio
    async def test_save_inserts_new_row(
        self,
        repository: EmailAnalysisRepository,
        mock_session: AsyncMock,
        analysis: EmailAnalysisResult,
    ) -> None:
        """Test saving an email analysed for the first time."""
        mock_session.execute.return_value = result_returning(None)

        row = await repository.save(analysis)

        mock_session.add.assert_called_once_with(row)
        mock_session.commit.assert_called_once()
        mock_session.refresh.assert_called_once_with(row)
        assert row.priority == "urgent"
        assert row.category == "urgent"
        assert row.matched_keywords == ["urgent", "asap"]

    @pytest.mark.asyncio
    async def test_save_overwrites_and_keeps_notification_flag(
        self,
        repository: EmailAnalysisRepository,
        mock_session: AsyncMock,
        analysis: EmailAnalysisResult,
        stored_row: EmailAnalysis,
    ) -> None:
        """Test re-analysis replaces scores but not notification state."""
        mock_session.execute.return_value = result_returning(stored_row)

        row = await repository.save(analysis)

        assert row is stored_row
        mock_session.add.assert_not_called()
        assert row.urgency_score == 75
        assert row.category == "urgent"
        assert row.notification_sent is True

    @pytest.mark.asyncio
    async def test_save_refreshes_analyzed_at(
        self,
        repository: EmailAnalysisRepository,
        mock_session: AsyncMock,
        analysis: EmailAnalysisResult,
        stored_row: EmailAnalysis,
    ) -> None:
        """Test re-analysis stamps the row with the database time again."""
        mock_session.execute.return_value = result_returning(stored_row)

        row = await repository.save(analysis)

        assert isinstance(row.analyzed_at, functions.now)
        mock_session.refresh.assert_called_once_with(row)

    @pytest.mark.asyncio
    async def test_save_failure_rolls_back(
        self,
        repository: EmailAnalysisRepository,
        mock_session: AsyncMock,
        analysis: EmailAnalysisResult,
    ) -> None:
        """Test a failed commit is rolled back and re-raised."""
        mock_session.execute.return_value = result_returning(None)
        mock_session.commit.side_effect = OperationalError("INSERT", {}, Exception("db down"))

        with pytest.raises(OperationalError):
            await repository.save(analysis)

        mock_session.rollback.assert_awaited_once()
        mock_session.refresh.assert_not_called()

    @pytest.mark.asyncio
    async def test_saves_after_failure_succeed(
        self,
        repository: EmailAnalysisRepository,
        mock_session: AsyncMock,
        analysis: EmailAnalysisResult,
    ) -> None:
        """Test one failed save does not poison later saves on the session."""
        mock_session.execute.return_value = result_returning(None)
        mock_session.commit.side_effect = [
            OperationalError("INSERT", {}, Exception("rejected")),
            None,
            None,
        ]
        later = [
            analysis.model_copy(update={"email_id": email_id}) for email_id in ("msg-2", "msg-3")
        ]

        with pytest.raises(OperationalError):
            await repository.save(analysis)
        rows = [await repository.save(item) for item in later]

        assert [row.email_id for row in rows] == ["msg-2", "msg-3"]
        assert mock_session.commit.await_count == 3
        mock_session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_mark_notification_sent(
        self,
        repository: EmailAnalysisRepository,
        mock_session: AsyncMock,
        stored_row: EmailAnalysis,
    ) -> None:
        """Test flagging a stored analysis as notified."""
        stored_row.notification_sent = False
        mock_session.execute.return_value = result_returning(stored_row)

        assert await repository.mark_notification_sent("user-1", "msg-1") is True
        assert stored_row.notification_sent is True
        mock_session.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_mark_notification_sent_missing(
        self, repository: EmailAnalysisRepository, mock_session: AsyncMock
    ) -> None:
        """Test flagging an unknown email returns False."""
        mock_session.execute.return_value = result_returning(None)

        assert await repository.mark_notification_sent("user-1", "missing") is False
        mock_session.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_list_urgent_since(
        self,
        repository: EmailAnalysisRepository,
        mock_session: AsyncMock,
        stored_row: EmailAnalysis,
    ) -> None:
        """Test listing recent urgent analyses."""
        mock_result = MagicMock()
        mock_result.scalars.return_value.all.return_value = [stored_row]
        mock_session.execute.return_value = mock_result

        rows = await repository.list_urgent_since("user-1", datetime(2026, 3, 1, tzinfo=UTC))

        assert rows == [stored_row]
        mock_session.execute.assert_called_once()
