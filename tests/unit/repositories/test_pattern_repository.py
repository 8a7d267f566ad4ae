"""Tests for the SQLAlchemy pattern repository."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from inbox_signals.models.pattern import WorkflowPattern
from inbox_signals.repositories.base import (
    CorruptPatternError,
    PatternConflictError,
    PatternNotFoundError,
    PatternStoreError,
)
from inbox_signals.repositories.pattern import PatternRepository, to_record
from inbox_signals.schemas.pattern import (
    JobValuePayload,
    PatternCreate,
    PatternKey,
    PatternUpdate,
)

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)
KEY = PatternKey.job_value("repair")


def make_row(pattern_id: int = 1, payload: Any = None, **overrides: Any) -> WorkflowPattern:
    """Build a stored job value pattern row."""
    fields: dict[str, Any] = {
        "id": pattern_id,
        "user_id": "user-1",
        "kind": "job_value_estimation",
        "discriminator": "repair",
        "payload": payload
        if payload is not None
        else {"keyword": "repair", "average_value": 200.0, "last_value": 200.0},
        "confidence": 0.3,
        "occurrences": 1,
        "is_active": True,
        "last_seen": NOW,
    }
    fields.update(overrides)
    return WorkflowPattern(**fields)


def job_payload(value: float = 200.0) -> JobValuePayload:
    """Build a job value payload."""
    return JobValuePayload(keyword="repair", average_value=value, last_value=value)


@pytest.fixture
def mock_session() -> AsyncMock:
    """Create a mock async session."""
    session = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def repository(mock_session: AsyncMock) -> PatternRepository:
    """Create repository with mock session."""
    return PatternRepository(mock_session)


class TestToRecord:
    """Tests for to_record."""

    def test_valid_row(self) -> None:
        """Test a valid row becomes a typed record."""
        record = to_record(make_row())

        assert record.id == 1
        assert record.key == KEY
        assert isinstance(record.payload, JobValuePayload)

    def test_corrupt_payload(self) -> None:
        """Test invalid payloads raise CorruptPatternError with row details."""
        with pytest.raises(CorruptPatternError) as exc_info:
            to_record(make_row(pattern_id=9, payload={"keyword": "repair"}, occurrences=4))

        assert exc_info.value.pattern_id == 9
        assert exc_info.value.occurrences == 4

    def test_unknown_kind(self) -> None:
        """Test rows with an unknown kind are corrupt."""
        with pytest.raises(CorruptPatternError):
            to_record(make_row(kind="astrology"))


class TestFind:
    """Tests for PatternRepository.find."""

    @pytest.mark.asyncio
    async def test_found(self, repository: PatternRepository, mock_session: AsyncMock) -> None:
        """Test finding an existing pattern."""
        mock_result = MagicMock()
        mock_result.scalar_one_or_none.return_value = make_row()
        mock_session.execute.return_value = mock_result

        record = await repository.find("user-1", KEY)

        assert record is not None
        assert record.payload.average_value == 200.0
        mock_session.execute.assert_called_once()

    @pytest.mark.asyncio
    async def test_not_found(self, repository: PatternRepository, mock_session: AsyncMock) -> None:
        """Test a missing pattern returns None."""
        mock_result = MagicMock()
        mock_result.scalar_one_or_none.return_value = None
        mock_session.execute.return_value = mock_result

        assert await repository.find("user-1", KEY) is None

    @pytest.mark.asyncio
    async def test_query_failure(
        self, repository: PatternRepository, mock_session: AsyncMock
    ) -> None:
        """Test database errors become PatternStoreError."""
        mock_session.execute.side_effect = OperationalError("SELECT", {}, Exception("down"))

        with pytest.raises(PatternStoreError) as exc_info:
            await repository.find("user-1", KEY)

        assert exc_info.value.key == KEY


class TestCreate:
    """Tests for PatternRepository.create."""

    @pytest.mark.asyncio
    async def test_create(self, repository: PatternRepository, mock_session: AsyncMock) -> None:
        """Test creating a pattern."""

        async def assign_id(pattern: WorkflowPattern) -> None:
            pattern.id = 5

        mock_session.refresh.side_effect = assign_id
        data = PatternCreate(
            user_id="user-1", key=KEY, payload=job_payload(), confidence=0.3, last_seen=NOW
        )

        record = await repository.create(data)

        mock_session.add.assert_called_once()
        added = mock_session.add.call_args[0][0]
        assert added.kind == "job_value_estimation"
        assert added.discriminator == "repair"
        assert added.payload["average_value"] == 200.0
        mock_session.commit.assert_called_once()
        assert record.id == 5
        assert record.occurrences == 1

    @pytest.mark.asyncio
    async def test_duplicate_key(
        self, repository: PatternRepository, mock_session: AsyncMock
    ) -> None:
        """Test a unique-key collision becomes PatternConflictError."""
        mock_session.commit.side_effect = IntegrityError("INSERT", {}, Exception("duplicate"))
        data = PatternCreate(
            user_id="user-1", key=KEY, payload=job_payload(), confidence=0.3, last_seen=NOW
        )

        with pytest.raises(PatternConflictError):
            await repository.create(data)

        mock_session.rollback.assert_called_once()

    @pytest.mark.asyncio
    async def test_other_failure(
        self, repository: PatternRepository, mock_session: AsyncMock
    ) -> None:
        """Test other database errors become PatternStoreError."""
        mock_session.commit.side_effect = OperationalError("INSERT", {}, Exception("down"))
        data = PatternCreate(
            user_id="user-1", key=KEY, payload=job_payload(), confidence=0.3, last_seen=NOW
        )

        with pytest.raises(PatternStoreError) as exc_info:
            await repository.create(data)

        assert not isinstance(exc_info.value, PatternConflictError)
        mock_session.rollback.assert_called_once()


class TestUpdate:
    """Tests for PatternRepository.update."""

    def update_data(self) -> PatternUpdate:
        """Build the next state of the sample pattern."""
        return PatternUpdate(
            payload=job_payload(250.0),
            confidence=0.35,
            occurrences=2,
            is_active=True,
            last_seen=NOW,
        )

    @pytest.mark.asyncio
    async def test_applied(self, repository: PatternRepository, mock_session: AsyncMock) -> None:
        """Test a conditional update that matches the expected count."""
        mock_result = MagicMock()
        mock_result.scalar_one_or_none.return_value = make_row(
            payload={"keyword": "repair", "average_value": 250.0, "last_value": 250.0},
            confidence=0.35,
            occurrences=2,
        )
        mock_session.execute.return_value = mock_result

        record = await repository.update(1, self.update_data(), expected_occurrences=1)

        assert record.occurrences == 2
        assert record.confidence == 0.35
        mock_session.commit.assert_called_once()
        mock_session.rollback.assert_not_called()

    @pytest.mark.asyncio
    async def test_conflict(self, repository: PatternRepository, mock_session: AsyncMock) -> None:
        """Test a stale expected count raises PatternConflictError."""
        mock_result = MagicMock()
        mock_result.scalar_one_or_none.return_value = None
        mock_session.execute.return_value = mock_result
        mock_session.get.return_value = make_row(occurrences=3)

        with pytest.raises(PatternConflictError):
            await repository.update(1, self.update_data(), expected_occurrences=1)

        mock_session.rollback.assert_called_once()
        mock_session.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_not_found(self, repository: PatternRepository, mock_session: AsyncMock) -> None:
        """Test updating a missing row raises PatternNotFoundError."""
        mock_result = MagicMock()
        mock_result.scalar_one_or_none.return_value = None
        mock_session.execute.return_value = mock_result
        mock_session.get.return_value = None

        with pytest.raises(PatternNotFoundError):
            await repository.update(99, self.update_data(), expected_occurrences=1)


class TestListForUser:
    """Tests for PatternRepository.list_for_user."""

    @pytest.mark.asyncio
    async def test_skips_corrupt_rows(
        self, repository: PatternRepository, mock_session: AsyncMock
    ) -> None:
        """Test corrupt rows are left out instead of failing the listing."""
        mock_result = MagicMock()
        mock_result.scalars.return_value.all.return_value = [
            make_row(pattern_id=1),
            make_row(pattern_id=2, discriminator="wiring", payload={"average_value": "lots"}),
        ]
        mock_session.execute.return_value = mock_result

        records = await repository.list_for_user("user-1", min_confidence=0.3)

        assert [r.id for r in records] == [1]

    @pytest.mark.asyncio
    async def test_query_failure(
        self, repository: PatternRepository, mock_session: AsyncMock
    ) -> None:
        """Test database errors become PatternStoreError."""
        mock_session.execute.side_effect = OperationalError("SELECT", {}, Exception("down"))

        with pytest.raises(PatternStoreError):
            await repository.list_for_user("user-1")
