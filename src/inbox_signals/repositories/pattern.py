"""Pattern repository for database operations."""

from __future__ import annotations

import structlog
from pydantic import ValidationError
from sqlalchemy import and_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from inbox_signals.models.pattern import WorkflowPattern
from inbox_signals.repositories.base import (
    CorruptPatternError,
    PatternConflictError,
    PatternNotFoundError,
    PatternStoreError,
)
from inbox_signals.schemas.pattern import (
    PatternCreate,
    PatternKey,
    PatternKind,
    PatternRecord,
    PatternUpdate,
    parse_payload,
)

logger = structlog.get_logger(__name__)


def to_record(pattern: WorkflowPattern) -> PatternRecord:
    """Convert an ORM row to a typed record.

    Raises:
        CorruptPatternError: If the row does not validate.
    """
    try:
        key = PatternKey(kind=PatternKind(pattern.kind), discriminator=pattern.discriminator)
        return PatternRecord(
            id=pattern.id,
            user_id=pattern.user_id,
            key=key,
            payload=parse_payload(key.kind, pattern.payload),
            confidence=pattern.confidence,
            occurrences=pattern.occurrences,
            is_active=pattern.is_active,
            last_seen=pattern.last_seen,
        )
    except (ValidationError, ValueError) as e:
        raise CorruptPatternError(
            f"Stored pattern {pattern.id} is invalid",
            pattern_id=pattern.id,
            occurrences=pattern.occurrences,
            confidence=pattern.confidence,
        ) from e


class PatternRepository:
    """SQLAlchemy-backed PatternStore."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async SQLAlchemy session.
        """
        self.session = session

    async def find(self, user_id: str, key: PatternKey) -> PatternRecord | None:
        """Get the pattern stored under a key.

        Args:
            user_id: Owning user.
            key: Pattern key.

        Returns:
            Pattern record if found, None otherwise.

        Raises:
            CorruptPatternError: If the stored payload is invalid.
            PatternStoreError: If the query fails.
        """
        query = select(WorkflowPattern).where(
            and_(
                WorkflowPattern.user_id == user_id,
                WorkflowPattern.kind == key.kind.value,
                WorkflowPattern.discriminator == key.discriminator,
            )
        )
        try:
            result = await self.session.execute(query)
        except SQLAlchemyError as e:
            raise PatternStoreError(f"Failed to load pattern {key}", key) from e

        pattern = result.scalar_one_or_none()
        if pattern is None:
            return None
        return to_record(pattern)

    async def create(self, data: PatternCreate) -> PatternRecord:
        """Create a pattern for its first observation.

        Args:
            data: Pattern creation data.

        Returns:
            Created pattern.

        Raises:
            PatternConflictError: If another writer created the key first.
            PatternStoreError: If the insert fails for another reason.
        """
        pattern = WorkflowPattern(
            user_id=data.user_id,
            kind=data.key.kind.value,
            discriminator=data.key.discriminator,
            payload=data.payload.model_dump(mode="json"),
            confidence=data.confidence,
            occurrences=data.occurrences,
            is_active=data.is_active,
            last_seen=data.last_seen,
        )
        self.session.add(pattern)
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            raise PatternConflictError(f"Pattern {data.key} already exists", data.key) from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise PatternStoreError(f"Failed to create pattern {data.key}", data.key) from e

        await self.session.refresh(pattern)
        return to_record(pattern)

    async def update(
        self, pattern_id: int, data: PatternUpdate, *, expected_occurrences: int
    ) -> PatternRecord:
        """Conditionally update a pattern.

        The write only applies while the stored occurrence count still
        equals ``expected_occurrences``.

        Args:
            pattern_id: Pattern ID.
            data: New state after folding an observation.
            expected_occurrences: Occurrence count the update was computed from.

        Returns:
            Updated pattern.

        Raises:
            PatternNotFoundError: If the pattern does not exist.
            PatternConflictError: If another writer updated it first.
            PatternStoreError: If the update fails for another reason.
        """
        statement = (
            update(WorkflowPattern)
            .where(
                and_(
                    WorkflowPattern.id == pattern_id,
                    WorkflowPattern.occurrences == expected_occurrences,
                )
            )
            .values(
                payload=data.payload.model_dump(mode="json"),
                confidence=data.confidence,
                occurrences=data.occurrences,
                is_active=data.is_active,
                last_seen=data.last_seen,
            )
            .returning(WorkflowPattern)
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self.session.execute(statement)
            pattern = result.scalar_one_or_none()
            if pattern is None:
                await self.session.rollback()
                existing = await self.session.get(WorkflowPattern, pattern_id)
                if existing is None:
                    raise PatternNotFoundError(f"Pattern {pattern_id} not found")
                raise PatternConflictError(
                    f"Pattern {pattern_id} changed since it was read "
                    f"(expected {expected_occurrences} occurrences)"
                )
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise PatternStoreError(f"Failed to update pattern {pattern_id}") from e

        return to_record(pattern)

    async def list_for_user(
        self,
        user_id: str,
        *,
        active_only: bool = True,
        min_confidence: float = 0.0,
    ) -> list[PatternRecord]:
        """List a user's patterns, skipping rows that fail to decode.

        Args:
            user_id: Owning user.
            active_only: Only return active patterns.
            min_confidence: Minimum confidence to include.

        Returns:
            Patterns ordered by confidence, highest first.

        Raises:
            PatternStoreError: If the query fails.
        """
        conditions = [WorkflowPattern.user_id == user_id]
        if active_only:
            conditions.append(WorkflowPattern.is_active.is_(True))
        if min_confidence > 0:
            conditions.append(WorkflowPattern.confidence >= min_confidence)

        query = (
            select(WorkflowPattern)
            .where(and_(*conditions))
            .order_by(WorkflowPattern.confidence.desc(), WorkflowPattern.id)
        )
        try:
            result = await self.session.execute(query)
        except SQLAlchemyError as e:
            raise PatternStoreError(f"Failed to list patterns for user {user_id}") from e

        records = []
        for pattern in result.scalars().all():
            try:
                records.append(to_record(pattern))
            except CorruptPatternError:
                await logger.awarning(
                    "pattern_payload_corrupt",
                    pattern_id=pattern.id,
                    kind=pattern.kind,
                    discriminator=pattern.discriminator,
                )
        return records
