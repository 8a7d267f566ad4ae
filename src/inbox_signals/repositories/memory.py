"""In-process pattern store."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

import structlog
from pydantic import ValidationError

from inbox_signals.repositories.base import (
    CorruptPatternError,
    PatternConflictError,
    PatternNotFoundError,
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

_RowKey = tuple[str, str, str]


@dataclass
class _Row:
    id: int
    user_id: str
    kind: str
    discriminator: str
    payload: Any
    confidence: float
    occurrences: int
    is_active: bool
    last_seen: datetime


class InMemoryPatternStore:
    """Dictionary-backed PatternStore.

    Check-and-set happens without awaiting, so conditional writes are
    atomic with respect to other tasks on the same event loop.

    Example:
        store = InMemoryPatternStore()
        learner = PatternLearner(store)
        await learner.learn_response_timing("user-1", priority="high", response_hours=2)
    """

    def __init__(self) -> None:
        """Initialize an empty store."""
        self._rows: dict[_RowKey, _Row] = {}
        self._by_id: dict[int, _RowKey] = {}
        self._next_id = 1

    def __len__(self) -> int:
        """Number of stored patterns."""
        return len(self._rows)

    def put_raw(
        self,
        user_id: str,
        key: PatternKey,
        payload: Any,
        *,
        confidence: float,
        occurrences: int,
        last_seen: datetime,
        is_active: bool = True,
    ) -> int:
        """Store a row with an unvalidated payload, as an import or migration would.

        Returns:
            The new row ID.
        """
        row = _Row(
            id=self._next_id,
            user_id=user_id,
            kind=key.kind.value,
            discriminator=key.discriminator,
            payload=payload,
            confidence=confidence,
            occurrences=occurrences,
            is_active=is_active,
            last_seen=last_seen,
        )
        self._next_id += 1
        row_key = (user_id, row.kind, row.discriminator)
        self._rows[row_key] = row
        self._by_id[row.id] = row_key
        return row.id

    async def find(self, user_id: str, key: PatternKey) -> PatternRecord | None:
        """Return the pattern for a key, or None.

        Raises:
            CorruptPatternError: If the stored payload is invalid.
        """
        row = self._rows.get((user_id, key.kind.value, key.discriminator))
        if row is None:
            return None
        return self._to_record(row)

    async def create(self, data: PatternCreate) -> PatternRecord:
        """Insert a new pattern.

        Raises:
            PatternConflictError: If the key already exists.
        """
        row_key = (data.user_id, data.key.kind.value, data.key.discriminator)
        if row_key in self._rows:
            raise PatternConflictError(f"Pattern {data.key} already exists", data.key)
        row_id = self.put_raw(
            data.user_id,
            data.key,
            data.payload.model_dump(mode="json"),
            confidence=data.confidence,
            occurrences=data.occurrences,
            last_seen=data.last_seen,
            is_active=data.is_active,
        )
        return self._to_record(self._rows[self._by_id[row_id]])

    async def update(
        self, pattern_id: int, data: PatternUpdate, *, expected_occurrences: int
    ) -> PatternRecord:
        """Apply an update if the occurrence count is unchanged.

        Raises:
            PatternNotFoundError: If no row has this ID.
            PatternConflictError: If the stored count moved on.
        """
        row_key = self._by_id.get(pattern_id)
        if row_key is None:
            raise PatternNotFoundError(f"Pattern {pattern_id} not found")
        row = self._rows[row_key]
        if row.occurrences != expected_occurrences:
            raise PatternConflictError(
                f"Pattern {pattern_id} has {row.occurrences} occurrences, "
                f"expected {expected_occurrences}",
            )
        row.payload = data.payload.model_dump(mode="json")
        row.confidence = data.confidence
        row.occurrences = data.occurrences
        row.is_active = data.is_active
        row.last_seen = data.last_seen
        return self._to_record(row)

    async def list_for_user(
        self,
        user_id: str,
        *,
        active_only: bool = True,
        min_confidence: float = 0.0,
    ) -> list[PatternRecord]:
        """Return a user's decodable patterns, highest confidence first."""
        records = []
        for row in self._rows.values():
            if row.user_id != user_id:
                continue
            if active_only and not row.is_active:
                continue
            if row.confidence < min_confidence:
                continue
            try:
                records.append(self._to_record(row))
            except CorruptPatternError:
                logger.warning(
                    "pattern_payload_corrupt",
                    pattern_id=row.id,
                    kind=row.kind,
                    discriminator=row.discriminator,
                )
        records.sort(key=lambda r: r.confidence, reverse=True)
        return records

    @staticmethod
    def _to_record(row: _Row) -> PatternRecord:
        key = PatternKey(kind=PatternKind(row.kind), discriminator=row.discriminator)
        try:
            return PatternRecord(
                id=row.id,
                user_id=row.user_id,
                key=key,
                payload=parse_payload(key.kind, row.payload),
                confidence=row.confidence,
                occurrences=row.occurrences,
                is_active=row.is_active,
                last_seen=row.last_seen,
            )
        except ValidationError as e:
            raise CorruptPatternError(
                f"Stored payload for {key} is invalid",
                key,
                pattern_id=row.id,
                occurrences=row.occurrences,
                confidence=row.confidence,
            ) from e
