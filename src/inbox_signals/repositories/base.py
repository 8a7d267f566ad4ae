"""Pattern store contract and errors."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from inbox_signals.schemas.pattern import (
        PatternCreate,
        PatternKey,
        PatternRecord,
        PatternUpdate,
    )


class PatternStoreError(Exception):
    """Base exception for pattern store failures."""

    def __init__(self, message: str, key: PatternKey | None = None) -> None:
        """Initialize store error.

        Args:
            message: Error description.
            key: Pattern key involved, when known.
        """
        super().__init__(message)
        self.key = key


class PatternConflictError(PatternStoreError):
    """Raised when a conditional write loses a race.

    Either the stored occurrence count no longer matches the expected one,
    or another writer created the same key first.
    """


class PatternNotFoundError(PatternStoreError):
    """Raised when an update targets a pattern that does not exist."""


class CorruptPatternError(PatternStoreError):
    """Raised when a stored payload does not validate for its kind."""

    def __init__(
        self,
        message: str,
        key: PatternKey | None = None,
        *,
        pattern_id: int | None = None,
        occurrences: int | None = None,
        confidence: float | None = None,
    ) -> None:
        """Initialize corrupt pattern error.

        Args:
            message: Error description.
            key: Pattern key of the corrupt row.
            pattern_id: Row ID, so callers can overwrite it in place.
            occurrences: Stored occurrence count, for the conditional write.
            confidence: Stored confidence.
        """
        super().__init__(message, key)
        self.pattern_id = pattern_id
        self.occurrences = occurrences
        self.confidence = confidence


class PatternStore(Protocol):
    """Keyed access to learned patterns.

    ``update`` is a conditional write: it applies only while the stored
    occurrence count equals ``expected_occurrences``.
    """

    async def find(self, user_id: str, key: PatternKey) -> PatternRecord | None:
        """Return the pattern for a key, or None."""
        ...

    async def create(self, data: PatternCreate) -> PatternRecord:
        """Insert a new pattern; PatternConflictError if the key exists."""
        ...

    async def update(
        self, pattern_id: int, data: PatternUpdate, *, expected_occurrences: int
    ) -> PatternRecord:
        """Fold an observation into a stored pattern."""
        ...

    async def list_for_user(
        self,
        user_id: str,
        *,
        active_only: bool = True,
        min_confidence: float = 0.0,
    ) -> list[PatternRecord]:
        """Return a user's decodable patterns, highest confidence first."""
        ...
