"""Repository classes for data access."""

from inbox_signals.repositories.base import (
    CorruptPatternError,
    PatternConflictError,
    PatternNotFoundError,
    PatternStore,
    PatternStoreError,
)
from inbox_signals.repositories.email_analysis import EmailAnalysisRepository
from inbox_signals.repositories.memory import InMemoryPatternStore
from inbox_signals.repositories.pattern import PatternRepository

__all__ = [
    "CorruptPatternError",
    "EmailAnalysisRepository",
    "InMemoryPatternStore",
    "PatternConflictError",
    "PatternNotFoundError",
    "PatternRepository",
    "PatternStore",
    "PatternStoreError",
]
