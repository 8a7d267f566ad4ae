"""SQLAlchemy models for inbox-signals."""

from inbox_signals.models.base import Base
from inbox_signals.models.email_analysis import EmailAnalysis
from inbox_signals.models.pattern import WorkflowPattern

__all__ = [
    "Base",
    "EmailAnalysis",
    "WorkflowPattern",
]
