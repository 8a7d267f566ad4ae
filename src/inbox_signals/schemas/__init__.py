"""Pydantic schemas for inbox-signals."""

from inbox_signals.schemas.adaptation import (
    Adaptation,
    BatchingAdaptation,
    BusinessProfile,
    CustomerSegmentAdaptation,
    JobValueAdaptation,
    TimingAdaptation,
    ToneAdaptation,
)
from inbox_signals.schemas.analysis import (
    Category,
    EmailAnalysisResult,
    EmailSignal,
    Priority,
    StoredAnalysis,
)
from inbox_signals.schemas.pattern import (
    CustomerCategoryPayload,
    Feedback,
    FollowUpTimingPayload,
    JobValuePayload,
    PatternCreate,
    PatternKey,
    PatternKind,
    PatternPayload,
    PatternRecord,
    PatternUpdate,
    ResponseTimingPayload,
    TaskBatchingPayload,
    TonePayload,
)

__all__ = [
    "Adaptation",
    "BatchingAdaptation",
    "BusinessProfile",
    "Category",
    "CustomerCategoryPayload",
    "CustomerSegmentAdaptation",
    "EmailAnalysisResult",
    "EmailSignal",
    "Feedback",
    "FollowUpTimingPayload",
    "JobValueAdaptation",
    "JobValuePayload",
    "PatternCreate",
    "PatternKey",
    "PatternKind",
    "PatternPayload",
    "PatternRecord",
    "PatternUpdate",
    "Priority",
    "ResponseTimingPayload",
    "StoredAnalysis",
    "TaskBatchingPayload",
    "TimingAdaptation",
    "ToneAdaptation",
    "TonePayload",
]
