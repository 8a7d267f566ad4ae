"""Services for analysis, pattern learning and adaptation."""

from inbox_signals.services.adaptation_engine import AdaptationEngine, to_adaptation
from inbox_signals.services.analyzer import EmailAnalyzerService
from inbox_signals.services.pattern_learner import (
    POLICIES,
    ConfidencePolicy,
    LearningResult,
    PatternLearner,
    running_average,
)

__all__ = [
    "POLICIES",
    "AdaptationEngine",
    "ConfidencePolicy",
    "EmailAnalyzerService",
    "LearningResult",
    "PatternLearner",
    "running_average",
]
