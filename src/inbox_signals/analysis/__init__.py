"""Deterministic email analysis: extraction, scoring, classification."""

from inbox_signals.analysis.classifier import classify_category, derive_priority
from inbox_signals.analysis.explainer import build_reasoning, is_action_required, suggest_actions
from inbox_signals.analysis.extractor import SignalExtractor, SignalMatches, compose_content
from inbox_signals.analysis.scoring import (
    score_all,
    score_business_relevance,
    score_spam,
    score_urgency,
)
from inbox_signals.analysis.vocabulary import analyze_tone, extract_job_keywords

__all__ = [
    "SignalExtractor",
    "SignalMatches",
    "analyze_tone",
    "build_reasoning",
    "classify_category",
    "compose_content",
    "derive_priority",
    "extract_job_keywords",
    "is_action_required",
    "score_all",
    "score_business_relevance",
    "score_spam",
    "score_urgency",
    "suggest_actions",
]
