"""Shared type definitions."""

from __future__ import annotations

from typing import TypedDict


class ScoreBreakdown(TypedDict):
    """The three bounded scores produced for one email."""

    urgency: int
    business_relevance: int
    spam: int


class ToneProfile(TypedDict):
    """Tone characteristics derived from a message body."""

    formality: str  # 'formal' or 'casual'
    technicality: str  # 'technical' or 'accessible'
    word_count: int
