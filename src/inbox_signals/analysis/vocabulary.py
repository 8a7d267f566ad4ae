"""Word-level analysis of outgoing messages and job descriptions."""

from __future__ import annotations

import re

from inbox_signals.analysis.keywords import (
    CASUAL_WORDS,
    FORMAL_WORDS,
    JOB_KEYWORDS,
    TECHNICAL_WORDS,
)
from inbox_signals.core.types import ToneProfile

_WORD = re.compile(r"[a-z']+")

# Share of technical words above which a message reads as technical
TECHNICAL_RATIO = 0.05


def tokenize(text: str | None) -> list[str]:
    """Split text into lower-case words."""
    if not text:
        return []
    return _WORD.findall(text.lower())


def analyze_tone(text: str | None) -> ToneProfile:
    """Classify a message's formality and technicality.

    Formal wins only when formal words outnumber casual ones.

    Args:
        text: Message body.

    Returns:
        Tone profile for the message.
    """
    words = tokenize(text)
    formal = sum(1 for word in words if word in FORMAL_WORDS)
    casual = sum(1 for word in words if word in CASUAL_WORDS)
    technical = sum(1 for word in words if word in TECHNICAL_WORDS)

    is_technical = bool(words) and technical / len(words) > TECHNICAL_RATIO
    return {
        "formality": "formal" if formal > casual else "casual",
        "technicality": "technical" if is_technical else "accessible",
        "word_count": len(words),
    }


def extract_job_keywords(description: str | None) -> list[str]:
    """Return trade keywords found in a job description, in vocabulary order."""
    text = (description or "").lower()
    return [keyword for keyword in JOB_KEYWORDS if keyword in text]
