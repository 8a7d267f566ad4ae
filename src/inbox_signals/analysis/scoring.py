"""Rule-based urgency, business relevance and spam scoring.

Each scorer starts from a fixed base, adds weighted increments per
matched signal and clamps the sum to [0, 100]. All scorers are pure: the
same inputs and the same ``now`` give the same score.
"""

from __future__ import annotations

from datetime import datetime

from inbox_signals.analysis.extractor import SignalMatches
from inbox_signals.analysis.keywords import (
    FINANCIAL_PHRASES,
    INVOICE_PHRASES,
    PERSONAL_EMAIL_DOMAINS,
    PHYSICAL_EMERGENCY_MARKERS,
    QUOTE_PHRASES,
    SITE_VISIT_PHRASES,
)
from inbox_signals.core.types import ScoreBreakdown

MIN_SCORE = 0
MAX_SCORE = 100

URGENT_PHRASE_WEIGHT = 15
EMERGENCY_PHRASE_WEIGHT = 25
BUSINESS_BASE = 30
FINANCIAL_PHRASE_WEIGHT = 12
BUSINESS_PHRASE_WEIGHT = 8
SPAM_PHRASE_WEIGHT = 15
SPAM_EXCLAMATION_WEIGHT = 5
SPAM_EXCLAMATION_CAP = 20

# Literal substring, not a reply-depth count
DOUBLE_REPLY_MARKER = "RE: RE:"


def clamp_score(value: float) -> int:
    """Truncate a raw score into [0, 100]."""
    return int(max(MIN_SCORE, min(MAX_SCORE, value)))


def is_physical_emergency(phrase: str) -> bool:
    """Check whether an urgent phrase describes a physical emergency."""
    return any(marker in phrase for marker in PHYSICAL_EMERGENCY_MARKERS)


def is_shouting(subject: str, min_length: int) -> bool:
    """Check for a fully upper-case subject longer than ``min_length``."""
    return len(subject) > min_length and subject.isupper()


def sender_domain(sender: str) -> str:
    """Return the lower-cased domain of an address, or empty string."""
    if "@" not in sender:
        return ""
    return sender.rsplit("@", 1)[1].strip().strip(">").lower()


def hours_since(received_at: datetime, now: datetime) -> float:
    """Age of a message in hours; future timestamps count as zero."""
    return max(0.0, (now - received_at).total_seconds() / 3600)


def score_urgency(
    matches: SignalMatches,
    *,
    content: str,
    subject: str,
    received_at: datetime,
    now: datetime,
) -> int:
    """Score how urgently an email needs attention.

    Args:
        matches: Extracted signals for the email.
        content: Normalized subject, snippet and body.
        subject: Raw subject line (case preserved).
        received_at: When the email arrived.
        now: Evaluation time; scoring later yields a lower recency bonus.

    Returns:
        Urgency score in [0, 100].
    """
    score = 0
    for phrase in matches.urgent:
        if is_physical_emergency(phrase):
            score += EMERGENCY_PHRASE_WEIGHT
        else:
            score += URGENT_PHRASE_WEIGHT

    age_hours = hours_since(received_at, now)
    if age_hours < 1:
        score += 10
    if age_hours < 4:
        score += 5

    if "!" in subject:
        score += 5
    if is_shouting(subject, 5):
        score += 10
    if DOUBLE_REPLY_MARKER in subject:
        score += 8

    if "today" in content or "tonight" in content:
        score += 10
    if "tomorrow" in content:
        score += 5
    if "this week" in content:
        score += 3

    return clamp_score(score)


def score_business_relevance(matches: SignalMatches, *, content: str, sender: str) -> int:
    """Score how relevant an email is to running the business.

    Invoice/payment phrases count in both the keyword pass and the
    invoice bonus.

    Args:
        matches: Extracted signals for the email.
        content: Normalized subject, snippet and body.
        sender: Sender address.

    Returns:
        Business relevance score in [0, 100].
    """
    score = BUSINESS_BASE
    for phrase in matches.business:
        if phrase in FINANCIAL_PHRASES:
            score += FINANCIAL_PHRASE_WEIGHT
        else:
            score += BUSINESS_PHRASE_WEIGHT

    domain = sender_domain(sender)
    if domain and domain not in PERSONAL_EMAIL_DOMAINS:
        score += 15

    if any(phrase in content for phrase in SITE_VISIT_PHRASES):
        score += 15
    if any(phrase in content for phrase in QUOTE_PHRASES):
        score += 20
    if any(phrase in content for phrase in INVOICE_PHRASES):
        score += 20

    return clamp_score(score)


def score_spam(matches: SignalMatches, *, content: str, sender: str, subject: str) -> int:
    """Score how likely an email is to be spam.

    Args:
        matches: Extracted signals for the email.
        content: Normalized subject, snippet and body.
        sender: Sender address.
        subject: Raw subject line (case preserved).

    Returns:
        Spam score in [0, 100].
    """
    score = SPAM_PHRASE_WEIGHT * len(matches.spam)
    score += min(SPAM_EXCLAMATION_CAP, SPAM_EXCLAMATION_WEIGHT * content.count("!"))

    if "noreply@" in sender.lower() and "click here" in content:
        score += 20
    if "$" in content and "free" in content:
        score += 15
    if is_shouting(subject, 20):
        score += 10

    return clamp_score(score)


def score_all(
    matches: SignalMatches,
    *,
    content: str,
    subject: str,
    sender: str,
    received_at: datetime,
    now: datetime,
) -> ScoreBreakdown:
    """Run all three scorers over one email."""
    return ScoreBreakdown(
        urgency=score_urgency(
            matches, content=content, subject=subject, received_at=received_at, now=now
        ),
        business_relevance=score_business_relevance(matches, content=content, sender=sender),
        spam=score_spam(matches, content=content, sender=sender, subject=subject),
    )
