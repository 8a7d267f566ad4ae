"""Category and priority decision rules.

Rules are evaluated in order and the first match wins, so a spam-like
email with urgent keywords is still spam.
"""

from __future__ import annotations

from inbox_signals.analysis.extractor import SignalMatches
from inbox_signals.analysis.keywords import FOLLOW_UP_PHRASES
from inbox_signals.schemas.analysis import Category, Priority

SPAM_THRESHOLD = 60
URGENT_THRESHOLD = 70
BUSINESS_THRESHOLD = 70


def classify_category(
    *,
    urgency: int,
    business_relevance: int,
    spam: int,
    content: str,
    matches: SignalMatches,
) -> Category:
    """Map scores and content to a category.

    Args:
        urgency: Urgency score.
        business_relevance: Business relevance score.
        spam: Spam score.
        content: Normalized email content.
        matches: Extracted signals.

    Returns:
        The first category whose rule matches.
    """
    if spam > SPAM_THRESHOLD:
        return Category.SPAM
    if urgency > URGENT_THRESHOLD:
        return Category.URGENT
    if any(phrase in content for phrase in FOLLOW_UP_PHRASES):
        return Category.FOLLOW_UP
    if business_relevance > BUSINESS_THRESHOLD:
        return Category.STANDARD
    if matches.admin:
        return Category.ADMIN
    return Category.STANDARD


def derive_priority(category: Category, *, urgency: int, business_relevance: int) -> Priority:
    """Derive priority once the category is known."""
    if category is Category.URGENT or urgency > 80:
        return Priority.URGENT
    if urgency > 60 or (business_relevance > 80 and urgency > 40):
        return Priority.HIGH
    if urgency < 20 and business_relevance < 30:
        return Priority.LOW
    return Priority.MEDIUM
