"""Tests for category and priority rules."""

from __future__ import annotations

import pytest

from inbox_signals.analysis.classifier import classify_category, derive_priority
from inbox_signals.analysis.extractor import SignalMatches
from inbox_signals.schemas.analysis import Category, Priority

NO_MATCHES = SignalMatches()
ADMIN_MATCHES = SignalMatches(admin=("receipt",))


def classify(
    *,
    urgency: int = 0,
    business: int = 30,
    spam: int = 0,
    content: str = "",
    matches: SignalMatches = NO_MATCHES,
) -> Category:
    """Classify with neutral defaults."""
    return classify_category(
        urgency=urgency,
        business_relevance=business,
        spam=spam,
        content=content,
        matches=matches,
    )


class TestClassifyCategory:
    """Tests for classify_category precedence."""

    def test_spam_beats_urgent(self) -> None:
        """Test spam 70 with urgency 90 is spam."""
        assert classify(urgency=90, spam=70) is Category.SPAM

    def test_spam_threshold_is_exclusive(self) -> None:
        """Test spam must exceed 60."""
        assert classify(urgency=90, spam=60) is Category.URGENT

    def test_urgent_beats_follow_up(self) -> None:
        """Test urgency over 70 wins over follow-up wording."""
        assert classify(urgency=71, content="just following up") is Category.URGENT

    def test_urgent_threshold_is_exclusive(self) -> None:
        """Test urgency must exceed 70."""
        assert classify(urgency=70) is Category.STANDARD

    def test_follow_up_beats_business(self) -> None:
        """Test follow-up wording wins over high business relevance."""
        assert classify(business=95, content="i wanted to follow up") is Category.FOLLOW_UP

    def test_business_beats_admin(self) -> None:
        """Test high business relevance wins over admin phrases."""
        assert classify(business=71, matches=ADMIN_MATCHES) is Category.STANDARD

    def test_admin(self) -> None:
        """Test admin phrases classify otherwise plain email."""
        assert classify(business=70, matches=ADMIN_MATCHES) is Category.ADMIN

    def test_default_standard(self) -> None:
        """Test nothing matching falls back to standard."""
        assert classify() is Category.STANDARD


class TestDerivePriority:
    """Tests for derive_priority."""

    def test_urgent_category_is_urgent(self) -> None:
        """Test the urgent category always yields urgent priority."""
        priority = derive_priority(Category.URGENT, urgency=0, business_relevance=0)
        assert priority is Priority.URGENT

    def test_very_high_urgency_is_urgent(self) -> None:
        """Test urgency over 80 is urgent whatever the category."""
        priority = derive_priority(Category.SPAM, urgency=81, business_relevance=0)
        assert priority is Priority.URGENT

    @pytest.mark.parametrize(
        ("urgency", "business"),
        [(61, 0), (80, 50), (41, 81)],
    )
    def test_high(self, urgency: int, business: int) -> None:
        """Test high priority thresholds."""
        priority = derive_priority(Category.STANDARD, urgency=urgency, business_relevance=business)
        assert priority is Priority.HIGH

    def test_low(self) -> None:
        """Test little urgency and relevance is low."""
        priority = derive_priority(Category.ADMIN, urgency=19, business_relevance=29)
        assert priority is Priority.LOW

    @pytest.mark.parametrize(
        ("urgency", "business"),
        [(20, 0), (0, 30), (40, 90), (60, 60)],
    )
    def test_medium(self, urgency: int, business: int) -> None:
        """Test everything else is medium."""
        priority = derive_priority(Category.STANDARD, urgency=urgency, business_relevance=business)
        assert priority is Priority.MEDIUM
