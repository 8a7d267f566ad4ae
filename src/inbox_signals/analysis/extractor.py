"""Signal extraction from email text."""

from __future__ import annotations

import re
from dataclasses import dataclass

from inbox_signals.analysis.keywords import (
    ADMIN_PHRASES,
    BUSINESS_PHRASES,
    SPAM_PHRASES,
    URGENT_PHRASES,
)

_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: str | None) -> str:
    """Lower-case text and collapse runs of whitespace.

    Args:
        text: Raw text, may be None.

    Returns:
        Normalized text, empty string for missing input.
    """
    if not text:
        return ""
    return _WHITESPACE.sub(" ", str(text)).strip().lower()


def compose_content(subject: str | None, snippet: str | None, body_preview: str | None) -> str:
    """Join the searchable parts of an email into one normalized string."""
    parts = [normalize_text(subject), normalize_text(snippet), normalize_text(body_preview)]
    return " ".join(part for part in parts if part)


def _dedupe(phrases: tuple[str, ...] | list[str]) -> list[str]:
    seen: set[str] = set()
    ordered = []
    for phrase in phrases:
        if phrase not in seen:
            seen.add(phrase)
            ordered.append(phrase)
    return ordered


@dataclass(frozen=True, slots=True)
class SignalMatches:
    """Phrases found in a piece of text, per curated list.

    Each tuple keeps the order of its source list.
    """

    urgent: tuple[str, ...] = ()
    business: tuple[str, ...] = ()
    admin: tuple[str, ...] = ()
    spam: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        """Check whether nothing matched."""
        return not (self.urgent or self.business or self.admin or self.spam)

    def keywords(self, limit: int = 10) -> list[str]:
        """Ordered, de-duplicated urgent, business and admin matches.

        Args:
            limit: Maximum number of keywords returned.

        Returns:
            Keywords for display on the analysis record.
        """
        return _dedupe([*self.urgent, *self.business, *self.admin])[:limit]


class SignalExtractor:
    """Scans normalized text against the curated phrase lists."""

    def __init__(
        self,
        urgent: tuple[str, ...] = URGENT_PHRASES,
        business: tuple[str, ...] = BUSINESS_PHRASES,
        admin: tuple[str, ...] = ADMIN_PHRASES,
        spam: tuple[str, ...] = SPAM_PHRASES,
    ) -> None:
        """Initialize extractor.

        Args:
            urgent: Urgent phrases.
            business: Business phrases.
            admin: Administrative/informational phrases.
            spam: Spam indicator phrases.
        """
        self._urgent = tuple(_dedupe(urgent))
        self._business = tuple(_dedupe(business))
        self._admin = tuple(_dedupe(admin))
        self._spam = tuple(_dedupe(spam))

    def extract(self, text: str | None) -> SignalMatches:
        """Find every curated phrase contained in the text.

        Args:
            text: Raw or normalized text; None and empty yield no matches.

        Returns:
            SignalMatches with the phrases found per list.
        """
        content = normalize_text(text)
        if not content:
            return SignalMatches()

        return SignalMatches(
            urgent=tuple(p for p in self._urgent if p in content),
            business=tuple(p for p in self._business if p in content),
            admin=tuple(p for p in self._admin if p in content),
            spam=tuple(p for p in self._spam if p in content),
        )
