"""Suggested actions and reasoning for a classified email."""

from __future__ import annotations

from inbox_signals.analysis.keywords import RESPONSE_REQUEST_PHRASES
from inbox_signals.schemas.analysis import Category, Priority

PRIORITIZE_ACTION = "Prioritize this email"

CATEGORY_ACTIONS: dict[Category, tuple[str, ...]] = {
    Category.URGENT: ("Respond immediately", "Call the customer if needed"),
    Category.STANDARD: (
        "Review and respond within 24 hours",
        "Add to calendar if scheduling is required",
    ),
    Category.FOLLOW_UP: ("Check previous correspondence", "Respond with update"),
    Category.ADMIN: ("File for reference", "Review when convenient"),
    Category.SPAM: ("Mark as spam", "Block sender if needed"),
}

CATEGORY_SENTENCES: dict[Category, str] = {
    Category.URGENT: "Contains urgent indicators requiring immediate attention.",
    Category.STANDARD: "Standard email with {priority} priority.",
    Category.FOLLOW_UP: "Continues an earlier conversation that is waiting on an update.",
    Category.ADMIN: "Administrative or informational message.",
    Category.SPAM: "Contains spam indicators and should be reviewed carefully.",
}


def is_action_required(category: Category, content: str) -> bool:
    """Decide whether the recipient has to act on the email."""
    if category is Category.URGENT:
        return True
    if category is Category.SPAM:
        return False
    return any(phrase in content for phrase in RESPONSE_REQUEST_PHRASES)


def suggest_actions(category: Category, urgency: int) -> list[str]:
    """Static actions for the category, prioritized when urgency is high."""
    actions = list(CATEGORY_ACTIONS[category])
    if urgency > 70:
        actions.insert(0, PRIORITIZE_ACTION)
    return actions


def build_reasoning(
    category: Category, priority: Priority, *, urgency: int, business_relevance: int
) -> str:
    """Compose the short rationale shown next to the analysis.

    Order is fixed: urgency note, business note, category sentence.
    """
    parts = []
    if urgency > 70:
        parts.append(f"High urgency score ({urgency}) from urgent keywords or time sensitivity.")
    if business_relevance > 70:
        parts.append(
            f"High business relevance ({business_relevance}) based on content and sender."
        )
    parts.append(CATEGORY_SENTENCES[category].format(priority=priority.value))
    return " ".join(parts)
