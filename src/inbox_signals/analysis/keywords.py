"""Curated phrase lists for signal extraction.

All phrases are lower case and matched by substring containment against
normalized text, so short phrases also match inside longer words.
"""

from __future__ import annotations

URGENT_PHRASES: tuple[str, ...] = (
    "urgent",
    "asap",
    "emergency",
    "critical",
    "immediate",
    "deadline",
    "time sensitive",
    "rush",
    "priority",
    "expires today",
    "action required",
    "overdue",
    "final notice",
    "last chance",
    # Trade call-outs
    "leak",
    "gas leak",
    "flood",
    "burst pipe",
    "blocked drain",
    "no power",
    "power outage",
    "electrical fault",
    "sparking",
    "no water",
    "no heating",
    "safety issue",
    "health hazard",
    "breakdown",
)

# Substrings marking an urgent phrase as a physical emergency (+25 instead of +15)
PHYSICAL_EMERGENCY_MARKERS: tuple[str, ...] = (
    "emergency",
    "leak",
    "flood",
    "burst",
    "no power",
    "power outage",
    "electrical fault",
    "sparking",
    "no water",
    "no heating",
    "hazard",
)

BUSINESS_PHRASES: tuple[str, ...] = (
    "invoice",
    "payment",
    "remittance",
    "deposit",
    "quote",
    "estimate",
    "contract",
    "proposal",
    "project",
    "meeting",
    "appointment",
    "schedule",
    "client",
    "customer",
    "order",
    "delivery",
    "service",
    "maintenance",
    "repair",
    "installation",
    "renovation",
    "booking",
    "site visit",
    "inspection",
    "compliance",
    "permit",
    "materials",
    "labour",
    "plumbing",
    "electrical",
)

# Business phrases weighted +12 in the keyword pass
FINANCIAL_PHRASES: frozenset[str] = frozenset({"invoice", "payment", "remittance", "deposit"})

SITE_VISIT_PHRASES: tuple[str, ...] = ("site visit", "site inspection", "on site", "on-site")
QUOTE_PHRASES: tuple[str, ...] = ("quote", "quotation", "estimate")
INVOICE_PHRASES: tuple[str, ...] = ("invoice", "payment")

ADMIN_PHRASES: tuple[str, ...] = (
    "notification",
    "newsletter",
    "report",
    "summary",
    "confirmation",
    "receipt",
    "statement",
    "reminder",
    "subscription",
    "account",
    "billing",
    "renewal",
    "terms",
    "policy",
    "tax",
    "certificate",
    "unsubscribe",
)

SPAM_PHRASES: tuple[str, ...] = (
    "free",
    "winner",
    "you won",
    "congratulations",
    "limited time",
    "click here",
    "act now",
    "make money",
    "work from home",
    "no obligation",
    "risk free",
    "guarantee",
    "amazing deal",
    "once in a lifetime",
    "special offer",
    "credit check",
)

FOLLOW_UP_PHRASES: tuple[str, ...] = ("follow up", "following up")

RESPONSE_REQUEST_PHRASES: tuple[str, ...] = (
    "please respond",
    "please confirm",
    "please reply",
    "please advise",
    "action required",
    "response required",
    "let me know",
    "get back to me",
    "awaiting your",
    "can you",
    "could you",
)

PERSONAL_EMAIL_DOMAINS: frozenset[str] = frozenset(
    {
        "gmail.com",
        "googlemail.com",
        "outlook.com",
        "hotmail.com",
        "live.com",
        "yahoo.com",
        "icloud.com",
        "me.com",
        "aol.com",
        "protonmail.com",
        "bigpond.com",
    }
)

# Vocabulary for learning tone and job patterns from message text
FORMAL_WORDS: frozenset[str] = frozenset(
    {"please", "kindly", "regarding", "furthermore", "therefore"}
)
CASUAL_WORDS: frozenset[str] = frozenset({"hey", "thanks", "great", "awesome", "cool"})
TECHNICAL_WORDS: frozenset[str] = frozenset(
    {"specification", "compliance", "regulation", "standard", "certification"}
)

JOB_KEYWORDS: tuple[str, ...] = (
    "installation",
    "repair",
    "maintenance",
    "upgrade",
    "inspection",
    "electrical",
    "wiring",
    "outlet",
    "switch",
    "panel",
    "circuit",
    "lighting",
    "meter",
    "safety",
    "emergency",
    "residential",
    "commercial",
)
