"""Adaptation engine.

Turns confident learned patterns into typed recommendations for
reply drafting and job estimation. Patterns below the confidence floor
are silently left out; corrupt patterns are skipped with a warning.
"""

from __future__ import annotations

from collections import Counter, defaultdict

import structlog

from inbox_signals.core.config import Config
from inbox_signals.repositories.base import CorruptPatternError, PatternStore
from inbox_signals.schemas.adaptation import (
    Adaptation,
    BatchingAdaptation,
    BusinessProfile,
    CustomerSegmentAdaptation,
    JobValueAdaptation,
    TimingAdaptation,
    ToneAdaptation,
)
from inbox_signals.schemas.pattern import (
    CustomerCategoryPayload,
    FollowUpTimingPayload,
    JobValuePayload,
    PatternKey,
    PatternKind,
    PatternRecord,
    ResponseTimingPayload,
    TaskBatchingPayload,
    TonePayload,
)

logger = structlog.get_logger(__name__)

# Segments that get a capped, fast follow-up recommendation
FAST_SEGMENTS = frozenset({"urgent", "high"})
FAST_FOLLOW_UP_HOURS = 2.0
DEFAULT_FOLLOW_UP_HOURS = 24.0
DEFAULT_TONE = "professional"
MAX_SUGGESTIONS = 5

CONTEXT_KINDS: dict[str, frozenset[PatternKind]] = {
    "email_response": frozenset(
        {
            PatternKind.RESPONSE_TIMING,
            PatternKind.FOLLOW_UP_TIMING,
            PatternKind.COMMUNICATION_TONE,
            PatternKind.CUSTOMER_CATEGORIZATION,
        }
    ),
    "job_estimation": frozenset(
        {
            PatternKind.JOB_VALUE_ESTIMATION,
            PatternKind.CUSTOMER_CATEGORIZATION,
            PatternKind.TASK_BATCHING,
        }
    ),
}


def _timing(segment: str, average_hours: float | None) -> tuple[float, str]:
    """Recommended hours and urgency label for a timing segment."""
    hours = DEFAULT_FOLLOW_UP_HOURS if average_hours is None else average_hours
    if segment in FAST_SEGMENTS:
        return min(hours, FAST_FOLLOW_UP_HOURS), "high"
    if segment == "low":
        return hours, "low"
    return hours, "medium"


def _weighted_mean(pairs: list[tuple[float, int]]) -> float | None:
    total = sum(weight for _, weight in pairs)
    if not total:
        return None
    return round(sum(value * weight for value, weight in pairs) / total, 2)


def to_adaptation(pattern: PatternRecord) -> Adaptation:
    """Map a pattern to the recommendation for its kind.

    Args:
        pattern: Learned pattern.

    Returns:
        The typed adaptation.
    """
    payload = pattern.payload
    common = {
        "kind": pattern.key.kind,
        "discriminator": pattern.key.discriminator,
        "confidence": pattern.confidence,
    }

    if isinstance(payload, ResponseTimingPayload):
        hours, label = _timing(payload.email_priority, payload.average_hours)
        hours = round(hours, 1)
        return TimingAdaptation(
            **common,
            recommended_follow_up_hours=hours,
            urgency_label=label,
            customer_type=payload.customer_type,
            segment=payload.email_priority,
            average_hours=round(payload.average_hours, 2),
            recommendation=(
                f"Respond to {payload.email_priority}-priority {payload.customer_type} "
                f"emails within {hours:g} hours based on your historical response patterns."
            ),
        )

    if isinstance(payload, FollowUpTimingPayload):
        hours, label = _timing(payload.customer_value, payload.average_hours)
        hours = round(hours, 1)
        return TimingAdaptation(
            **common,
            recommended_follow_up_hours=hours,
            urgency_label=label,
            customer_type=payload.customer_type,
            segment=payload.customer_value,
            average_hours=round(payload.average_hours, 2),
            recommendation=(
                f"For {payload.customer_value}-value {payload.customer_type} customers, "
                f"follow up within {hours:g} hours based on your historical response patterns."
            ),
        )

    if isinstance(payload, TonePayload):
        if payload.customer_type == "business":
            tone, vocabulary, structure = "formal", "professional", "structured"
        else:
            tone, vocabulary, structure = "casual", "accessible", "conversational"
        tone = payload.dominant_formality or tone
        if payload.dominant_technicality == "technical":
            vocabulary = "technical"
        return ToneAdaptation(
            **common,
            tone=tone,
            vocabulary=vocabulary,
            structure=structure,
            recommendation=(
                f"Use {tone} language with {vocabulary} vocabulary "
                f"for {payload.customer_type} customers."
            ),
        )

    if isinstance(payload, CustomerCategoryPayload):
        recommendation = f"Treat {payload.identifier} as a {payload.category} customer."
        if payload.average_job_value is not None:
            recommendation += f" Their jobs average ${payload.average_job_value:,.2f}."
        return CustomerSegmentAdaptation(
            **common,
            identifier=payload.identifier,
            category=payload.category,
            average_job_value=payload.average_job_value,
            recommendation=recommendation,
        )

    if isinstance(payload, JobValuePayload):
        estimate = round(payload.average_value, 2)
        return JobValueAdaptation(
            **common,
            keyword=payload.keyword,
            estimated_value=estimate,
            recommendation=(
                f"Similar {payload.keyword} jobs typically cost around ${estimate:,.2f}."
            ),
        )

    assert isinstance(payload, TaskBatchingPayload)
    batch_size = max(1, round(payload.average_batch_size))
    interval = round(payload.average_gap_minutes)
    return BatchingAdaptation(
        **common,
        batch_size=batch_size,
        interval_minutes=interval,
        recommendation=(
            f"Process tasks in batches of {batch_size} with {interval} minute intervals."
        ),
    )


class AdaptationEngine:
    """Reads learned patterns back as recommendations.

    Example:
        engine = AdaptationEngine(PatternRepository(session), config)
        adaptations = await engine.list_adaptations("user-1")
        timing = await engine.apply_adaptation(
            "user-1", PatternKey.response_timing("high", "business")
        )
        if timing is None:
            ...  # nothing learned yet, use defaults
    """

    def __init__(self, store: PatternStore, config: Config | None = None) -> None:
        """Initialize engine.

        Args:
            store: Pattern store collaborator.
            config: Confidence thresholds, defaults when omitted.
        """
        self._store = store
        self._config = config or Config()

    @property
    def floor(self) -> float:
        """Minimum confidence for a pattern to become an adaptation."""
        return self._config.adaptation_floor

    async def list_adaptations(self, user_id: str) -> list[Adaptation]:
        """List recommendations from a user's confident, active patterns.

        Args:
            user_id: Owning user.

        Returns:
            Adaptations ordered by confidence, highest first.
        """
        patterns = await self._store.list_for_user(
            user_id, active_only=True, min_confidence=self.floor
        )
        return [to_adaptation(p) for p in patterns if p.confidence >= self.floor]

    async def adaptations_by_kind(self, user_id: str) -> dict[PatternKind, list[Adaptation]]:
        """Group a user's adaptations by pattern kind."""
        grouped: dict[PatternKind, list[Adaptation]] = defaultdict(list)
        for adaptation in await self.list_adaptations(user_id):
            grouped[adaptation.kind].append(adaptation)
        return dict(grouped)

    async def apply_adaptation(self, user_id: str, key: PatternKey) -> Adaptation | None:
        """Look up the adaptation for one key.

        Args:
            user_id: Owning user.
            key: Pattern key.

        Returns:
            The adaptation, or None when the pattern is missing, inactive,
            corrupt, or below the confidence floor.
        """
        try:
            pattern = await self._store.find(user_id, key)
        except CorruptPatternError:
            await logger.awarning("pattern_payload_corrupt", user_id=user_id, key=str(key))
            return None

        if pattern is None or not pattern.is_active or pattern.confidence < self.floor:
            return None
        return to_adaptation(pattern)

    async def get_business_profile(self, user_id: str) -> BusinessProfile:
        """Summarize what has been learned about a user's business.

        Args:
            user_id: Owning user.

        Returns:
            Profile built from active patterns above the profile threshold.
        """
        patterns = await self._store.list_for_user(
            user_id, active_only=True, min_confidence=self._config.profile_threshold
        )

        tones: Counter[str] = Counter()
        customer_types: list[str] = []
        job_values: list[tuple[float, int]] = []
        response_hours: dict[str, list[tuple[float, int]]] = defaultdict(list)

        for pattern in patterns:
            payload = pattern.payload
            if isinstance(payload, TonePayload):
                tones.update(payload.tone_frequency)
            elif isinstance(payload, CustomerCategoryPayload):
                if payload.category not in customer_types:
                    customer_types.append(payload.category)
            elif isinstance(payload, JobValuePayload):
                job_values.append((payload.average_value, pattern.occurrences))
            elif isinstance(payload, ResponseTimingPayload):
                response_hours[payload.email_priority].append(
                    (payload.average_hours, pattern.occurrences)
                )

        hours_by_priority = {}
        for priority, pairs in response_hours.items():
            mean = _weighted_mean(pairs)
            if mean is not None:
                hours_by_priority[priority] = mean

        return BusinessProfile(
            user_id=user_id,
            communication_tone=tones.most_common(1)[0][0] if tones else DEFAULT_TONE,
            customer_types=customer_types,
            average_job_value=_weighted_mean(job_values),
            response_hours_by_priority=hours_by_priority,
            patterns_considered=len(patterns),
        )

    async def contextual_suggestions(self, user_id: str, context: str) -> list[str]:
        """Suggestions relevant to what the user is doing.

        Args:
            user_id: Owning user.
            context: "email_response" or "job_estimation".

        Returns:
            Up to five recommendation sentences, most confident first.

        Raises:
            ValueError: If the context is unknown.
        """
        kinds = CONTEXT_KINDS.get(context)
        if kinds is None:
            raise ValueError(
                f"Unknown suggestion context {context!r}, "
                f"expected one of {', '.join(sorted(CONTEXT_KINDS))}"
            )

        patterns = await self._store.list_for_user(
            user_id, active_only=True, min_confidence=self._config.suggestion_threshold
        )
        suggestions = [
            to_adaptation(p).recommendation for p in patterns if p.key.kind in kinds
        ]
        return suggestions[:MAX_SUGGESTIONS]
