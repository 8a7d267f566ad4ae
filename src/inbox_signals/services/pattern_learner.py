"""Pattern learner service.

Folds observations into per-user learned patterns. Each observation
updates a running average, bumps the occurrence count by one and moves
confidence by a kind-specific step:

    new_average = (old_average * old_occurrences + value) / (old_occurrences + 1)

Writes are conditional on the occurrence count that was read, and
updates for the same key are serialized per learner instance, so
concurrent observations are never lost.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog

from inbox_signals.analysis.vocabulary import analyze_tone, extract_job_keywords
from inbox_signals.core.config import Config
from inbox_signals.repositories.base import (
    CorruptPatternError,
    PatternConflictError,
    PatternNotFoundError,
    PatternStore,
    PatternStoreError,
)
from inbox_signals.schemas.pattern import (
    RECENT_SAMPLES,
    CustomerCategoryPayload,
    Feedback,
    FollowUpTimingPayload,
    JobValuePayload,
    PatternCreate,
    PatternKey,
    PatternKind,
    PatternPayload,
    PatternRecord,
    PatternUpdate,
    ResponseTimingPayload,
    TaskBatchingPayload,
    TonePayload,
)

logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime]
SeedFn = Callable[[], PatternPayload]
FoldFn = Callable[[PatternPayload, int], PatternPayload]

GENERAL_JOB_KEYWORD = "general"


@dataclass(frozen=True)
class ConfidencePolicy:
    """How confidence starts and moves for one pattern kind."""

    seed: float
    step: float
    floor: float
    ground_truth_step: float = 0.2
    negative_step: float = 0.2
    ceiling: float = 1.0
    positive_seed: float | None = None

    def initial(self, feedback: Feedback) -> float:
        """Confidence of a newly created pattern."""
        if feedback is Feedback.POSITIVE and self.positive_seed is not None:
            return self.clamp(self.positive_seed)
        return self.clamp(self.seed)

    def next(self, confidence: float, feedback: Feedback) -> float:
        """Confidence after folding one more observation."""
        if feedback is Feedback.POSITIVE:
            return self.clamp(confidence + self.ground_truth_step)
        if feedback is Feedback.NEGATIVE:
            return self.clamp(confidence - self.negative_step)
        return self.clamp(confidence + self.step)

    def clamp(self, confidence: float) -> float:
        """Bound confidence to [0, ceiling], rounding off float drift."""
        return round(min(self.ceiling, max(0.0, confidence)), 6)

    def is_active(self, confidence: float) -> bool:
        """Whether a pattern folded to this confidence stays active.

        New patterns always start active; only decay to the floor
        deactivates them.
        """
        return confidence > self.floor


POLICIES: dict[PatternKind, ConfidencePolicy] = {
    PatternKind.RESPONSE_TIMING: ConfidencePolicy(seed=0.3, step=0.1, floor=0.1),
    PatternKind.FOLLOW_UP_TIMING: ConfidencePolicy(seed=0.2, step=0.1, floor=0.1),
    PatternKind.COMMUNICATION_TONE: ConfidencePolicy(
        seed=0.1, step=0.1, floor=0.1, positive_seed=0.3
    ),
    PatternKind.CUSTOMER_CATEGORIZATION: ConfidencePolicy(seed=0.4, step=0.1, floor=0.2),
    PatternKind.JOB_VALUE_ESTIMATION: ConfidencePolicy(seed=0.3, step=0.05, floor=0.1),
    PatternKind.TASK_BATCHING: ConfidencePolicy(seed=0.1, step=0.05, floor=0.05, ceiling=0.9),
}


@dataclass(frozen=True)
class LearningResult:
    """Outcome of folding one observation.

    Attributes:
        pattern: Pattern state after the observation. When ``persisted`` is
            False this is the computed but unsaved state, or None if the
            stored pattern could not even be read.
        persisted: Whether the store accepted the write.
        created: Whether this observation created the pattern.
    """

    pattern: PatternRecord | None
    persisted: bool
    created: bool


@dataclass(frozen=True)
class _Planned:
    record: PatternRecord
    was_active: bool | None


@dataclass
class _KeyLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    holders: int = 0


def running_average(average: float, occurrences: int, value: float) -> float:
    """Fold one value into an average taken over ``occurrences`` values."""
    return (average * occurrences + value) / (occurrences + 1)


def _recent(samples: list[float], value: float) -> list[float]:
    return [*samples, value][-RECENT_SAMPLES:]


def _count(frequency: dict[str, int], label: str) -> dict[str, int]:
    counts = dict(frequency)
    counts[label] = counts.get(label, 0) + 1
    return counts


def _label(value: str) -> str:
    return value.strip().lower()


def _require_non_negative(name: str, value: float) -> None:
    if value < 0:
        raise ValueError(f"{name} must not be negative, got {value}")


def utc_now() -> datetime:
    """Return the current UTC time."""
    return datetime.now(UTC)


class PatternLearner:
    """Learns per-user workflow patterns from observations.

    Example:
        learner = PatternLearner(PatternRepository(session))
        result = await learner.learn_response_timing(
            "user-1", priority="high", response_hours=1.5, customer_type="business"
        )
        if not result.persisted:
            ...  # caller decides whether an unsaved pattern is acceptable
    """

    def __init__(
        self,
        store: PatternStore,
        *,
        max_retries: int = 5,
        clock: Clock | None = None,
    ) -> None:
        """Initialize learner.

        Args:
            store: Pattern store collaborator.
            max_retries: Attempts per observation when a conditional write
                loses a race.
            clock: Source of ``last_seen`` timestamps.

        Raises:
            ValueError: If max_retries is less than 1.
        """
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self._store = store
        self._max_retries = max_retries
        self._clock = clock or utc_now
        # Only keys with an observation in flight have an entry
        self._locks: dict[tuple[str, PatternKey], _KeyLock] = {}

    @classmethod
    def from_config(
        cls, store: PatternStore, config: Config, clock: Clock | None = None
    ) -> PatternLearner:
        """Create a learner using the configured retry budget."""
        return cls(store, max_retries=config.max_update_retries, clock=clock)

    @asynccontextmanager
    async def _serialized(self, user_id: str, key: PatternKey) -> AsyncIterator[None]:
        slot = (user_id, key)
        entry = self._locks.get(slot)
        if entry is None:
            entry = self._locks[slot] = _KeyLock()
        entry.holders += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.holders -= 1
            if entry.holders == 0:
                del self._locks[slot]

    async def observe(
        self,
        user_id: str,
        key: PatternKey,
        *,
        seed: SeedFn,
        fold: FoldFn,
        feedback: Feedback = Feedback.NONE,
    ) -> LearningResult:
        """Fold one observation into the pattern stored under a key.

        Args:
            user_id: Owning user.
            key: Pattern key.
            seed: Builds the payload of a new pattern from the observation.
            fold: Combines a stored payload and its occurrence count with
                the observation.
            feedback: Outcome attached to the observation.

        Returns:
            Learning result; never raises for store failures.
        """
        async with self._serialized(user_id, key):
            planned: _Planned | None = None
            for attempt in range(1, self._max_retries + 1):
                try:
                    planned = await self._plan(user_id, key, seed, fold, feedback)
                except PatternStoreError as e:
                    await logger.aerror(
                        "pattern_read_failed", user_id=user_id, key=str(key), error=str(e)
                    )
                    return LearningResult(pattern=None, persisted=False, created=False)

                created = planned.record.id is None
                try:
                    stored = await self._write(planned.record)
                except (PatternConflictError, PatternNotFoundError):
                    await logger.awarning(
                        "pattern_update_conflict",
                        user_id=user_id,
                        key=str(key),
                        attempt=attempt,
                    )
                    continue
                except PatternStoreError as e:
                    await logger.aerror(
                        "pattern_write_failed", user_id=user_id, key=str(key), error=str(e)
                    )
                    return LearningResult(pattern=planned.record, persisted=False, created=created)

                await self._log_learned(stored, planned.was_active, created)
                return LearningResult(pattern=stored, persisted=True, created=created)

            await logger.aerror(
                "pattern_update_abandoned",
                user_id=user_id,
                key=str(key),
                attempts=self._max_retries,
            )
            return LearningResult(
                pattern=planned.record if planned else None,
                persisted=False,
                created=bool(planned and planned.record.id is None),
            )

    async def _plan(
        self,
        user_id: str,
        key: PatternKey,
        seed: SeedFn,
        fold: FoldFn,
        feedback: Feedback,
    ) -> _Planned:
        """Read the stored pattern and compute its next state."""
        policy = POLICIES[key.kind]
        now = self._clock()

        try:
            existing = await self._store.find(user_id, key)
        except CorruptPatternError as e:
            if e.pattern_id is None or e.occurrences is None:
                raise
            await logger.awarning(
                "pattern_payload_corrupt",
                user_id=user_id,
                key=str(key),
                pattern_id=e.pattern_id,
                action="reseed",
            )
            previous = e.confidence if e.confidence is not None else policy.seed
            confidence = policy.next(policy.clamp(previous), feedback)
            record = PatternRecord(
                id=e.pattern_id,
                user_id=user_id,
                key=key,
                payload=seed(),
                confidence=confidence,
                occurrences=max(e.occurrences, 0) + 1,
                is_active=policy.is_active(confidence),
                last_seen=now,
            )
            return _Planned(record=record, was_active=None)

        if existing is None:
            confidence = policy.initial(feedback)
            record = PatternRecord(
                id=None,
                user_id=user_id,
                key=key,
                payload=seed(),
                confidence=confidence,
                occurrences=1,
                is_active=True,
                last_seen=now,
            )
            return _Planned(record=record, was_active=None)

        confidence = policy.next(existing.confidence, feedback)
        record = existing.model_copy(
            update={
                "payload": fold(existing.payload, existing.occurrences),
                "confidence": confidence,
                "occurrences": existing.occurrences + 1,
                "is_active": policy.is_active(confidence),
                "last_seen": now,
            }
        )
        return _Planned(record=record, was_active=existing.is_active)

    async def _write(self, record: PatternRecord) -> PatternRecord:
        if record.id is None:
            return await self._store.create(
                PatternCreate(
                    user_id=record.user_id,
                    key=record.key,
                    payload=record.payload,
                    confidence=record.confidence,
                    occurrences=record.occurrences,
                    is_active=record.is_active,
                    last_seen=record.last_seen,
                )
            )
        return await self._store.update(
            record.id,
            PatternUpdate(
                payload=record.payload,
                confidence=record.confidence,
                occurrences=record.occurrences,
                is_active=record.is_active,
                last_seen=record.last_seen,
            ),
            expected_occurrences=record.occurrences - 1,
        )

    async def _log_learned(
        self, pattern: PatternRecord, was_active: bool | None, created: bool
    ) -> None:
        await logger.ainfo(
            "pattern_learned",
            user_id=pattern.user_id,
            key=str(pattern.key),
            confidence=pattern.confidence,
            occurrences=pattern.occurrences,
            created=created,
        )
        if was_active and not pattern.is_active:
            await logger.ainfo(
                "pattern_deactivated",
                user_id=pattern.user_id,
                key=str(pattern.key),
                confidence=pattern.confidence,
            )
        elif was_active is False and pattern.is_active:
            await logger.ainfo(
                "pattern_reactivated",
                user_id=pattern.user_id,
                key=str(pattern.key),
                confidence=pattern.confidence,
            )

    async def learn_response_timing(
        self,
        user_id: str,
        *,
        priority: str,
        response_hours: float,
        customer_type: str | None = None,
        feedback: Feedback = Feedback.NONE,
    ) -> LearningResult:
        """Learn how quickly the user answers emails of a priority.

        Args:
            user_id: Owning user.
            priority: Email priority (urgent/high/medium/low).
            response_hours: Hours between receipt and reply.
            customer_type: Customer segment, "general" when unknown.
            feedback: Outcome attached to the observation.

        Raises:
            ValueError: If response_hours is negative.
        """
        _require_non_negative("response_hours", response_hours)
        email_priority = _label(priority)
        segment = _label(customer_type or "general")
        key = PatternKey.response_timing(email_priority, segment)

        def seed() -> PatternPayload:
            return ResponseTimingPayload(
                email_priority=email_priority,
                customer_type=segment,
                average_hours=response_hours,
                last_hours=response_hours,
                recent_hours=[response_hours],
            )

        def fold(payload: PatternPayload, occurrences: int) -> PatternPayload:
            assert isinstance(payload, ResponseTimingPayload)
            return payload.model_copy(
                update={
                    "average_hours": running_average(
                        payload.average_hours, occurrences, response_hours
                    ),
                    "last_hours": response_hours,
                    "recent_hours": _recent(payload.recent_hours, response_hours),
                }
            )

        return await self.observe(user_id, key, seed=seed, fold=fold, feedback=feedback)

    async def learn_follow_up_timing(
        self,
        user_id: str,
        *,
        customer_type: str,
        customer_value: str,
        follow_up_hours: float,
        feedback: Feedback = Feedback.NONE,
    ) -> LearningResult:
        """Learn how long the user waits before following up.

        Args:
            user_id: Owning user.
            customer_type: Customer segment.
            customer_value: Value band (high/medium/low).
            follow_up_hours: Hours until the follow-up was sent.
            feedback: Outcome attached to the observation.

        Raises:
            ValueError: If follow_up_hours is negative.
        """
        _require_non_negative("follow_up_hours", follow_up_hours)
        segment = _label(customer_type)
        value_band = _label(customer_value)
        key = PatternKey.follow_up_timing(segment, value_band)

        def seed() -> PatternPayload:
            return FollowUpTimingPayload(
                customer_type=segment,
                customer_value=value_band,
                average_hours=follow_up_hours,
                last_hours=follow_up_hours,
                recent_hours=[follow_up_hours],
            )

        def fold(payload: PatternPayload, occurrences: int) -> PatternPayload:
            assert isinstance(payload, FollowUpTimingPayload)
            return payload.model_copy(
                update={
                    "average_hours": running_average(
                        payload.average_hours, occurrences, follow_up_hours
                    ),
                    "last_hours": follow_up_hours,
                    "recent_hours": _recent(payload.recent_hours, follow_up_hours),
                }
            )

        return await self.observe(user_id, key, seed=seed, fold=fold, feedback=feedback)

    async def learn_communication_tone(
        self,
        user_id: str,
        *,
        customer_type: str,
        content: str | None = None,
        tone: str | None = None,
        context: str | None = None,
        feedback: Feedback = Feedback.NONE,
    ) -> LearningResult:
        """Learn which tone the user writes in for a customer segment.

        Formality and technicality are derived from ``content``; the tone
        label defaults to the derived formality.

        Args:
            user_id: Owning user.
            customer_type: Customer segment.
            content: Message the user sent or approved.
            tone: Explicit tone label, e.g. "professional".
            context: Free-text context of the message.
            feedback: Outcome attached to the observation, e.g. an approved draft.
        """
        profile = analyze_tone(content)
        label = (tone or profile["formality"]).strip().lower()
        key = PatternKey.communication_tone(customer_type)

        def seed() -> PatternPayload:
            return TonePayload(
                customer_type=key.discriminator,
                tone_frequency={label: 1},
                formality_frequency={profile["formality"]: 1},
                technicality_frequency={profile["technicality"]: 1},
                last_tone=label,
                last_context=context,
            )

        def fold(payload: PatternPayload, occurrences: int) -> PatternPayload:
            assert isinstance(payload, TonePayload)
            return payload.model_copy(
                update={
                    "tone_frequency": _count(payload.tone_frequency, label),
                    "formality_frequency": _count(
                        payload.formality_frequency, profile["formality"]
                    ),
                    "technicality_frequency": _count(
                        payload.technicality_frequency, profile["technicality"]
                    ),
                    "last_tone": label,
                    "last_context": context,
                }
            )

        return await self.observe(user_id, key, seed=seed, fold=fold, feedback=feedback)

    async def learn_customer_category(
        self,
        user_id: str,
        *,
        identifier: str,
        category: str,
        job_value: float | None = None,
        feedback: Feedback = Feedback.NONE,
    ) -> LearningResult:
        """Learn the category of a customer.

        The stored category is the most frequent label, the newest label
        winning ties. Job value is averaged only over observations that
        carry one.

        Args:
            user_id: Owning user.
            identifier: Customer email, domain or name.
            category: Category label, e.g. "commercial".
            job_value: Value of the job behind this observation.
            feedback: Outcome attached to the observation.
        """
        if job_value is not None:
            _require_non_negative("job_value", job_value)
        label = category.strip().lower()
        key = PatternKey.customer(identifier)

        def seed() -> PatternPayload:
            return CustomerCategoryPayload(
                identifier=key.discriminator,
                category=label,
                category_frequency={label: 1},
                average_job_value=job_value,
                job_value_samples=1 if job_value is not None else 0,
            )

        def fold(payload: PatternPayload, occurrences: int) -> PatternPayload:
            assert isinstance(payload, CustomerCategoryPayload)
            counts = _count(payload.category_frequency, label)
            winner = label if counts[label] >= max(counts.values()) else payload.category

            average = payload.average_job_value
            samples = payload.job_value_samples
            if job_value is not None:
                average = (
                    job_value
                    if average is None or samples == 0
                    else running_average(average, samples, job_value)
                )
                samples += 1

            return payload.model_copy(
                update={
                    "category": winner,
                    "category_frequency": counts,
                    "average_job_value": average,
                    "job_value_samples": samples,
                }
            )

        return await self.observe(user_id, key, seed=seed, fold=fold, feedback=feedback)

    async def learn_job_value(
        self,
        user_id: str,
        *,
        description: str,
        estimated_value: float,
        actual_value: float | None = None,
        feedback: Feedback = Feedback.NONE,
    ) -> list[LearningResult]:
        """Learn typical job values from a job description.

        The observation is folded into one pattern per trade keyword found
        in the description ("general" when none is found). A known actual
        value is ground truth: it is the value folded in, and it counts as
        positive feedback unless the caller passes explicit feedback.

        Args:
            user_id: Owning user.
            description: Job description text.
            estimated_value: Quoted or estimated value.
            actual_value: Final invoiced value, when known.
            feedback: Outcome attached to the observation.

        Returns:
            One learning result per keyword.
        """
        _require_non_negative("estimated_value", estimated_value)
        if actual_value is not None:
            _require_non_negative("actual_value", actual_value)
            if feedback is Feedback.NONE:
                feedback = Feedback.POSITIVE
        value = actual_value if actual_value is not None else estimated_value

        results = []
        for keyword in extract_job_keywords(description) or [GENERAL_JOB_KEYWORD]:
            key = PatternKey.job_value(keyword)

            def seed(keyword: str = keyword) -> PatternPayload:
                return JobValuePayload(
                    keyword=keyword,
                    average_value=value,
                    last_value=value,
                    actual_value=actual_value,
                )

            def fold(payload: PatternPayload, occurrences: int) -> PatternPayload:
                assert isinstance(payload, JobValuePayload)
                return payload.model_copy(
                    update={
                        "average_value": running_average(
                            payload.average_value, occurrences, value
                        ),
                        "last_value": value,
                        "actual_value": (
                            actual_value if actual_value is not None else payload.actual_value
                        ),
                    }
                )

            results.append(
                await self.observe(user_id, key, seed=seed, fold=fold, feedback=feedback)
            )
        return results

    async def learn_task_batching(
        self,
        user_id: str,
        *,
        batch_size: int,
        gap_minutes: float,
        task_types: Sequence[str] = (),
        feedback: Feedback = Feedback.NONE,
    ) -> LearningResult:
        """Learn how the user groups tasks.

        Args:
            user_id: Owning user.
            batch_size: Number of tasks completed together.
            gap_minutes: Minutes between consecutive tasks in the batch.
            task_types: Kinds of tasks in the batch.
            feedback: Outcome attached to the observation.

        Raises:
            ValueError: If batch_size is below 1 or gap_minutes is negative.
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        _require_non_negative("gap_minutes", gap_minutes)
        key = PatternKey.task_batching()
        types = list(dict.fromkeys(t.strip().lower() for t in task_types if t.strip()))

        def seed() -> PatternPayload:
            return TaskBatchingPayload(
                average_batch_size=batch_size,
                average_gap_minutes=gap_minutes,
                task_types=types,
            )

        def fold(payload: PatternPayload, occurrences: int) -> PatternPayload:
            assert isinstance(payload, TaskBatchingPayload)
            return payload.model_copy(
                update={
                    "average_batch_size": running_average(
                        payload.average_batch_size, occurrences, batch_size
                    ),
                    "average_gap_minutes": running_average(
                        payload.average_gap_minutes, occurrences, gap_minutes
                    ),
                    "task_types": list(dict.fromkeys([*payload.task_types, *types])),
                }
            )

        return await self.observe(user_id, key, seed=seed, fold=fold, feedback=feedback)
