"""Email analyzer service.

Runs the deterministic pipeline for each email:
1. Extract signals from subject, snippet and body preview
2. Score urgency, business relevance and spam likelihood
3. Classify category, then derive priority
4. Explain: action flag, suggested actions, reasoning

Analysis itself has no side effects. Persistence is optional and goes
through an EmailAnalysisRepository supplied by the caller.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import UTC, datetime

import structlog
from sqlalchemy.exc import SQLAlchemyError

from inbox_signals.analysis import (
    SignalExtractor,
    build_reasoning,
    classify_category,
    compose_content,
    derive_priority,
    is_action_required,
    score_all,
    suggest_actions,
)
from inbox_signals.repositories.email_analysis import EmailAnalysisRepository
from inbox_signals.schemas.analysis import EmailAnalysisResult, EmailSignal, StoredAnalysis

logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current UTC time."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to a naive datetime; aware datetimes pass through."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class EmailAnalyzerService:
    """Scores and classifies emails.

    Example:
        analyzer = EmailAnalyzerService()
        result = analyzer.analyze_email(signal)

        # Batch: failures are logged and skipped
        results = analyzer.analyze_emails(signals)

        # With persistence
        analyzer = EmailAnalyzerService(repository=EmailAnalysisRepository(session))
        stored = await analyzer.analyze_and_store(signal)
    """

    def __init__(
        self,
        extractor: SignalExtractor | None = None,
        repository: EmailAnalysisRepository | None = None,
        clock: Clock | None = None,
    ) -> None:
        """Initialize analyzer.

        Args:
            extractor: Signal extractor, defaults to the curated lists.
            repository: Persistence collaborator for ``analyze_and_store``.
            clock: Source of "now" when a call does not pass one.
        """
        self._extractor = extractor or SignalExtractor()
        self._repository = repository
        self._clock = clock or utc_now

    def analyze_email(
        self, signal: EmailSignal, now: datetime | None = None
    ) -> EmailAnalysisResult:
        """Analyze one email.

        Args:
            signal: Email metadata.
            now: Evaluation time. Recency scoring is measured against it;
                naive times are taken as UTC, like ``received_at``.

        Returns:
            The analysis result.
        """
        now = as_utc(now or self._clock())
        content = compose_content(signal.subject, signal.snippet, signal.body_preview)
        matches = self._extractor.extract(content)

        scores = score_all(
            matches,
            content=content,
            subject=signal.subject,
            sender=signal.from_email,
            received_at=signal.received_at,
            now=now,
        )
        urgency = scores["urgency"]
        business = scores["business_relevance"]

        category = classify_category(
            urgency=urgency,
            business_relevance=business,
            spam=scores["spam"],
            content=content,
            matches=matches,
        )
        priority = derive_priority(category, urgency=urgency, business_relevance=business)

        return EmailAnalysisResult(
            user_id=signal.user_id,
            email_id=signal.email_id,
            priority=priority,
            category=category,
            urgency_score=urgency,
            business_relevance_score=business,
            spam_score=scores["spam"],
            action_required=is_action_required(category, content),
            matched_keywords=matches.keywords(),
            suggested_actions=suggest_actions(category, urgency),
            reasoning=build_reasoning(
                category, priority, urgency=urgency, business_relevance=business
            ),
        )

    def analyze_emails(
        self, signals: Iterable[EmailSignal], now: datetime | None = None
    ) -> list[EmailAnalysisResult]:
        """Analyze a batch of emails independently.

        A failing email is logged and skipped, so the result can be shorter
        than the input.

        Args:
            signals: Emails to analyze.
            now: Shared evaluation time for the whole batch.

        Returns:
            Successfully analyzed results, in input order.
        """
        now = now or self._clock()
        results = []
        failed = 0
        for signal in signals:
            try:
                results.append(self.analyze_email(signal, now))
            except Exception:
                failed += 1
                logger.exception(
                    "email_analysis_failed",
                    user_id=signal.user_id,
                    email_id=signal.email_id,
                )

        logger.info("email_batch_analyzed", analyzed=len(results), failed=failed)
        return results

    async def analyze_and_store(
        self, signal: EmailSignal, now: datetime | None = None
    ) -> StoredAnalysis:
        """Analyze an email and persist the result.

        A failed write is logged and the unsaved result is returned with
        ``persisted=False``.

        Raises:
            RuntimeError: If the service has no repository.
        """
        analysis = self.analyze_email(signal, now)
        return await self._store(analysis)

    async def analyze_and_store_emails(
        self, signals: Iterable[EmailSignal], now: datetime | None = None
    ) -> list[StoredAnalysis]:
        """Analyze and persist a batch; analysis failures are skipped."""
        stored = []
        for analysis in self.analyze_emails(signals, now):
            stored.append(await self._store(analysis))
        return stored

    async def _store(self, analysis: EmailAnalysisResult) -> StoredAnalysis:
        if self._repository is None:
            raise RuntimeError("EmailAnalyzerService has no repository configured")

        try:
            row = await self._repository.save(analysis)
        except SQLAlchemyError as e:
            await logger.aerror(
                "email_analysis_save_failed",
                user_id=analysis.user_id,
                email_id=analysis.email_id,
                error=str(e),
            )
            return StoredAnalysis(analysis=analysis, persisted=False)

        await logger.ainfo(
            "email_analyzed",
            user_id=analysis.user_id,
            email_id=analysis.email_id,
            category=analysis.category.value,
            priority=analysis.priority.value,
            urgency_score=analysis.urgency_score,
        )
        return StoredAnalysis(
            analysis=analysis,
            record_id=row.id,
            analyzed_at=row.analyzed_at,
            persisted=True,
        )

    @staticmethod
    def rank_by_priority(results: Iterable[EmailAnalysisResult]) -> list[EmailAnalysisResult]:
        """Sort results by priority, then urgency score, highest first."""
        return sorted(
            results,
            key=lambda r: (r.priority.rank, r.urgency_score),
            reverse=True,
        )
