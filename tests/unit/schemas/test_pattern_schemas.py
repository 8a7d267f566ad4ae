"""Tests for pattern schemas."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from inbox_signals.schemas.pattern import (
    Feedback,
    JobValuePayload,
    PatternKey,
    PatternKind,
    PatternRecord,
    ResponseTimingPayload,
    TonePayload,
    parse_payload,
)


class TestPatternKey:
    """Tests for PatternKey."""

    def test_discriminator_normalized(self) -> None:
        """Test discriminators are stripped and lower-cased."""
        key = PatternKey(kind=PatternKind.COMMUNICATION_TONE, discriminator="  Business ")
        assert key.discriminator == "business"

    def test_blank_discriminator_rejected(self) -> None:
        """Test whitespace-only discriminators are invalid."""
        with pytest.raises(ValidationError):
            PatternKey(kind=PatternKind.JOB_VALUE_ESTIMATION, discriminator="   ")

    def test_separator_inside_discriminator(self) -> None:
        """Test kind and discriminator stay separate when the value has underscores."""
        key = PatternKey.customer("acme_builders")

        assert key.kind is PatternKind.CUSTOMER_CATEGORIZATION
        assert key.discriminator == "acme_builders"
        assert key != PatternKey(kind=PatternKind.CUSTOMER_CATEGORIZATION, discriminator="acme")

    def test_response_timing_default_segment(self) -> None:
        """Test the customer type defaults to general."""
        assert PatternKey.response_timing("High").discriminator == "high:general"
        assert PatternKey.response_timing("low", "Business").discriminator == "low:business"

    def test_hashable_and_str(self) -> None:
        """Test keys can be used in dicts and render for logs."""
        key = PatternKey.task_batching()

        assert {key: 1}[PatternKey.task_batching()] == 1
        assert str(key) == "task_batching[preference]"


class TestFeedback:
    """Tests for Feedback.from_label."""

    @pytest.mark.parametrize(
        ("label", "expected"),
        [
            ("approved", Feedback.POSITIVE),
            (" Accepted ", Feedback.POSITIVE),
            ("rejected", Feedback.NEGATIVE),
            ("modified", Feedback.NONE),
            (None, Feedback.NONE),
        ],
    )
    def test_from_label(self, label: str | None, expected: Feedback) -> None:
        """Test reviewer labels map onto feedback."""
        assert Feedback.from_label(label) is expected


class TestParsePayload:
    """Tests for parse_payload."""

    def test_selects_variant_by_kind(self) -> None:
        """Test the key's kind selects the payload model."""
        payload = parse_payload(
            PatternKind.JOB_VALUE_ESTIMATION,
            {"keyword": "repair", "average_value": 250.0, "last_value": 300.0},
        )

        assert isinstance(payload, JobValuePayload)
        assert payload.average_value == 250.0

    def test_kind_from_key_wins(self) -> None:
        """Test a stale kind inside the blob is overridden by the key."""
        payload = parse_payload(
            PatternKind.RESPONSE_TIMING,
            {
                "kind": "task_batching",
                "email_priority": "high",
                "customer_type": "general",
                "average_hours": 2.0,
                "last_hours": 2.0,
            },
        )
        assert isinstance(payload, ResponseTimingPayload)

    def test_invalid_payload(self) -> None:
        """Test missing fields fail validation."""
        with pytest.raises(ValidationError):
            parse_payload(PatternKind.JOB_VALUE_ESTIMATION, {"keyword": "repair"})

    def test_non_dict_payload(self) -> None:
        """Test non-object payloads fail validation."""
        with pytest.raises(ValidationError):
            parse_payload(PatternKind.TASK_BATCHING, "not json")


class TestTonePayload:
    """Tests for TonePayload dominant values."""

    def test_dominant_values(self) -> None:
        """Test the most frequent label is dominant."""
        payload = TonePayload(
            customer_type="business",
            tone_frequency={"friendly": 1, "professional": 3},
            formality_frequency={"formal": 2, "casual": 1},
        )

        assert payload.dominant_tone == "professional"
        assert payload.dominant_formality == "formal"
        assert payload.dominant_technicality is None


class TestPatternRecord:
    """Tests for PatternRecord bounds."""

    def test_confidence_bounded(self) -> None:
        """Test confidence outside [0, 1] is rejected."""
        with pytest.raises(ValidationError):
            PatternRecord(
                id=1,
                user_id="user-1",
                key=PatternKey.task_batching(),
                payload={
                    "kind": "task_batching",
                    "average_batch_size": 3,
                    "average_gap_minutes": 5,
                },
                confidence=1.2,
                occurrences=1,
                last_seen=datetime.now(UTC),
            )
