from __future__ import annotations

from datetime import timedelta

from profilesync.domain.model import ActorRef, Domain, Severity
from profilesync.domain.sync import (
    Conflict,
    DetectionOutcome,
    DetectionThresholds,
    NoConflict,
    detect_conflict,
)
from tests.support.updates import BASE_TIME, make_field, make_update


def test_no_prior_value_is_no_conflict() -> None:
    decision = detect_conflict(None, make_update(["Math"]))

    assert isinstance(decision, NoConflict)
    assert decision.outcome is DetectionOutcome.NO_CONFLICT


def test_equal_values_are_no_conflict_even_across_numeric_types() -> None:
    current = make_field(7, domain=Domain.BEHAVIORAL, field="attentionSpan")
    proposed = make_update(7.0, domain=Domain.BEHAVIORAL, field="attentionSpan", confidence=10)

    assert isinstance(detect_conflict(current, proposed), NoConflict)


def test_boolean_is_not_equal_to_number() -> None:
    current = make_field(True, domain=Domain.RISK_FACTORS, field="suicidalIdeation")  # noqa: FBT003
    proposed = make_update(1, domain=Domain.RISK_FACTORS, field="suicidalIdeation")

    assert isinstance(detect_conflict(current, proposed), Conflict)


def test_sensitive_numeric_divergence_beyond_threshold_is_high() -> None:
    current = make_field(20, domain=Domain.RISK_FACTORS, field="overallRiskLevel")
    proposed = make_update(75, domain=Domain.RISK_FACTORS, field="overallRiskLevel")

    decision = detect_conflict(current, proposed)

    assert isinstance(decision, Conflict)
    assert decision.severity is Severity.HIGH


def test_sensitive_numeric_divergence_within_threshold_is_not_high() -> None:
    current = make_field(
        20, domain=Domain.RISK_FACTORS, field="overallRiskLevel", confidence=90
    )
    proposed = make_update(
        45, domain=Domain.RISK_FACTORS, field="overallRiskLevel", confidence=40
    )

    decision = detect_conflict(current, proposed)

    assert isinstance(decision, Conflict)
    assert decision.severity is Severity.MEDIUM  # same (anonymous) ai actor


def test_sensitive_categorical_mismatch_is_high() -> None:
    current = make_field(["peanuts"], domain=Domain.HEALTH, field="allergies")
    proposed = make_update(["peanuts", "pollen"], domain=Domain.HEALTH, field="allergies")

    decision = detect_conflict(current, proposed)

    assert isinstance(decision, Conflict)
    assert decision.severity is Severity.HIGH


def test_close_confidence_is_medium() -> None:
    current = make_field(["Math"], confidence=70, actor=ActorRef.ai("a"))
    proposed = make_update(["Art"], confidence=80, actor=ActorRef.ai("b"))

    decision = detect_conflict(current, proposed)

    assert isinstance(decision, Conflict)
    assert decision.severity is Severity.MEDIUM


def test_same_actor_contradicting_itself_is_medium() -> None:
    current = make_field(["Math"], confidence=80)
    proposed = make_update(["Math", "Physics"], confidence=40)

    decision = detect_conflict(current, proposed)

    assert isinstance(decision, Conflict)
    assert decision.severity is Severity.MEDIUM
    assert "contradicts" in decision.reason


def test_distant_confidence_from_different_actor_is_low() -> None:
    current = make_field(["Math"], confidence=90, actor=ActorRef.ai("a"))
    proposed = make_update(
        ["Art"],
        confidence=30,
        actor=ActorRef.human("teacher"),
        timestamp=BASE_TIME + timedelta(days=1),
    )

    decision = detect_conflict(current, proposed)

    assert isinstance(decision, Conflict)
    assert decision.severity is Severity.LOW


def test_missing_confidences_count_as_neutral() -> None:
    current = make_field(["Math"], confidence=None, actor=ActorRef.ai("a"))
    close = make_update(["Art"], confidence=60, actor=ActorRef.ai("b"))
    distant = make_update(["Art"], confidence=95, actor=ActorRef.ai("b"))

    close_decision = detect_conflict(current, close)
    distant_decision = detect_conflict(current, distant)

    assert isinstance(close_decision, Conflict)
    assert close_decision.severity is Severity.MEDIUM
    assert isinstance(distant_decision, Conflict)
    assert distant_decision.severity is Severity.LOW


def test_thresholds_are_tunable() -> None:
    strict = DetectionThresholds(sensitive_domains=frozenset({Domain.ACADEMIC}))
    current = make_field(["Math"], confidence=90, actor=ActorRef.ai("a"))
    proposed = make_update(["Art"], confidence=20, actor=ActorRef.ai("b"))

    decision = detect_conflict(current, proposed, thresholds=strict)

    assert isinstance(decision, Conflict)
    assert decision.severity is Severity.HIGH
