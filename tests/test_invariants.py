from __future__ import annotations

import logging

import pytest

from selfassess_behaviour.contracts import BehaviourContractViolation, QuestionState
from selfassess_behaviour.invariants import (
    REGISTRY,
    InvariantCheckContext,
    InvariantId,
    check_finished_before_assessment,
    check_stars_in_range,
    enforce,
    run_checkers,
)


def test_registry_covers_every_invariant() -> None:
    assert set(REGISTRY) == set(InvariantId)


def test_finished_before_assessment_pass_and_fail() -> None:
    failing = check_finished_before_assessment(InvariantCheckContext(action="self-assess", state=QuestionState.TODO))
    assert failing.invariant_id is InvariantId.FINISHED_BEFORE_ASSESSMENT
    assert failing.passed is False
    assert failing.code == "attempt_not_finished"
    assert failing.reason == "Cannot self-assess a question before it is finished."
    assert failing.evidence == ({"kind": "state", "value": "todo"},)

    passing = check_finished_before_assessment(
        InvariantCheckContext(action="self-assess", state=QuestionState.GAVE_UP)
    )
    assert passing.passed is True
    assert passing.code == "attempt_finished"


@pytest.mark.parametrize(("stars", "passed"), [(None, True), (-1, False), (0, True), (5, True), (6, False)])
def test_stars_in_range_boundaries(stars: int | None, passed: bool) -> None:
    outcome = check_stars_in_range(
        InvariantCheckContext(action="self-assess", state=QuestionState.NEEDS_GRADING, stars=stars)
    )
    assert outcome.passed is passed


def test_run_checkers_keeps_order() -> None:
    outcomes = run_checkers(
        ctx=InvariantCheckContext(action="self-assess", state=QuestionState.NEEDS_GRADING, stars=2),
        invariant_ids=(InvariantId.STARS_IN_RANGE, InvariantId.FINISHED_BEFORE_ASSESSMENT),
    )
    assert [o.invariant_id for o in outcomes] == [InvariantId.STARS_IN_RANGE, InvariantId.FINISHED_BEFORE_ASSESSMENT]


def test_enforce_raises_first_failure_with_outcome(caplog: pytest.LogCaptureFixture) -> None:
    ctx = InvariantCheckContext(action="self-assess", state=QuestionState.INVALID, stars=9)

    with caplog.at_level(logging.WARNING, logger="selfassess_behaviour.invariants"):
        with pytest.raises(BehaviourContractViolation) as excinfo:
            enforce(ctx=ctx, invariant_ids=(InvariantId.FINISHED_BEFORE_ASSESSMENT, InvariantId.STARS_IN_RANGE))

    assert excinfo.value.code == "attempt_not_finished"
    assert excinfo.value.outcome.invariant_id is InvariantId.FINISHED_BEFORE_ASSESSMENT
    assert "finished_before_assessment.v1" in caplog.text


def test_enforce_returns_passing_outcomes() -> None:
    outcomes = enforce(
        ctx=InvariantCheckContext(action="self-assess", state=QuestionState.NEEDS_GRADING, stars=4),
        invariant_ids=(InvariantId.FINISHED_BEFORE_ASSESSMENT, InvariantId.STARS_IN_RANGE),
    )
    assert all(o.passed for o in outcomes)
