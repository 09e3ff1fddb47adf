from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping, Optional, Protocol, Sequence

from selfassess_behaviour.contracts import BehaviourContractViolation, QuestionState

logger = logging.getLogger(__name__)

MIN_STARS = 0
MAX_STARS = 5


class InvariantId(str, Enum):
    FINISHED_BEFORE_ASSESSMENT = "finished_before_assessment.v1"
    STARS_IN_RANGE = "stars_in_range.v1"


@dataclass(frozen=True)
class InvariantOutcome:
    invariant_id: InvariantId
    passed: bool
    reason: str
    code: str
    evidence: Sequence[Mapping[str, Any]] = field(default_factory=tuple)
    details: Mapping[str, Any] = field(default_factory=dict)


class CheckContext(Protocol):
    action: str
    state: QuestionState
    stars: Optional[int]


@dataclass(frozen=True)
class InvariantCheckContext:
    action: str
    state: QuestionState
    stars: Optional[int] = None


Checker = Callable[[CheckContext], InvariantOutcome]


def _ok(invariant_id: InvariantId, code: str, details: Optional[Mapping[str, Any]] = None) -> InvariantOutcome:
    detail_map = dict(details or {})
    return InvariantOutcome(
        invariant_id=invariant_id,
        passed=True,
        reason=str(detail_map.get("message") or code),
        code=code,
        details=detail_map,
    )


def check_finished_before_assessment(ctx: CheckContext) -> InvariantOutcome:
    if ctx.state.is_finished():
        return _ok(InvariantId.FINISHED_BEFORE_ASSESSMENT, "attempt_finished", {"state": ctx.state.value})

    return InvariantOutcome(
        invariant_id=InvariantId.FINISHED_BEFORE_ASSESSMENT,
        passed=False,
        reason=f"Cannot {ctx.action} a question before it is finished.",
        code="attempt_not_finished",
        evidence=({"kind": "state", "value": ctx.state.value},),
        details={"action": ctx.action, "state": ctx.state.value},
    )


def check_stars_in_range(ctx: CheckContext) -> InvariantOutcome:
    if ctx.stars is None:
        return _ok(InvariantId.STARS_IN_RANGE, "no_rating_given")

    if MIN_STARS <= ctx.stars <= MAX_STARS:
        return _ok(InvariantId.STARS_IN_RANGE, "stars_in_range", {"stars": ctx.stars})

    return InvariantOutcome(
        invariant_id=InvariantId.STARS_IN_RANGE,
        passed=False,
        reason=f"Number of stars must be between {MIN_STARS} and {MAX_STARS} inclusive.",
        code="stars_out_of_range",
        evidence=({"kind": "stars", "value": ctx.stars},),
        details={"stars": ctx.stars, "min": MIN_STARS, "max": MAX_STARS},
    )


REGISTRY: dict[InvariantId, Checker] = {
    InvariantId.FINISHED_BEFORE_ASSESSMENT: check_finished_before_assessment,
    InvariantId.STARS_IN_RANGE: check_stars_in_range,
}


def run_checkers(*, ctx: CheckContext, invariant_ids: Sequence[InvariantId]) -> list[InvariantOutcome]:
    return [REGISTRY[invariant_id](ctx) for invariant_id in invariant_ids]


def enforce(*, ctx: CheckContext, invariant_ids: Sequence[InvariantId]) -> list[InvariantOutcome]:
    """Run the checkers in order and raise on the first failure."""
    outcomes = []
    for outcome in run_checkers(ctx=ctx, invariant_ids=invariant_ids):
        if not outcome.passed:
            logger.warning(
                "behaviour contract violated: %s (%s) details=%s",
                outcome.invariant_id.value,
                outcome.code,
                dict(outcome.details),
            )
            raise BehaviourContractViolation(outcome.reason, outcome=outcome)
        outcomes.append(outcome)
    return outcomes
