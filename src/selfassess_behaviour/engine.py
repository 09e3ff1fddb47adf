# selfassess_behaviour/engine.py
from __future__ import annotations

import logging
from fractions import Fraction
from typing import Callable, Dict, Optional

from selfassess_behaviour.contracts import (
    ActionKind,
    ActionOutcome,
    BehaviourVars,
    Discard,
    DisplayOptions,
    HistoryReader,
    Keep,
    ParamType,
    PendingAction,
    QuestionState,
    ReadOnlyMode,
    Step,
)
from selfassess_behaviour.invariants import (
    MAX_STARS,
    InvariantCheckContext,
    InvariantId,
    enforce,
)
from selfassess_behaviour.question import Question
from selfassess_behaviour.summaries import COMMENT_SUMMARY_LENGTH, is_self_assessment_step
from selfassess_behaviour.summaries import summarise_action as _summarise_step
from selfassess_behaviour.text import normalize_comment

logger = logging.getLogger(__name__)

BEHAVIOUR_NAME = "selfassess"

Handler = Callable[[HistoryReader, PendingAction, Question], ActionOutcome]


# ------------------------------------------------------------------------------
# Expected data and display options
# ------------------------------------------------------------------------------


def get_expected_data(snapshot: HistoryReader, question: Question) -> Dict[str, ParamType]:
    if not snapshot.is_finished():
        return {"submit": ParamType.BOOL}

    expected: Dict[str, ParamType] = {}
    if question.can_self_rate():
        expected["stars"] = ParamType.INT
    if question.can_self_comment():
        expected["selfcomment"] = ParamType.RAW
        expected["selfcommentformat"] = ParamType.INT
    expected["rate"] = ParamType.BOOL
    return expected


def adjust_display_options(
    options: DisplayOptions,
    snapshot: HistoryReader,
    *,
    viewer_id: Optional[int],
) -> DisplayOptions:
    """Let the original respondent keep editing their self-assessment once finished.

    Options that are already read-only stay as they are.
    """
    if not snapshot.is_finished() or options.readonly is not False:
        return options
    if viewer_id is None or viewer_id != snapshot.get_step(0).user_id:
        return options
    return options.model_copy(update={"readonly": ReadOnlyMode.EXCEPT_SELF_ASSESSMENT})


# ------------------------------------------------------------------------------
# Routing
# ------------------------------------------------------------------------------


def classify_action(behaviour_vars: BehaviourVars, *, finished: bool) -> ActionKind:
    if behaviour_vars.has("submit"):
        return ActionKind.SUBMIT
    if behaviour_vars.has("finish"):
        return ActionKind.FINISH
    if behaviour_vars.has("rate"):
        return ActionKind.SELF_ASSESS
    if behaviour_vars.has("comment"):
        return ActionKind.COMMENT
    # Nothing but self-assessment is legal once finished, so an unmarked action
    # (e.g. leaving the page without clicking Save) is one.
    if finished:
        return ActionKind.SELF_ASSESS
    return ActionKind.SAVE


def process_action(snapshot: HistoryReader, action: PendingAction, question: Question) -> ActionOutcome:
    kind = classify_action(action.behaviour_vars, finished=snapshot.is_finished())
    logger.debug("classified action as %s in state %s", kind.value, snapshot.state.value)
    outcome = HANDLERS[kind](snapshot, action, question)
    if isinstance(outcome, Discard):
        logger.debug("discarded %s action: %s", kind.value, outcome.reason)
    else:
        logger.debug(
            "kept %s action: %s -> %s fraction=%s",
            kind.value,
            snapshot.state.value,
            outcome.step.state.value,
            outcome.step.fraction,
        )
    return outcome


# ------------------------------------------------------------------------------
# Handlers
# ------------------------------------------------------------------------------


def process_save(snapshot: HistoryReader, action: PendingAction, question: Question) -> ActionOutcome:
    if snapshot.is_finished():
        return Discard("attempt already finished")
    if dict(action.response) == dict(snapshot.get_last_response()):
        return Discard("response unchanged")

    # A complete response stays TODO: only Submit moves the attempt on.
    return Keep(
        Step.from_pending(
            action,
            state=QuestionState.TODO,
            response_summary=question.summarise_response(action.response),
        )
    )


def process_submit(snapshot: HistoryReader, action: PendingAction, question: Question) -> ActionOutcome:
    if snapshot.is_finished():
        return Discard("attempt already finished")

    if not question.is_complete_response(action.response):
        return Keep(
            Step.from_pending(
                action,
                state=QuestionState.INVALID,
                response_summary=question.summarise_response(action.response),
            )
        )

    return process_finish(snapshot, action, question)


def process_finish(snapshot: HistoryReader, action: PendingAction, question: Question) -> ActionOutcome:
    if snapshot.is_finished():
        return Discard("attempt already finished")

    response = action.response
    if question.is_gradable_response(response):
        state = QuestionState.NEEDS_GRADING
    else:
        state = QuestionState.GAVE_UP
    return Keep(Step.from_pending(action, state=state, response_summary=question.summarise_response(response)))


def _stars_for(behaviour_vars: BehaviourVars, question: Question) -> Optional[int]:
    if not question.can_self_rate():
        return None
    return behaviour_vars.stars


def last_self_assessment(snapshot: HistoryReader) -> BehaviourVars:
    for step in reversed(snapshot.steps):
        if is_self_assessment_step(step):
            return step.behaviour_vars
    return BehaviourVars()


def is_same_self_assessment(snapshot: HistoryReader, behaviour_vars: BehaviourVars, question: Question) -> bool:
    """Whether an assessment repeats the one already recorded on this attempt.

    Only the inputs the question allows are compared. A missing comment equals a
    blank one; a missing rating is its own value and does not equal 0 stars.
    """
    previous = last_self_assessment(snapshot)

    if question.can_self_comment():
        previous_comment = normalize_comment(previous.selfcomment)
        new_comment = normalize_comment(behaviour_vars.selfcomment)
        if previous_comment != new_comment:
            return False
        if new_comment and previous.selfcommentformat != behaviour_vars.selfcommentformat:
            return False

    if question.can_self_rate() and previous.stars != behaviour_vars.stars:
        return False

    return True


_ASSESSMENT_FIELDS = ("stars", "selfcomment", "selfcommentformat")


def process_self_assess(snapshot: HistoryReader, action: PendingAction, question: Question) -> ActionOutcome:
    """Record a self-assessment on a finished attempt.

    An explicit Rate post with no rating and a blank comment clears the earlier
    rating. A post with neither `rate` nor any self-assessment field (e.g. a stale
    form carrying only question data) is discarded and never clears anything.
    Finished responses are frozen, so the step carries no response.
    """
    behaviour_vars = action.behaviour_vars
    stars = _stars_for(behaviour_vars, question)
    enforce(
        ctx=InvariantCheckContext(action="self-assess", state=snapshot.state, stars=stars),
        invariant_ids=(InvariantId.FINISHED_BEFORE_ASSESSMENT, InvariantId.STARS_IN_RANGE),
    )

    if not behaviour_vars.has("rate") and not any(behaviour_vars.has(name) for name in _ASSESSMENT_FIELDS):
        return Discard("no self-assessment submitted")

    if is_same_self_assessment(snapshot, behaviour_vars, question):
        return Discard("self-assessment unchanged")

    if not behaviour_vars.has("rate"):
        behaviour_vars = behaviour_vars.with_marker()
    if not question.can_self_rate():
        behaviour_vars = behaviour_vars.model_copy(update={"stars": None})
    if not question.can_self_comment():
        behaviour_vars = behaviour_vars.model_copy(update={"selfcomment": None, "selfcommentformat": None})

    fraction = Fraction(stars, MAX_STARS) if stars is not None else None
    return Keep(
        Step.from_pending(
            action,
            behaviour_vars=behaviour_vars,
            response={},
            state=snapshot.state.corresponding_commented_state(fraction),
            fraction=fraction,
        )
    )


def process_comment(snapshot: HistoryReader, action: PendingAction, question: Question) -> ActionOutcome:
    enforce(
        ctx=InvariantCheckContext(action="comment on", state=snapshot.state),
        invariant_ids=(InvariantId.FINISHED_BEFORE_ASSESSMENT,),
    )

    previous = normalize_comment(snapshot.get_last_behaviour_var("comment"))
    if previous == normalize_comment(action.behaviour_vars.comment):
        return Discard("comment unchanged")

    return Keep(
        Step.from_pending(
            action,
            response={},
            state=snapshot.state.corresponding_commented_state(None),
        )
    )


HANDLERS: Dict[ActionKind, Handler] = {
    ActionKind.SUBMIT: process_submit,
    ActionKind.FINISH: process_finish,
    ActionKind.SELF_ASSESS: process_self_assess,
    ActionKind.COMMENT: process_comment,
    ActionKind.SAVE: process_save,
}
assert set(HANDLERS) == set(ActionKind), "every action kind needs a handler"


# ------------------------------------------------------------------------------
# Summaries
# ------------------------------------------------------------------------------


def summarise_action(step: Step, *, comment_length: int = COMMENT_SUMMARY_LENGTH) -> str:
    return _summarise_step(step, comment_length=comment_length)

