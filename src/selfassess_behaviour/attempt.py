# selfassess_behaviour/attempt.py
from __future__ import annotations

import logging
from fractions import Fraction
from typing import Any, Dict, List, Mapping, Optional, Union

from selfassess_behaviour.contracts import (
    ActionOutcome,
    AttemptSnapshot,
    BehaviourVars,
    DisplayOptions,
    Keep,
    ParamType,
    PendingAction,
    QuestionState,
    Step,
)
from selfassess_behaviour.engine import (
    BEHAVIOUR_NAME,
    adjust_display_options,
    get_expected_data,
    process_action,
    summarise_action,
)
from selfassess_behaviour.logging_setup import attempt_context
from selfassess_behaviour.question import Question
from selfassess_behaviour.summaries import COMMENT_SUMMARY_LENGTH, get_string

logger = logging.getLogger(__name__)

BEHAVIOUR_PREFIX = "-"

Number = Union[int, Fraction]


class QuestionAttempt:
    """In-memory host for one attempt at one question.

    Owns the append-only step history and feeds the behaviour one pending action
    at a time. Not thread-safe: callers serialise actions on the same attempt.
    """

    def __init__(
        self,
        question: Question,
        *,
        max_mark: Number = 1,
        user_id: Optional[int] = None,
        attempt_id: Optional[str] = None,
        comment_length: int = COMMENT_SUMMARY_LENGTH,
    ) -> None:
        self.question = question
        self.max_mark = Fraction(max_mark)
        self.attempt_id = attempt_id
        self.comment_length = comment_length
        self._steps: List[Step] = [Step(state=QuestionState.TODO, user_id=user_id)]

    # -- history reader -----------------------------------------------------

    def get_behaviour_name(self) -> str:
        return BEHAVIOUR_NAME

    def snapshot(self) -> AttemptSnapshot:
        return AttemptSnapshot(steps=tuple(self._steps), max_mark=self.max_mark)

    @property
    def steps(self) -> tuple[Step, ...]:
        return tuple(self._steps)

    def get_step(self, index: int) -> Step:
        return self._steps[index]

    def get_last_step(self) -> Step:
        return self._steps[-1]

    def get_step_count(self) -> int:
        return len(self._steps)

    def get_state(self) -> QuestionState:
        return self._steps[-1].state

    def get_fraction(self) -> Optional[Fraction]:
        return self._steps[-1].fraction

    def get_mark(self) -> Optional[Fraction]:
        fraction = self.get_fraction()
        if fraction is None:
            return None
        return fraction * self.max_mark

    def get_last_behaviour_var(self, name: str, default: Any = None) -> Any:
        return self.snapshot().get_last_behaviour_var(name, default)

    def get_expected_data(self) -> Dict[str, ParamType]:
        return get_expected_data(self.snapshot(), self.question)

    # -- actions ------------------------------------------------------------

    def process_submission(self, data: Mapping[str, Any], *, user_id: Optional[int] = None) -> ActionOutcome:
        """Process posted form data.

        Keys starting with "-" are behaviour variables and are kept only when the
        behaviour currently expects them; every other key is question data. Once
        the attempt is finished its response is frozen and question data is dropped.
        """
        expected = self.get_expected_data()
        finished = self.get_state().is_finished()
        behaviour: Dict[str, Any] = {}
        response: Dict[str, str] = {}
        for key, value in data.items():
            if key.startswith(BEHAVIOUR_PREFIX):
                name = key[len(BEHAVIOUR_PREFIX):]
                if name in expected:
                    behaviour[name] = value
                else:
                    logger.debug("ignoring unexpected behaviour variable %r", name)
            elif finished:
                logger.debug("ignoring question data %r on a finished attempt", key)
            else:
                response[key] = str(value)

        if not response and not finished:
            response = dict(self.snapshot().get_last_response())
        return self.process_action(BehaviourVars.from_wire(behaviour), response=response, user_id=user_id)

    def finish(self, *, user_id: Optional[int] = None) -> ActionOutcome:
        return self.process_action(
            BehaviourVars(finish=True),
            response=dict(self.snapshot().get_last_response()),
            user_id=user_id,
        )

    def manual_comment(self, comment: str, *, user_id: Optional[int] = None) -> ActionOutcome:
        """Record a grader's comment. The step belongs to `user_id`, never to the respondent."""
        return self._process(PendingAction(behaviour_vars=BehaviourVars(comment=comment), user_id=user_id))

    def process_action(
        self,
        behaviour_vars: BehaviourVars,
        *,
        response: Optional[Mapping[str, str]] = None,
        user_id: Optional[int] = None,
    ) -> ActionOutcome:
        action = PendingAction(
            behaviour_vars=behaviour_vars,
            response=dict(response or {}),
            user_id=user_id if user_id is not None else self._steps[0].user_id,
        )
        return self._process(action)

    def _process(self, action: PendingAction) -> ActionOutcome:
        with attempt_context(self.attempt_id):
            outcome = process_action(self.snapshot(), action, self.question)
            if isinstance(outcome, Keep):
                self._steps.append(outcome.step)
                logger.info(
                    "attempt moved to %s (step %d, fraction=%s)",
                    outcome.step.state.value,
                    len(self._steps) - 1,
                    outcome.step.fraction,
                )
        return outcome

    # -- presentation -------------------------------------------------------

    def summarise_action(self, step: Step) -> str:
        if step is self._steps[0]:
            return get_string("started")
        return summarise_action(step, comment_length=self.comment_length)

    def adjust_display_options(self, options: DisplayOptions, *, viewer_id: Optional[int]) -> DisplayOptions:
        return adjust_display_options(options, self.snapshot(), viewer_id=viewer_id)
