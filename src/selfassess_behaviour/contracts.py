# selfassess_behaviour/contracts.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from fractions import Fraction
from typing import Any, Mapping, Optional, Protocol, Union

from pydantic import BaseModel, ConfigDict, Field
from typing_extensions import Self

# ------------------------------------------------------------------------------
# Shared BaseModel config helpers
# ------------------------------------------------------------------------------

_WIRE_CONFIG = ConfigDict(
    extra="forbid",
    frozen=True,
    populate_by_name=True,
    use_enum_values=False,
)


class BehaviourContractViolation(RuntimeError):
    """Raised when the behaviour is driven in a way no correct caller would drive it.

    This is a caller bug, not bad user input: the call is aborted and nothing is
    clamped or ignored.
    """

    def __init__(self, message: str, *, outcome: Any = None) -> None:
        super().__init__(message)
        self.outcome = outcome

    @property
    def code(self) -> Optional[str]:
        return getattr(self.outcome, "code", None)


# ------------------------------------------------------------------------------
# States
# ------------------------------------------------------------------------------


class QuestionState(str, Enum):
    TODO = "todo"
    INVALID = "invalid"
    COMPLETE = "complete"
    NEEDS_GRADING = "needsgrading"
    GAVE_UP = "gaveup"
    MANUALLY_FINISHED = "manfinished"

    def is_finished(self) -> bool:
        return self in _FINISHED_STATES

    def corresponding_commented_state(self, fraction: Optional[Fraction]) -> QuestionState:
        """State reached when a finished attempt is self-assessed or commented on.

        Always MANUALLY_FINISHED, whatever the fraction: a self-assessed rating is
        never a grader's grade.
        """
        if not self.is_finished():
            raise BehaviourContractViolation(
                f"State {self.value!r} has no commented equivalent; the attempt is not finished."
            )
        return QuestionState.MANUALLY_FINISHED


_FINISHED_STATES = frozenset(
    {
        QuestionState.NEEDS_GRADING,
        QuestionState.GAVE_UP,
        QuestionState.MANUALLY_FINISHED,
    }
)


class Disposition(str, Enum):
    KEEP = "keep"
    DISCARD = "discard"


class ActionKind(str, Enum):
    SUBMIT = "submit"
    FINISH = "finish"
    SELF_ASSESS = "self_assess"
    COMMENT = "comment"
    SAVE = "save"


class ParamType(str, Enum):
    BOOL = "bool"
    INT = "int"
    RAW = "raw"


class ReadOnlyMode(str, Enum):
    """Read-only values that are neither plain True nor plain False."""

    EXCEPT_SELF_ASSESSMENT = "except_self_assessment"


# ------------------------------------------------------------------------------
# Behaviour variables
# ------------------------------------------------------------------------------


class BehaviourVars(BaseModel):
    """One action's behaviour variables, typed and validated once at the boundary.

    Flags (`submit`, `finish`, `rate`, `_rate`, `comment`) are signals by presence;
    their values are incidental. `stars` is only type-checked here; its range is a
    behaviour contract enforced when the action is processed.
    """

    model_config = _WIRE_CONFIG

    submit: Optional[bool] = None
    finish: Optional[bool] = None
    rate: Optional[bool] = None
    assessed_without_save: Optional[bool] = Field(default=None, alias="_rate")
    comment: Optional[str] = None
    stars: Optional[int] = None
    selfcomment: Optional[str] = None
    selfcommentformat: Optional[int] = None

    @classmethod
    def from_wire(cls, data: Optional[Mapping[str, Any]] = None) -> Self:
        return cls.model_validate(dict(data or {}))

    def has(self, name: str) -> bool:
        return name in self.as_wire()

    def get(self, name: str) -> Any:
        return self.as_wire().get(name)

    def as_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)

    def with_marker(self) -> Self:
        return self.model_copy(update={"assessed_without_save": True})


# ------------------------------------------------------------------------------
# Steps and snapshots
# ------------------------------------------------------------------------------


@dataclass(frozen=True)
class PendingAction:
    behaviour_vars: BehaviourVars = field(default_factory=BehaviourVars)
    response: Mapping[str, str] = field(default_factory=dict)
    user_id: Optional[int] = None


@dataclass(frozen=True)
class Step:
    behaviour_vars: BehaviourVars = field(default_factory=BehaviourVars)
    response: Mapping[str, str] = field(default_factory=dict)
    state: QuestionState = QuestionState.TODO
    fraction: Optional[Fraction] = None
    user_id: Optional[int] = None
    response_summary: Optional[str] = None

    @classmethod
    def from_pending(
        cls,
        action: PendingAction,
        *,
        state: QuestionState,
        fraction: Optional[Fraction] = None,
        response_summary: Optional[str] = None,
        behaviour_vars: Optional[BehaviourVars] = None,
        response: Optional[Mapping[str, str]] = None,
    ) -> Step:
        return cls(
            behaviour_vars=behaviour_vars if behaviour_vars is not None else action.behaviour_vars,
            response=dict(response if response is not None else action.response),
            state=state,
            fraction=fraction,
            user_id=action.user_id,
            response_summary=response_summary,
        )

    def has_behaviour_var(self, name: str) -> bool:
        return self.behaviour_vars.has(name)

    def get_behaviour_var(self, name: str) -> Any:
        return self.behaviour_vars.get(name)


class HistoryReader(Protocol):
    """What the behaviour reads from an attempt's committed history."""

    @property
    def steps(self) -> tuple[Step, ...]:
        ...

    @property
    def state(self) -> QuestionState:
        ...

    def is_finished(self) -> bool:
        ...

    def get_step(self, index: int) -> Step:
        ...

    def get_last_behaviour_var(self, name: str, default: Any = None) -> Any:
        ...

    def get_last_response(self) -> Mapping[str, str]:
        ...


@dataclass(frozen=True)
class AttemptSnapshot:
    """Read-only view of an attempt's committed history."""

    steps: tuple[Step, ...]
    max_mark: Fraction = Fraction(1)

    def __post_init__(self) -> None:
        if not self.steps:
            raise ValueError("an attempt snapshot needs at least its first step")

    @property
    def state(self) -> QuestionState:
        return self.steps[-1].state

    @property
    def fraction(self) -> Optional[Fraction]:
        return self.steps[-1].fraction

    @property
    def step_count(self) -> int:
        return len(self.steps)

    def is_finished(self) -> bool:
        return self.state.is_finished()

    def get_step(self, index: int) -> Step:
        return self.steps[index]

    def get_last_behaviour_var(self, name: str, default: Any = None) -> Any:
        for step in reversed(self.steps):
            if step.has_behaviour_var(name):
                return step.get_behaviour_var(name)
        return default

    def get_last_response(self) -> Mapping[str, str]:
        for step in reversed(self.steps):
            if step.response:
                return step.response
        return {}

    def with_step(self, step: Step) -> AttemptSnapshot:
        return replace(self, steps=self.steps + (step,))


# ------------------------------------------------------------------------------
# Action outcomes
# ------------------------------------------------------------------------------


@dataclass(frozen=True)
class Keep:
    step: Step

    @property
    def disposition(self) -> Disposition:
        return Disposition.KEEP


@dataclass(frozen=True)
class Discard:
    reason: str

    @property
    def disposition(self) -> Disposition:
        return Disposition.DISCARD


ActionOutcome = Union[Keep, Discard]


# ------------------------------------------------------------------------------
# Display options
# ------------------------------------------------------------------------------


class DisplayOptions(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    readonly: Union[ReadOnlyMode, bool] = False
    feedback: bool = True

    def allows_self_assessment(self) -> bool:
        return self.readonly is ReadOnlyMode.EXCEPT_SELF_ASSESSMENT
