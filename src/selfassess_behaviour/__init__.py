from selfassess_behaviour.attempt import QuestionAttempt
from selfassess_behaviour.contracts import (
    ActionKind,
    ActionOutcome,
    AttemptSnapshot,
    BehaviourContractViolation,
    BehaviourVars,
    Discard,
    Disposition,
    DisplayOptions,
    HistoryReader,
    Keep,
    ParamType,
    PendingAction,
    QuestionState,
    ReadOnlyMode,
    Step,
)
from selfassess_behaviour.engine import (
    adjust_display_options,
    classify_action,
    get_expected_data,
    process_action,
    summarise_action,
)
from selfassess_behaviour.question import FreeTextQuestion, Question, SelfAssessableQuestion

__all__ = [
    "ActionKind",
    "ActionOutcome",
    "AttemptSnapshot",
    "BehaviourContractViolation",
    "BehaviourVars",
    "Discard",
    "Disposition",
    "DisplayOptions",
    "FreeTextQuestion",
    "HistoryReader",
    "Keep",
    "ParamType",
    "PendingAction",
    "Question",
    "QuestionAttempt",
    "QuestionState",
    "ReadOnlyMode",
    "SelfAssessableQuestion",
    "Step",
    "adjust_display_options",
    "classify_action",
    "get_expected_data",
    "process_action",
    "summarise_action",
]
