from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from fractions import Fraction
from pathlib import Path
from typing import Any, Optional

from selfassess_behaviour.attempt import QuestionAttempt
from selfassess_behaviour.contracts import ActionOutcome, BehaviourContractViolation
from selfassess_behaviour.question import FreeTextQuestion
from selfassess_behaviour.summaries import COMMENT_SUMMARY_LENGTH

logger = logging.getLogger(__name__)

_MISSING = object()


@dataclass(frozen=True)
class TurnExecution:
    turn_index: int
    kind: str
    disposition: Optional[str]
    state: str
    mark: Optional[str]
    step_count: int
    summary: str
    violation: Optional[str] = None
    mismatches: list[str] = field(default_factory=list)

    @property
    def outcome(self) -> str:
        return "mismatch" if self.mismatches else "ok"


@dataclass(frozen=True)
class WalkthroughExecution:
    scenario_id: str
    source: str
    turns: list[TurnExecution]

    @property
    def passed(self) -> bool:
        return all(turn.outcome == "ok" for turn in self.turns)


def load_scenario_packs(packs_dir: Path) -> list[dict[str, Any]]:
    packs: list[dict[str, Any]] = []
    for path in sorted(Path(packs_dir).glob("*.json")):
        payload = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(payload, dict):
            raise ValueError(f"Expected a JSON object in {path}, got {type(payload).__name__}")
        payload["_source"] = str(path)
        packs.append(payload)
    return packs


def _mark_text(mark: Optional[Fraction]) -> Optional[str]:
    return None if mark is None else str(mark)


def _compare(expect: dict[str, Any], actual: dict[str, Any]) -> list[str]:
    mismatches: list[str] = []
    for key, wanted in expect.items():
        got = actual.get(key, _MISSING)
        if key == "mark" and wanted is not None and got is not None:
            same = Fraction(str(wanted)) == Fraction(str(got))
        else:
            same = wanted == got
        if not same:
            mismatches.append(f"{key}: expected {wanted!r}, got {got!r}")
    return mismatches


def _apply(attempt: QuestionAttempt, turn: dict[str, Any]) -> ActionOutcome:
    kind = str(turn.get("kind", "submission"))
    user_id = turn.get("user_id")
    if kind == "finish":
        return attempt.finish(user_id=user_id)
    if kind == "comment":
        return attempt.manual_comment(str(turn.get("comment", "")), user_id=user_id)
    if kind == "submission":
        return attempt.process_submission(dict(turn.get("data") or {}), user_id=user_id)
    raise ValueError(f"Unknown walkthrough action kind: {kind!r}")


def run_walkthrough(pack: dict[str, Any], *, comment_length: int = COMMENT_SUMMARY_LENGTH) -> WalkthroughExecution:
    actions = pack.get("actions")
    if not isinstance(actions, list):
        raise ValueError(f"Scenario pack {pack.get('_source', '?')} has no 'actions' list")

    question = FreeTextQuestion(**dict(pack.get("question") or {}))
    scenario_id = str(pack.get("scenario_id") or pack.get("_source") or "scenario")
    attempt = QuestionAttempt(
        question,
        max_mark=Fraction(str(pack.get("max_mark", 1))),
        user_id=pack.get("user_id"),
        attempt_id=scenario_id,
        comment_length=comment_length,
    )

    turns: list[TurnExecution] = []
    for turn_index, turn in enumerate(actions, start=1):
        disposition: Optional[str] = None
        violation: Optional[str] = None
        try:
            disposition = _apply(attempt, turn).disposition.value
        except BehaviourContractViolation as exc:
            violation = exc.code or str(exc)

        actual = {
            "disposition": disposition,
            "state": attempt.get_state().value,
            "mark": _mark_text(attempt.get_mark()),
            "step_count": attempt.get_step_count(),
            "summary": attempt.summarise_action(attempt.get_last_step()),
            "raises": violation,
        }
        expect = dict(turn.get("expect") or {})
        expect.setdefault("raises", None)
        mismatches = _compare(expect, actual)
        if mismatches:
            logger.warning("scenario %s turn %d mismatched: %s", scenario_id, turn_index, "; ".join(mismatches))

        turns.append(
            TurnExecution(
                turn_index=turn_index,
                kind=str(turn.get("kind", "submission")),
                disposition=disposition,
                state=actual["state"],
                mark=actual["mark"],
                step_count=actual["step_count"],
                summary=actual["summary"],
                violation=violation,
                mismatches=mismatches,
            )
        )

    return WalkthroughExecution(scenario_id=scenario_id, source=str(pack.get("_source", "")), turns=turns)


def summarize(executions: list[WalkthroughExecution]) -> dict[str, float]:
    total_turns = sum(len(execution.turns) for execution in executions)
    ok_turns = sum(1 for execution in executions for turn in execution.turns if turn.outcome == "ok")
    discards = sum(1 for execution in executions for turn in execution.turns if turn.disposition == "discard")
    return {
        "turn_pass_rate": round(ok_turns / total_turns, 4) if total_turns else 0.0,
        "discard_rate": round(discards / total_turns, 4) if total_turns else 0.0,
        "scenarios_passed": float(sum(1 for execution in executions if execution.passed)),
    }


def run_packs(packs_dir: Path, *, comment_length: int = COMMENT_SUMMARY_LENGTH) -> dict[str, Any]:
    executions = [run_walkthrough(pack, comment_length=comment_length) for pack in load_scenario_packs(packs_dir)]
    return {
        "scenarios": [
            {
                "scenario_id": execution.scenario_id,
                "source": execution.source,
                "passed": execution.passed,
                "turns": [
                    {
                        "turn_index": turn.turn_index,
                        "kind": turn.kind,
                        "disposition": turn.disposition,
                        "state": turn.state,
                        "mark": turn.mark,
                        "step_count": turn.step_count,
                        "summary": turn.summary,
                        "violation": turn.violation,
                        "outcome": turn.outcome,
                        "mismatches": turn.mismatches,
                    }
                    for turn in execution.turns
                ],
            }
            for execution in executions
        ],
        "summary_metrics": summarize(executions),
    }
