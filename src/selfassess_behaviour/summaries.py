# selfassess_behaviour/summaries.py
from __future__ import annotations

from typing import Any, Optional

from selfassess_behaviour.contracts import Step
from selfassess_behaviour.question import NO_RESPONSE
from selfassess_behaviour.text import html_is_blank, shorten_text

COMMENT_SUMMARY_LENGTH = 200

STRINGS: dict[str, str] = {
    "attemptfinished": "Attempt finished",
    "attemptfinishedsubmitting": "Attempt finished submitting: {response}",
    "commented": "Commented: {comment}",
    "saved": "Saved: {response}",
    "selfassessed": "Self-assessed {stars} stars with no comment",
    "selfassessedwithcomment": "Self-assessed {stars} stars with comment: {comment}",
    "selfassessmentcleared": "Self-assessment cleared",
    "started": "Started",
    "submitted": "Submit: {response}",
}


def get_string(key: str, **params: Any) -> str:
    return STRINGS[key].format(**params)


def _response_text(step: Step) -> str:
    return step.response_summary or NO_RESPONSE


def summarise_submit(step: Step) -> str:
    return get_string("submitted", response=_response_text(step))


def summarise_finish(step: Step) -> str:
    if step.response_summary:
        return get_string("attemptfinishedsubmitting", response=step.response_summary)
    return get_string("attemptfinished")


def summarise_save(step: Step) -> str:
    return get_string("saved", response=_response_text(step))


def summarise_manual_comment(step: Step, *, comment_length: int = COMMENT_SUMMARY_LENGTH) -> str:
    comment = step.get_behaviour_var("comment") or ""
    return get_string("commented", comment=shorten_text(comment, comment_length))


def summarise_self_assess(step: Step, *, comment_length: int = COMMENT_SUMMARY_LENGTH) -> str:
    stars: Optional[int] = step.get_behaviour_var("stars")
    comment: Optional[str] = step.get_behaviour_var("selfcomment")
    has_comment = not html_is_blank(comment)

    if stars is None and not has_comment:
        return get_string("selfassessmentcleared")
    if stars is None:
        return get_string("commented", comment=shorten_text(str(comment), comment_length))
    if not has_comment:
        return get_string("selfassessed", stars=stars)
    return get_string("selfassessedwithcomment", stars=stars, comment=shorten_text(str(comment), comment_length))


def is_self_assessment_step(step: Step) -> bool:
    return step.has_behaviour_var("rate") or step.has_behaviour_var("_rate")


def summarise_action(step: Step, *, comment_length: int = COMMENT_SUMMARY_LENGTH) -> str:
    """Human-readable sentence for a committed step.

    Follows the router's priority, except that a step tagged with the
    assessed-without-save marker also counts as a self-assessment.
    """
    if step.has_behaviour_var("submit"):
        return summarise_submit(step)
    if step.has_behaviour_var("finish"):
        return summarise_finish(step)
    if is_self_assessment_step(step):
        return summarise_self_assess(step, comment_length=comment_length)
    if step.has_behaviour_var("comment"):
        return summarise_manual_comment(step, comment_length=comment_length)
    return summarise_save(step)
