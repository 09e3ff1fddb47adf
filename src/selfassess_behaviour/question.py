# selfassess_behaviour/question.py
from __future__ import annotations

from typing import Mapping, Protocol

from pydantic import BaseModel, ConfigDict

NO_RESPONSE = "[no response]"


class Question(Protocol):
    """What the behaviour needs from a question type.

    Response predicates and summaries belong to the question type; the capability
    probes say which self-assessment inputs are meaningful for it.
    """

    def is_complete_response(self, response: Mapping[str, str]) -> bool:
        ...

    def is_gradable_response(self, response: Mapping[str, str]) -> bool:
        ...

    def summarise_response(self, response: Mapping[str, str]) -> str:
        ...

    def can_self_rate(self) -> bool:
        ...

    def can_self_comment(self) -> bool:
        ...


class SelfAssessableQuestion(BaseModel):
    """Base for question types that work with the self-assessment behaviour."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    canselfrate: bool = False
    canselfcomment: bool = False

    def can_self_rate(self) -> bool:
        return self.canselfrate

    def can_self_comment(self) -> bool:
        return self.canselfcomment


class FreeTextQuestion(SelfAssessableQuestion):
    """A single free-form `answer` field, graded by a human."""

    canselfrate: bool = True
    canselfcomment: bool = True

    def _answer(self, response: Mapping[str, str]) -> str:
        return (response.get("answer") or "").strip()

    def is_complete_response(self, response: Mapping[str, str]) -> bool:
        return bool(self._answer(response))

    def is_gradable_response(self, response: Mapping[str, str]) -> bool:
        return self.is_complete_response(response)

    def summarise_response(self, response: Mapping[str, str]) -> str:
        return self._answer(response) or NO_RESPONSE
