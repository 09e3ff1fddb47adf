from __future__ import annotations

from collections.abc import Callable

import pytest

from selfassess_behaviour.attempt import QuestionAttempt
from selfassess_behaviour.question import FreeTextQuestion

STUDENT_ID = 2
FORMAT_HTML = "1"


@pytest.fixture
def make_question() -> Callable[..., FreeTextQuestion]:
    def _make_question(*, canselfrate: bool = True, canselfcomment: bool = True) -> FreeTextQuestion:
        return FreeTextQuestion(canselfrate=canselfrate, canselfcomment=canselfcomment)

    return _make_question


@pytest.fixture
def make_attempt(make_question: Callable[..., FreeTextQuestion]) -> Callable[..., QuestionAttempt]:
    def _make_attempt(
        *,
        max_mark: int = 5,
        canselfrate: bool = True,
        canselfcomment: bool = True,
        user_id: int = STUDENT_ID,
    ) -> QuestionAttempt:
        question = make_question(canselfrate=canselfrate, canselfcomment=canselfcomment)
        return QuestionAttempt(question, max_mark=max_mark, user_id=user_id, attempt_id="attempt:test")

    return _make_attempt


@pytest.fixture
def make_finished_attempt(make_attempt: Callable[..., QuestionAttempt]) -> Callable[..., QuestionAttempt]:
    def _make_finished_attempt(**kwargs: object) -> QuestionAttempt:
        attempt = make_attempt(**kwargs)
        attempt.process_submission({"answer": "My recording transcript", "-submit": "1"})
        assert attempt.get_state().value == "needsgrading"
        return attempt

    return _make_finished_attempt
