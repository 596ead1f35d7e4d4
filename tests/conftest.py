from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, List, Optional, Sequence

import pytest

from pawtype.app.identity import SaltedIdentityProvider
from pawtype.db.gateway import InMemoryGateway
from pawtype.db.models import Submission
from pawtype.db.repository import SQLiteRepository
from pawtype.questionnaire.survey import MultiSelectAnswer, SingleSelectAnswer, TextAnswer
from pawtype.workflows.session import QuizSession


class FakeTimer:
    def __init__(self, interval: float, fn: Callable[..., None], args: Sequence[Any]):
        self.interval = interval
        self.fn = fn
        self.args = tuple(args)
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        # Simulates the background thread waking up, even if cancel() lost the race.
        self.fn(*self.args)


class TimerRecorder:
    def __init__(self) -> None:
        self.timers: List[FakeTimer] = []

    def __call__(self, interval: float, fn: Callable[..., None], args: Sequence[Any]) -> FakeTimer:
        t = FakeTimer(interval, fn, args)
        self.timers.append(t)
        return t

    @property
    def last(self) -> FakeTimer:
        return self.timers[-1]


@pytest.fixture
def timers() -> TimerRecorder:
    return TimerRecorder()


@pytest.fixture
def make_session(timers: TimerRecorder) -> Callable[..., QuizSession]:
    def _make(**kwargs: Any) -> QuizSession:
        kwargs.setdefault("rng", random.Random(7))
        kwargs.setdefault("timer_factory", timers)
        return QuizSession(**kwargs)

    return _make


@pytest.fixture
def gateway() -> InMemoryGateway:
    return InMemoryGateway()


@pytest.fixture
def repo(tmp_path) -> SQLiteRepository:
    return SQLiteRepository(str(tmp_path / "data" / "pawtype.db"))


@pytest.fixture
def identity() -> SaltedIdentityProvider:
    return SaltedIdentityProvider(salt="test-salt", raw_id="user-123")


BASE_TS = datetime(2026, 1, 1, 9, 0, 0, tzinfo=timezone.utc)


def make_submission(
    code: str = "ISTJ",
    experts: Sequence[str] = ("Veterinarian",),
    other: Optional[str] = None,
    fee: Optional[str] = "$10-$20",
    new_service: str = "Weekend pet sitting",
    feedback: str = "",
    minutes: int = 0,
    submission_id: Optional[str] = None,
    nickname: str = "Nick",
) -> Submission:
    sub = Submission.create(
        category_code=code,
        nickname=nickname,
        survey={
            "preferred_experts": MultiSelectAnswer(values=tuple(experts), other=other),
            "new_service": TextAnswer(text=new_service),
            "previous_feedback": TextAnswer(text=feedback),
            "fee": SingleSelectAnswer(value=fee),
        },
        timestamp=BASE_TS + timedelta(minutes=minutes),
    )
    if submission_id is None:
        return sub
    return Submission(
        submission_id=submission_id,
        timestamp=sub.timestamp,
        category_code=sub.category_code,
        nickname=sub.nickname,
        survey=sub.survey,
    )


def complete(session: QuizSession, pick: Callable[[Any], str] = lambda q: q.letters[0]) -> None:
    # Answer every remaining question of a started session.
    while session.current_question is not None:
        session.answer(pick(session.current_question))
