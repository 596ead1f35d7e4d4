# pawtype/workflows/session.py
from __future__ import annotations

import random
import threading
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence, Tuple
from uuid import uuid4

from pawtype.app.errors import SessionStateError
from pawtype.app.logging import get_logger, set_session_id
from pawtype.questionnaire.bank import Question, get_question_bank
from pawtype.questionnaire.catalogue import ResultProfile, get_profile
from pawtype.questionnaire.classifier import classify

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 300.0

TimerFactory = Callable[[float, Callable[..., None], Sequence[Any]], Any]


def _thread_timer(interval: float, fn: Callable[..., None], args: Sequence[Any]) -> threading.Timer:
    t = threading.Timer(interval, fn, args=list(args))
    t.daemon = True
    return t


class SessionStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class QuizSession:
    """
    One respondent's pass through the questionnaire.

    NotStarted -> InProgress(index) -> Completed. The question order is drawn
    once in start() and kept until reset(). A background inactivity timer
    resets an in-progress session after `timeout_seconds` without answer()/back().
    Every user action bumps a generation counter under the lock, so a timer
    armed before that action can never fire against the newer state.
    """

    def __init__(
        self,
        questions: Optional[Sequence[Question]] = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        rng: Optional[random.Random] = None,
        timer_factory: TimerFactory = _thread_timer,
        on_expired: Optional[Callable[["QuizSession"], None]] = None,
        session_id: Optional[str] = None,
    ):
        self.questions: Tuple[Question, ...] = tuple(questions if questions is not None else get_question_bank())
        if not self.questions:
            raise ValueError("A session needs at least one question.")
        self.timeout_seconds = timeout_seconds
        self.session_id = session_id or uuid4().hex[:12]
        self.on_expired = on_expired

        self._rng = rng or random.Random()
        self._timer_factory = timer_factory
        self._lock = threading.RLock()
        self._timer: Any = None
        self._generation = 0

        self.status = SessionStatus.NOT_STARTED
        self.index = 0
        self.expired = False
        self.category_code: Optional[str] = None
        self._sequence: Tuple[Question, ...] = ()
        self._answers: List[Optional[str]] = []

    # -------------------------
    # Read-only views
    # -------------------------
    @property
    def size(self) -> int:
        return len(self.questions)

    @property
    def sequence(self) -> Tuple[Question, ...]:
        return self._sequence

    @property
    def answers(self) -> Tuple[Optional[str], ...]:
        return tuple(self._answers)

    @property
    def current_question(self) -> Optional[Question]:
        if self.status is not SessionStatus.IN_PROGRESS:
            return None
        return self._sequence[self.index]

    @property
    def progress(self) -> Tuple[int, int]:
        # (1-based position being answered, total); (N, N) once completed.
        if self.status is SessionStatus.COMPLETED:
            return (self.size, self.size)
        if self.status is SessionStatus.NOT_STARTED:
            return (0, self.size)
        return (self.index + 1, self.size)

    @property
    def result(self) -> Optional[ResultProfile]:
        if self.category_code is None:
            return None
        return get_profile(self.category_code)

    # -------------------------
    # Transitions
    # -------------------------
    def start(self) -> None:
        with self._lock:
            if self.status is not SessionStatus.NOT_STARTED:
                raise SessionStateError(f"start() is only valid before the quiz begins (status={self.status.value}).")
            order = list(self.questions)
            self._rng.shuffle(order)
            self._sequence = tuple(order)
            self._answers = [None] * len(order)
            self.index = 0
            self.expired = False
            self.category_code = None
            self.status = SessionStatus.IN_PROGRESS
            self._rearm_locked()
        set_session_id(self.session_id)
        logger.info("Quiz started", extra={"questions": self.size})

    def answer(self, letter: str) -> None:
        completed = False
        with self._lock:
            if self.status is not SessionStatus.IN_PROGRESS:
                raise SessionStateError(f"answer() requires an in-progress quiz (status={self.status.value}).")
            question = self._sequence[self.index]
            if not question.offers(letter):
                raise SessionStateError(
                    f"Letter {letter!r} is not an option for {question.question_id} {question.letters}."
                )
            self._answers[self.index] = letter
            if self.index == len(self._sequence) - 1:
                self.category_code = classify(self._answers)
                self.status = SessionStatus.COMPLETED
                self._cancel_locked()
                completed = True
            else:
                self.index += 1
                self._rearm_locked()
        if completed:
            logger.info("Quiz completed", extra={"session_id": self.session_id, "category_code": self.category_code})

    def back(self) -> None:
        with self._lock:
            if self.status is not SessionStatus.IN_PROGRESS:
                raise SessionStateError(f"back() requires an in-progress quiz (status={self.status.value}).")
            if self.index == 0:
                raise SessionStateError("Already at the first question.")
            self.index -= 1
            self._rearm_locked()

    def reset(self) -> None:
        with self._lock:
            self._reset_locked()
        logger.info("Quiz reset", extra={"session_id": self.session_id})

    def close(self) -> None:
        # Stop the background timer without touching state.
        with self._lock:
            self._cancel_locked()

    # -------------------------
    # Inactivity timer
    # -------------------------
    def _reset_locked(self) -> None:
        self._cancel_locked()
        self.status = SessionStatus.NOT_STARTED
        self.index = 0
        self.category_code = None
        self._sequence = ()
        self._answers = []

    def _cancel_locked(self) -> None:
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _rearm_locked(self) -> None:
        self._cancel_locked()
        timer = self._timer_factory(self.timeout_seconds, self._on_timeout, (self._generation,))
        self._timer = timer
        timer.start()

    def _on_timeout(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self.status is not SessionStatus.IN_PROGRESS:
                return
            at_index = self.index
            self._reset_locked()
            self.expired = True
        logger.info("Quiz expired after inactivity", extra={"session_id": self.session_id, "index": at_index})
        if self.on_expired is not None:
            self.on_expired(self)
