# pawtype/questionnaire/bank.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple


@dataclass(frozen=True)
class Axis:
    # Binary dimension; `first` wins ties during classification.
    key: str
    first: str
    second: str
    title: str

    @property
    def letters(self) -> Tuple[str, str]:
        return (self.first, self.second)


# Fixed order: this is also the letter order inside a category code.
AXES: Tuple[Axis, ...] = (
    Axis("EI", "E", "I", "Extraverted vs Introverted"),
    Axis("SN", "S", "N", "Sensing vs Intuitive"),
    Axis("TF", "T", "F", "Thinking vs Feeling"),
    Axis("JP", "J", "P", "Judging vs Perceiving"),
)

LETTER_TO_AXIS: Dict[str, str] = {letter: axis.key for axis in AXES for letter in axis.letters}
TRAIT_LETTERS: Tuple[str, ...] = tuple(LETTER_TO_AXIS)


@dataclass(frozen=True)
class Option:
    text: str
    letter: str


@dataclass(frozen=True)
class Question:
    question_id: str
    axis: str
    text: str
    options: Tuple[Option, Option]

    @property
    def letters(self) -> Tuple[str, str]:
        return (self.options[0].letter, self.options[1].letter)

    def offers(self, letter: str) -> bool:
        return letter in self.letters


def _q(question_id: str, axis: str, text: str, a: Tuple[str, str], b: Tuple[str, str]) -> Question:
    return Question(
        question_id=question_id,
        axis=axis,
        text=text,
        options=(Option(text=a[0], letter=a[1]), Option(text=b[0], letter=b[1])),
    )


QUESTION_BANK: Tuple[Question, ...] = (
    _q("q01", "EI", "A guest rings the doorbell. What does your pet do?",
       ("Rushes to the door to greet them", "E"), ("Watches from a safe corner", "I")),
    _q("q02", "EI", "At the park full of other animals, your pet...",
       ("Runs off to make new friends", "E"), ("Stays close to you", "I")),
    _q("q03", "EI", "After a busy day with visitors, your pet...",
       ("Still wants to play", "E"), ("Goes off to sleep alone", "I")),
    _q("q04", "SN", "On a walk, your pet mostly...",
       ("Sniffs every detail along the usual route", "S"), ("Pulls towards places it has never been", "N")),
    _q("q05", "SN", "When you bring home a new toy, your pet...",
       ("Prefers its old favourite", "S"), ("Can't wait to try the new one", "N")),
    _q("q06", "SN", "When food is being prepared, your pet...",
       ("Waits at the exact spot it is always fed", "S"), ("Tries a new trick to get a taste", "N")),
    _q("q07", "TF", "When you scold your pet, it...",
       ("Stops, then carries on as before", "T"), ("Looks hurt and sulks for a while", "F")),
    _q("q08", "TF", "When you come home after a long day, your pet...",
       ("Checks the house for anything new first", "T"), ("Sticks by your side straight away", "F")),
    _q("q09", "TF", "When you are feeling down, your pet...",
       ("Goes about its own business", "T"), ("Comes to comfort you", "F")),
    _q("q10", "JP", "Around meal time, your pet...",
       ("Knows exactly when it is and reminds you", "J"), ("Eats whenever food shows up", "P")),
    _q("q11", "JP", "With its toys, your pet...",
       ("Keeps them in its favourite spot", "J"), ("Leaves them all over the house", "P")),
    _q("q12", "JP", "When the daily routine changes, your pet...",
       ("Gets restless until things are back to normal", "J"), ("Doesn't seem to notice", "P")),
)


def get_question_bank() -> List[Question]:
    return list(QUESTION_BANK)


def question_by_id(question_id: str) -> Question:
    for q in QUESTION_BANK:
        if q.question_id == question_id:
            return q
    raise KeyError(f"Unknown question_id: {question_id}")
