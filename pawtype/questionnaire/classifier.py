# pawtype/questionnaire/classifier.py
from __future__ import annotations

from collections import Counter
from itertools import product
from typing import Dict, Optional, Sequence, Tuple

from pawtype.app.errors import IncompleteAnswers
from pawtype.questionnaire.bank import AXES, LETTER_TO_AXIS

# All 16 valid codes, in axis order.
VALID_CODES: Tuple[str, ...] = tuple("".join(p) for p in product(*(axis.letters for axis in AXES)))


def tally(answers: Sequence[Optional[str]]) -> Dict[str, int]:
    """
    Count each trait letter across a completed answer sequence.

    Raises IncompleteAnswers if any entry is unset; an unknown letter is a
    programming error and raises ValueError.
    """
    missing = [i for i, a in enumerate(answers) if a is None]
    if missing:
        raise IncompleteAnswers(f"Unanswered positions: {missing}")

    unknown = sorted({a for a in answers if a not in LETTER_TO_AXIS})
    if unknown:
        raise ValueError(f"Unknown trait letters: {unknown}")

    counts = Counter(answers)
    return {letter: counts.get(letter, 0) for letter in LETTER_TO_AXIS}


def classify(answers: Sequence[Optional[str]]) -> str:
    # Strictly higher count wins; ties go to the axis's first letter (E, S, T, J).
    counts = tally(answers)
    code = "".join(
        axis.second if counts[axis.second] > counts[axis.first] else axis.first
        for axis in AXES
    )
    assert code in VALID_CODES, code
    return code
