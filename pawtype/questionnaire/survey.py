# pawtype/questionnaire/survey.py
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, List, Literal, Mapping, Optional, Tuple, Union

from pawtype.app.errors import ValidationFailed
from pawtype.app.logging import get_logger

logger = get_logger(__name__)

QuestionKind = Literal["multi_select", "single_select", "open_text"]

# Characters that open markup/script injection; rejected in any free text.
DISALLOWED_CHARS = frozenset("<>;")

_TAG_RE = re.compile(r"<[^>]*>")
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


# -------------------------
# Question definitions
# -------------------------

@dataclass(frozen=True)
class MultiSelectQuestion:
    question_id: str
    title: str
    options: Tuple[str, ...]
    allow_other: bool = False
    other_max_length: int = 100
    # Joins the labels in delimited exports, so a custom answer may not contain it.
    label_delimiter: str = "|"
    kind: ClassVar[str] = "multi_select"


@dataclass(frozen=True)
class SingleSelectQuestion:
    question_id: str
    title: str
    options: Tuple[str, ...]
    kind: ClassVar[str] = "single_select"


@dataclass(frozen=True)
class OpenTextQuestion:
    question_id: str
    title: str
    max_length: int = 500
    min_length: int = 0
    kind: ClassVar[str] = "open_text"


SurveyQuestion = Union[MultiSelectQuestion, SingleSelectQuestion, OpenTextQuestion]


# -------------------------
# Answer variants (tagged by `kind`)
# -------------------------

@dataclass(frozen=True)
class MultiSelectAnswer:
    values: Tuple[str, ...] = ()
    other: Optional[str] = None
    kind: ClassVar[str] = "multi_select"

    def labels(self) -> List[str]:
        # Selected labels plus the free-text "other" value, unless it repeats a selected label.
        out = list(self.values)
        if self.other and self.other.strip():
            seen = {v.strip().casefold() for v in out}
            if self.other.strip().casefold() not in seen:
                out.append(self.other)
        return out

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "values": list(self.values), "other": self.other}


@dataclass(frozen=True)
class SingleSelectAnswer:
    value: Optional[str] = None
    kind: ClassVar[str] = "single_select"

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "value": self.value}


@dataclass(frozen=True)
class TextAnswer:
    text: str = ""
    kind: ClassVar[str] = "open_text"

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "text": self.text}


SurveyAnswer = Union[MultiSelectAnswer, SingleSelectAnswer, TextAnswer]
SurveyResponse = Mapping[str, SurveyAnswer]


def answer_from_dict(d: Mapping[str, Any]) -> SurveyAnswer:
    kind = d.get("kind")
    if kind == "multi_select":
        return MultiSelectAnswer(values=tuple(d.get("values") or ()), other=d.get("other"))
    if kind == "single_select":
        return SingleSelectAnswer(value=d.get("value"))
    if kind == "open_text":
        return TextAnswer(text=d.get("text") or "")
    raise ValueError(f"Unknown answer kind: {kind!r}")


def response_to_dict(response: SurveyResponse) -> Dict[str, Dict[str, Any]]:
    return {qid: answer.to_dict() for qid, answer in response.items()}


def response_from_dict(d: Mapping[str, Mapping[str, Any]]) -> Dict[str, SurveyAnswer]:
    return {qid: answer_from_dict(raw) for qid, raw in d.items()}


# -------------------------
# Follow-up survey catalogue
# -------------------------

PREFERRED_EXPERTS_ID = "preferred_experts"
NEW_SERVICE_ID = "new_service"
PREVIOUS_FEEDBACK_ID = "previous_feedback"
FEE_ID = "fee"


def get_survey_questions(text_max_length: int = 500, expert_delimiter: str = "|") -> List[SurveyQuestion]:
    return [
        MultiSelectQuestion(
            question_id=PREFERRED_EXPERTS_ID,
            title="Which pet experts would you like advice from? (choose all that apply)",
            options=("Veterinarian", "Trainer", "Groomer", "Behaviourist", "Nutritionist"),
            allow_other=True,
            label_delimiter=expert_delimiter,
        ),
        OpenTextQuestion(
            question_id=NEW_SERVICE_ID,
            title="What new service would you like for your pet?",
            max_length=text_max_length,
            min_length=5,
        ),
        OpenTextQuestion(
            question_id=PREVIOUS_FEEDBACK_ID,
            title="Any feedback on pet services you have used before?",
            max_length=text_max_length,
        ),
        SingleSelectQuestion(
            question_id=FEE_ID,
            title="How much would you pay per consultation?",
            options=("Under $10", "$10-$20", "$20-$30", "Over $30"),
        ),
    ]


# -------------------------
# Validation
# -------------------------

def _check_free_text(text: str, max_length: int, min_length: int = 0) -> Optional[str]:
    if min_length > 0 and len(text.strip()) < min_length:
        return f"Please enter at least {min_length} characters."
    if len(text) > max_length:
        return f"Please keep this under {max_length} characters (currently {len(text)})."
    bad = sorted(c for c in DISALLOWED_CHARS if c in text)
    if bad:
        return f"These characters are not allowed: {' '.join(bad)}"
    return None


def validate_field(question: SurveyQuestion, answer: Optional[SurveyAnswer]) -> Optional[str]:
    """
    Validate a single answer against its question.
    Returns an error message, or None when the answer is acceptable.
    An absent answer is treated as unset.
    """
    if answer is not None and answer.kind != question.kind:
        return f"Expected a {question.kind} answer, got {answer.kind}."

    if isinstance(question, OpenTextQuestion):
        text = answer.text if isinstance(answer, TextAnswer) else ""
        return _check_free_text(text, question.max_length, question.min_length)

    if isinstance(question, SingleSelectQuestion):
        value = answer.value if isinstance(answer, SingleSelectAnswer) else None
        if value is not None and value not in question.options:
            return f"'{value}' is not one of the available options."
        return None

    if isinstance(question, MultiSelectQuestion):
        if not isinstance(answer, MultiSelectAnswer):
            return None
        unknown = [v for v in answer.values if v not in question.options]
        if unknown:
            return f"Unknown options: {', '.join(unknown)}"
        if len(set(answer.values)) != len(answer.values):
            return "Each option may only be selected once."
        if answer.other is not None:
            if not question.allow_other:
                return "This question does not accept a custom answer."
            err = _check_free_text(answer.other, question.other_max_length)
            if err:
                return err
            if question.label_delimiter and question.label_delimiter in answer.other:
                return f"A custom answer may not contain '{question.label_delimiter}'."
            other = answer.other.strip().casefold()
            if other and any(other == opt.casefold() for opt in question.options):
                return "That option is already in the list; tick it instead."
        return None

    raise TypeError(f"Unsupported question type: {type(question).__name__}")


class SurveyValidator:
    def __init__(self, questions: List[SurveyQuestion]):
        self.questions = list(questions)
        self._by_id = {q.question_id: q for q in self.questions}

    def validate(self, response: SurveyResponse) -> Dict[str, str]:
        # Returns field-scoped error messages; empty dict means the response may be submitted.
        errors: Dict[str, str] = {}
        for qid in response:
            if qid not in self._by_id:
                errors[qid] = "Unknown question."
        for q in self.questions:
            err = validate_field(q, response.get(q.question_id))
            if err:
                errors[q.question_id] = err
        return errors

    def check(self, response: SurveyResponse) -> None:
        errors = self.validate(response)
        if errors:
            logger.info("Survey validation failed", extra={"fields": sorted(errors)})
            raise ValidationFailed(errors)


# -------------------------
# Sanitization (second pass, right before persistence)
# -------------------------

def sanitize_text(text: Optional[str]) -> Optional[str]:
    if text is None:
        return None
    s = _TAG_RE.sub("", text)
    s = _CONTROL_RE.sub("", s)
    s = "".join(c for c in s if c not in DISALLOWED_CHARS)
    return s.strip()


def sanitize_answer(answer: SurveyAnswer) -> SurveyAnswer:
    if isinstance(answer, TextAnswer):
        return TextAnswer(text=sanitize_text(answer.text) or "")
    if isinstance(answer, MultiSelectAnswer):
        other = sanitize_text(answer.other)
        return MultiSelectAnswer(values=tuple(answer.values), other=other or None)
    return answer


def sanitize_response(response: SurveyResponse) -> Dict[str, SurveyAnswer]:
    return {qid: sanitize_answer(answer) for qid, answer in response.items()}
