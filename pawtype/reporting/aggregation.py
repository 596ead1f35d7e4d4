# pawtype/reporting/aggregation.py
from __future__ import annotations

import csv
import json
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Literal, Optional, Sequence, Tuple, Union

import jsonschema
import pandas as pd

from pawtype.app.errors import ImportFailed, PersistenceFailed
from pawtype.app.logging import get_logger
from pawtype.db.gateway import StoreEvent, SubmissionGateway
from pawtype.db.models import Submission, format_ts
from pawtype.questionnaire.survey import (
    FEE_ID,
    NEW_SERVICE_ID,
    PREFERRED_EXPERTS_ID,
    PREVIOUS_FEEDBACK_ID,
    MultiSelectAnswer,
    SingleSelectAnswer,
    TextAnswer,
)

logger = get_logger(__name__)

SortOrder = Literal["newest", "oldest", "by_category"]
SORT_ORDERS: Tuple[str, ...] = ("newest", "oldest", "by_category")
ALL_CATEGORIES = "all"

DELIMITED_COLUMNS: List[str] = [
    "submission_id",
    "timestamp",
    "category_code",
    "nickname",
    "preferred_experts",
    "new_service",
    "previous_feedback",
    "fee",
]


# -------------------------
# Structured export schema (used when re-ingesting)
# -------------------------

_ANSWER_SCHEMA: Dict[str, Any] = {
    "oneOf": [
        {
            "type": "object",
            "properties": {
                "kind": {"const": "multi_select"},
                "values": {"type": "array", "items": {"type": "string"}},
                "other": {"type": ["string", "null"]},
            },
            "required": ["kind", "values"],
        },
        {
            "type": "object",
            "properties": {
                "kind": {"const": "single_select"},
                "value": {"type": ["string", "null"]},
            },
            "required": ["kind"],
        },
        {
            "type": "object",
            "properties": {
                "kind": {"const": "open_text"},
                "text": {"type": "string"},
            },
            "required": ["kind", "text"],
        },
    ]
}

SUBMISSIONS_SCHEMA: Dict[str, Any] = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "submission_id": {"type": "string", "minLength": 1},
            "timestamp": {"type": "string", "minLength": 1},
            "category_code": {"type": "string", "pattern": "^[EI][SN][TF][JP]$"},
            "nickname": {"type": "string"},
            "survey": {"type": "object", "additionalProperties": _ANSWER_SCHEMA},
        },
        "required": ["submission_id", "timestamp", "category_code", "nickname", "survey"],
    },
}


@dataclass(frozen=True)
class ExportPayload:
    filename: str
    mime_type: str
    data: bytes


@dataclass(frozen=True)
class AggregateTables:
    category_counts: Dict[str, int]
    expert_counts: Dict[str, int]
    fee_counts: Dict[str, int]


# -------------------------
# Pure helpers over a snapshot
# -------------------------

def _answer_values(answer: Any) -> List[str]:
    if isinstance(answer, MultiSelectAnswer):
        return answer.labels()
    if isinstance(answer, SingleSelectAnswer):
        return [answer.value] if answer.value else []
    if isinstance(answer, TextAnswer):
        return [answer.text]
    return []


def searchable_text(sub: Submission) -> str:
    # Field values only (no keys or answer kinds), one per line, lower-cased.
    parts = [sub.submission_id, format_ts(sub.timestamp), sub.category_code, sub.nickname]
    for question_id in sorted(sub.survey):
        parts.extend(_answer_values(sub.survey[question_id]))
    return "\n".join(parts).lower()


def filter_submissions(
    submissions: Iterable[Submission],
    keyword: str = "",
    category_code: str = ALL_CATEGORIES,
) -> List[Submission]:
    # Blank keywords mean "no keyword"; anything else is matched exactly as typed.
    keyword = keyword or ""
    needle = keyword.lower() if keyword.strip() else ""
    out: List[Submission] = []
    for sub in submissions:
        if category_code and category_code != ALL_CATEGORIES and sub.category_code != category_code:
            continue
        if needle and needle not in searchable_text(sub):
            continue
        out.append(sub)
    return out


def sort_submissions(submissions: Iterable[Submission], order: SortOrder = "newest") -> List[Submission]:
    # submission_id breaks timestamp ties; Python's sort is stable (also with reverse=True).
    by_id = sorted(submissions, key=lambda s: s.submission_id)
    if order == "oldest":
        return sorted(by_id, key=lambda s: s.timestamp)
    newest = sorted(by_id, key=lambda s: s.timestamp, reverse=True)
    if order == "newest":
        return newest
    if order == "by_category":
        return sorted(newest, key=lambda s: s.category_code)
    raise ValueError(f"Unknown sort order: {order!r} (expected one of {SORT_ORDERS})")


def _expert_labels(sub: Submission) -> List[str]:
    answer = sub.survey.get(PREFERRED_EXPERTS_ID)
    if isinstance(answer, MultiSelectAnswer):
        return answer.labels()
    return []


def _fee(sub: Submission) -> Optional[str]:
    answer = sub.survey.get(FEE_ID)
    if isinstance(answer, SingleSelectAnswer):
        return answer.value
    return None


def _text(sub: Submission, question_id: str) -> str:
    answer = sub.survey.get(question_id)
    if isinstance(answer, TextAnswer):
        return answer.text
    return ""


def _ordered_counts(counts: pd.Series) -> Dict[str, int]:
    items = [(str(k), int(v)) for k, v in counts.items()]
    return dict(sorted(items, key=lambda kv: (-kv[1], kv[0])))


def aggregate_submissions(submissions: Sequence[Submission]) -> AggregateTables:
    # Always recomputed from the full set; nothing is patched incrementally.
    if not submissions:
        return AggregateTables(category_counts={}, expert_counts={}, fee_counts={})

    df = pd.DataFrame(
        [
            {
                "category_code": s.category_code,
                "experts": _expert_labels(s),
                "fee": _fee(s),
            }
            for s in submissions
        ]
    )

    category_counts = df["category_code"].value_counts()
    expert_counts = df["experts"].explode().dropna().value_counts()
    fee_counts = df["fee"].dropna().value_counts()

    return AggregateTables(
        category_counts=_ordered_counts(category_counts),
        expert_counts=_ordered_counts(expert_counts),
        fee_counts=_ordered_counts(fee_counts),
    )


def _stamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")


def to_delimited(submissions: Sequence[Submission], expert_delimiter: str = "|") -> str:
    rows = [
        {
            "submission_id": s.submission_id,
            "timestamp": format_ts(s.timestamp),
            "category_code": s.category_code,
            "nickname": s.nickname,
            "preferred_experts": expert_delimiter.join(_expert_labels(s)),
            "new_service": _text(s, NEW_SERVICE_ID),
            "previous_feedback": _text(s, PREVIOUS_FEEDBACK_ID),
            "fee": _fee(s) or "",
        }
        for s in submissions
    ]
    df = pd.DataFrame(rows, columns=DELIMITED_COLUMNS)
    return df.to_csv(index=False, quoting=csv.QUOTE_ALL, lineterminator="\n")


def to_structured(submissions: Sequence[Submission]) -> str:
    return json.dumps([s.to_dict() for s in submissions], ensure_ascii=False, indent=2)


def load_structured(payload: Union[str, bytes]) -> List[Submission]:
    """
    Rebuild submissions from a structured export.
    Raises ImportFailed if the payload is not valid JSON or does not match the export schema.
    """
    try:
        text = payload.decode("utf-8-sig") if isinstance(payload, bytes) else payload
        raw = json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ImportFailed(f"Payload is not valid JSON: {e}") from e

    try:
        jsonschema.validate(instance=raw, schema=SUBMISSIONS_SCHEMA)
    except jsonschema.ValidationError as e:
        raise ImportFailed(f"Payload does not match the export schema: {e.message}") from e

    try:
        return [Submission.from_dict(item) for item in raw]
    except (KeyError, ValueError) as e:
        raise ImportFailed(f"Could not rebuild submission: {e}") from e


def write_export(payload: ExportPayload, export_dir: Union[str, Path]) -> Path:
    out_dir = Path(export_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / payload.filename
    path.write_bytes(payload.data)
    logger.info("Export written", extra={"path": str(path), "bytes": len(payload.data)})
    return path


# -------------------------
# Engine
# -------------------------

class AggregationEngine:
    """
    In-memory view over one owner's submissions.

    The set is read once from the gateway, then re-read whenever the gateway
    reports a change. Every read operation works on an immutable snapshot,
    so a concurrent reload never disturbs a filter/sort/export in flight.
    """

    def __init__(self, gateway: SubmissionGateway, owner_id: str, expert_delimiter: str = "|"):
        self.gateway = gateway
        self.owner_id = owner_id
        self.expert_delimiter = expert_delimiter
        self._lock = threading.Lock()
        self._submissions: Tuple[Submission, ...] = ()
        self._unsubscribe: Optional[Callable[[], None]] = None

    # -------------------------
    # Loading / live updates
    # -------------------------
    def load(self) -> int:
        fresh = tuple(self.gateway.list_all(self.owner_id))
        with self._lock:
            self._submissions = fresh
        return len(fresh)

    def attach(self) -> int:
        # Initial read, then follow the gateway's change events.
        if self._unsubscribe is None:
            self._unsubscribe = self.gateway.subscribe(self.owner_id, self._on_event)
        return self.load()

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_event(self, event: StoreEvent) -> None:
        try:
            self.load()
        except PersistenceFailed:
            # Keep serving the last good snapshot; the next event retries.
            logger.warning("Reload after %s event failed", event.kind)

    def snapshot(self) -> Tuple[Submission, ...]:
        with self._lock:
            return self._submissions

    # -------------------------
    # Views
    # -------------------------
    def filter(self, keyword: str = "", category_code: str = ALL_CATEGORIES) -> List[Submission]:
        return filter_submissions(self.snapshot(), keyword, category_code)

    def sort(self, order: SortOrder = "newest") -> List[Submission]:
        return sort_submissions(self.snapshot(), order)

    def view(
        self,
        keyword: str = "",
        category_code: str = ALL_CATEGORIES,
        order: SortOrder = "newest",
    ) -> List[Submission]:
        return sort_submissions(filter_submissions(self.snapshot(), keyword, category_code), order)

    def aggregate(self) -> AggregateTables:
        return aggregate_submissions(self.snapshot())

    def summary(self) -> Dict[str, Any]:
        snap = self.snapshot()
        latest = max((s.timestamp for s in snap), default=None)
        return {
            "total": len(snap),
            "latest": format_ts(latest) if latest else None,
            "categories": sorted({s.category_code for s in snap}),
        }

    # -------------------------
    # Exports
    # -------------------------
    def export_delimited(
        self,
        keyword: str = "",
        category_code: str = ALL_CATEGORIES,
        order: SortOrder = "newest",
    ) -> ExportPayload:
        rows = self.view(keyword, category_code, order)
        text = to_delimited(rows, self.expert_delimiter)
        logger.info("Delimited export built", extra={"rows": len(rows)})
        return ExportPayload(
            filename=f"pawtype_submissions_{_stamp()}.csv",
            mime_type="text/csv",
            data=text.encode("utf-8-sig"),
        )

    def export_structured(self) -> ExportPayload:
        snap = self.snapshot()
        logger.info("Structured export built", extra={"rows": len(snap)})
        return ExportPayload(
            filename=f"pawtype_submissions_{_stamp()}.json",
            mime_type="application/json",
            data=to_structured(snap).encode("utf-8"),
        )

    # -------------------------
    # Destructive
    # -------------------------
    def reset_all(self) -> int:
        # Gateway first; the in-memory set is only cleared once the delete succeeded.
        deleted = self.gateway.delete_all(self.owner_id)
        with self._lock:
            self._submissions = ()
        return deleted
