# models.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional
from uuid import uuid4

from pawtype.questionnaire.survey import SurveyAnswer, response_from_dict, response_to_dict


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_ts(ts: datetime) -> str:
    return ts.astimezone(timezone.utc).isoformat()


def parse_ts(raw: str) -> datetime:
    ts = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


@dataclass(frozen=True)
class Submission:
    submission_id: str
    timestamp: datetime
    category_code: str
    nickname: str
    survey: Mapping[str, SurveyAnswer] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Freeze the survey mapping; the record is never mutated after creation.
        object.__setattr__(self, "survey", MappingProxyType(dict(self.survey)))
        # Naive timestamps are taken as UTC so every record sorts against every other.
        if self.timestamp.tzinfo is None:
            object.__setattr__(self, "timestamp", self.timestamp.replace(tzinfo=timezone.utc))

    @staticmethod
    def create(
        category_code: str,
        nickname: str,
        survey: Mapping[str, SurveyAnswer],
        timestamp: Optional[datetime] = None,
    ) -> "Submission":
        return Submission(
            submission_id=str(uuid4()),
            timestamp=timestamp or utc_now(),
            category_code=category_code,
            nickname=nickname,
            survey=survey,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "submission_id": self.submission_id,
            "timestamp": format_ts(self.timestamp),
            "category_code": self.category_code,
            "nickname": self.nickname,
            "survey": response_to_dict(self.survey),
        }

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "Submission":
        return Submission(
            submission_id=str(d["submission_id"]),
            timestamp=parse_ts(str(d["timestamp"])),
            category_code=str(d["category_code"]),
            nickname=str(d["nickname"]),
            survey=response_from_dict(d.get("survey") or {}),
        )
