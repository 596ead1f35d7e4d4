# repository.py
from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional

from pawtype.questionnaire.survey import response_from_dict, response_to_dict
from .connection import connect, db_session
from .gateway import SubmissionGateway
from .models import Submission, format_ts, parse_ts

DEFAULT_SCHEMA_PATH = Path(__file__).with_name("schema.sql")


class SQLiteRepository(SubmissionGateway):
    def __init__(self, db_path: str, schema_sql_path: Optional[str] = None):
        super().__init__()
        self.db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        schema_path = Path(schema_sql_path) if schema_sql_path else DEFAULT_SCHEMA_PATH
        self.init_schema_from_sql(schema_path.read_text(encoding="utf-8"))

    def init_schema_from_sql(self, schema_sql: str) -> None:
        # Execute schema SQL in a single transaction.
        conn = connect(self.db_path)
        try:
            conn.executescript(schema_sql)
            conn.commit()
        finally:
            conn.close()

    # -------------------------
    # Gateway operations
    # -------------------------
    def _create(self, submission: Submission, owner_id: str) -> None:
        with db_session(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO submissions(submission_id, owner_id, submitted_at, category_code, nickname, survey_json)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    submission.submission_id,
                    owner_id,
                    format_ts(submission.timestamp),
                    submission.category_code,
                    submission.nickname,
                    json.dumps(response_to_dict(submission.survey), ensure_ascii=False),
                ),
            )

    def _list_all(self, owner_id: str) -> List[Submission]:
        conn = connect(self.db_path)
        try:
            rows = conn.execute(
                """
                SELECT submission_id, submitted_at, category_code, nickname, survey_json
                FROM submissions
                WHERE owner_id = ?
                ORDER BY submitted_at ASC, submission_id ASC
                """,
                (owner_id,),
            ).fetchall()

            return [
                Submission(
                    submission_id=r["submission_id"],
                    timestamp=parse_ts(r["submitted_at"]),
                    category_code=r["category_code"],
                    nickname=r["nickname"],
                    survey=response_from_dict(json.loads(r["survey_json"])),
                )
                for r in rows
            ]
        finally:
            conn.close()

    def _delete_all(self, owner_id: str) -> int:
        # One statement inside one transaction: all rows go, or none do.
        with db_session(self.db_path) as conn:
            cur = conn.execute("DELETE FROM submissions WHERE owner_id = ?", (owner_id,))
            return cur.rowcount

    def count(self, owner_id: str) -> int:
        conn = connect(self.db_path)
        try:
            row = conn.execute(
                "SELECT COUNT(*) AS n FROM submissions WHERE owner_id = ?",
                (owner_id,),
            ).fetchone()
            return int(row["n"])
        finally:
            conn.close()
