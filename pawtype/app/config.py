from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def _env_str(key: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(key)
    if v is None:
        return default
    v = v.strip()
    return v if v else default


def _env_int(key: str, default: int) -> int:
    v = _env_str(key)
    if v is None:
        return default
    try:
        return int(v)
    except ValueError:
        return default


def _env_float(key: str, default: float) -> float:
    v = _env_str(key)
    if v is None:
        return default
    try:
        return float(v)
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    v = _env_str(key)
    if v is None:
        return default
    return v.lower() in {"1", "true", "yes", "y", "on"}


@dataclass(frozen=True)
class Settings:
    # Core paths
    db_path: str
    export_dir: str

    # Logging
    log_level: str
    log_json: bool

    # Identity / privacy
    owner_id_salt: str

    # Questionnaire session
    session_timeout_seconds: float

    # Survey
    text_max_length: int

    # Admin view (None disables it)
    admin_passphrase: Optional[str]

    # Exports
    expert_delimiter: str

    @staticmethod
    def from_env(dotenv: bool = True) -> "Settings":
        # Read configuration from environment variables (and .env when present).
        # Keep defaults safe and local-friendly.
        if dotenv:
            load_dotenv()

        db_path = _env_str("PAWTYPE_DB_PATH", "data/pawtype.db") or "data/pawtype.db"
        export_dir = _env_str("PAWTYPE_EXPORT_DIR", "exports") or "exports"

        # Create directories if needed (do not create DB file here).
        Path(export_dir).mkdir(parents=True, exist_ok=True)
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        return Settings(
            db_path=db_path,
            export_dir=export_dir,

            log_level=_env_str("PAWTYPE_LOG_LEVEL", "INFO") or "INFO",
            log_json=_env_bool("PAWTYPE_LOG_JSON", True),

            owner_id_salt=_env_str("PAWTYPE_OWNER_ID_SALT", "CHANGE_ME_SALT") or "CHANGE_ME_SALT",

            session_timeout_seconds=_env_float("PAWTYPE_SESSION_TIMEOUT_SECONDS", 300.0),

            text_max_length=_env_int("PAWTYPE_TEXT_MAX_LENGTH", 500),

            admin_passphrase=_env_str("PAWTYPE_ADMIN_PASSPHRASE"),

            expert_delimiter=_env_str("PAWTYPE_EXPERT_DELIMITER", "|") or "|",
        )
