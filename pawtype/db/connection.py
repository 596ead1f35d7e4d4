import sqlite3
from contextlib import contextmanager
from typing import Iterator, Optional


def connect(db_path: str) -> sqlite3.Connection:
    # Generous timeout so concurrent writers wait instead of failing on a lock.
    conn = sqlite3.connect(db_path, timeout=60.0)

    # WAL lets readers keep going while a submission is being written.
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")

    conn.execute("PRAGMA foreign_keys = ON;")
    conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def db_session(db_path: str) -> Iterator[sqlite3.Connection]:
    # One write transaction: committed on clean exit, rolled back on any error.
    conn: Optional[sqlite3.Connection] = None
    try:
        conn = connect(db_path)
        yield conn
        conn.commit()
    except Exception:
        if conn is not None:
            conn.rollback()
        raise
    finally:
        if conn is not None:
            conn.close()
