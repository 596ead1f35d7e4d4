# gateway.py
from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, List, Literal, Optional

from pawtype.app.errors import PersistenceFailed
from pawtype.app.logging import get_logger
from .models import Submission

logger = get_logger(__name__)

EventKind = Literal["created", "deleted_all"]


@dataclass(frozen=True)
class StoreEvent:
    kind: EventKind
    owner_id: str
    submission: Optional[Submission] = None


Listener = Callable[[StoreEvent], None]


class SubmissionGateway(ABC):
    """
    Per-owner, append-only submission store.

    Implementations raise PersistenceFailed on any backend failure and must
    leave the collection unchanged when they do. Listeners registered through
    subscribe() are notified only after a write has succeeded.
    """

    def __init__(self) -> None:
        self._listeners: Dict[str, List[Listener]] = {}
        self._listeners_lock = threading.Lock()

    @abstractmethod
    def _create(self, submission: Submission, owner_id: str) -> None: ...

    @abstractmethod
    def _list_all(self, owner_id: str) -> List[Submission]: ...

    @abstractmethod
    def _delete_all(self, owner_id: str) -> int: ...

    def create(self, submission: Submission, owner_id: str) -> None:
        self._call("create", lambda: self._create(submission, owner_id))
        logger.info("Submission stored", extra={"submission_id": submission.submission_id})
        self._notify(StoreEvent(kind="created", owner_id=owner_id, submission=submission))

    def list_all(self, owner_id: str) -> List[Submission]:
        return self._call("list", lambda: self._list_all(owner_id))

    def delete_all(self, owner_id: str) -> int:
        deleted = self._call("delete", lambda: self._delete_all(owner_id))
        logger.warning("All submissions deleted", extra={"deleted": deleted})
        self._notify(StoreEvent(kind="deleted_all", owner_id=owner_id))
        return deleted

    def subscribe(self, owner_id: str, listener: Listener) -> Callable[[], None]:
        with self._listeners_lock:
            self._listeners.setdefault(owner_id, []).append(listener)

        def unsubscribe() -> None:
            with self._listeners_lock:
                listeners = self._listeners.get(owner_id, [])
                if listener in listeners:
                    listeners.remove(listener)

        return unsubscribe

    def _notify(self, event: StoreEvent) -> None:
        with self._listeners_lock:
            listeners = list(self._listeners.get(event.owner_id, []))
        # The write already succeeded; a failing listener must not turn it into an error.
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("Listener failed on %s event", event.kind)

    def _call(self, op: str, fn: Callable):
        try:
            return fn()
        except PersistenceFailed:
            logger.exception("Store %s failed", op)
            raise
        except Exception as e:
            logger.exception("Store %s failed", op)
            raise PersistenceFailed(f"Store {op} failed: {e}") from e


class InMemoryGateway(SubmissionGateway):
    # Process-local store; used for tests and single-process demos.
    def __init__(self) -> None:
        super().__init__()
        self._data: Dict[str, List[Submission]] = {}
        self._lock = threading.Lock()

    def _create(self, submission: Submission, owner_id: str) -> None:
        with self._lock:
            rows = self._data.setdefault(owner_id, [])
            if any(s.submission_id == submission.submission_id for s in rows):
                raise PersistenceFailed(f"Duplicate submission_id: {submission.submission_id}")
            rows.append(submission)

    def _list_all(self, owner_id: str) -> List[Submission]:
        with self._lock:
            return list(self._data.get(owner_id, []))

    def _delete_all(self, owner_id: str) -> int:
        with self._lock:
            return len(self._data.pop(owner_id, []))
