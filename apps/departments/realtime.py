"""
apps.departments.realtime
~~~~~~~~~~~~~~~~~~~~~~~~~
In-process change feed for department assignments.

Changes are published only after the writing transaction commits, so a
listener never reloads rows that are later rolled back.  ``AssignmentStore``
publishes one change per call covering every department it wrote; writes
made anywhere else (the admin, a shell) are published per row from model
signals (see ``signals.py``).  Each change carries the *origin* of the write,
the session id of the layout editor that made it.  Listeners subscribe per
``(organization, vertical)`` and skip events that carry their own origin.

Public API
----------
change_origin(origin)             - context manager tagging writes
current_origin() -> str | None
batched_changes()                 - context manager muting per-row signals
in_batch() -> bool
publish_on_commit(change)
feed                              - process-wide ChangeFeed
RealtimeSyncListener(...)
"""
from __future__ import annotations

import threading
from collections import defaultdict
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass

import structlog
from django.db import transaction

logger = structlog.get_logger(__name__)

_origin: ContextVar[str | None] = ContextVar("department_change_origin", default=None)
_batch: ContextVar[bool] = ContextVar("department_change_batch", default=False)


@contextmanager
def change_origin(origin: str | None) -> Iterator[None]:
    token = _origin.set(origin)
    try:
        yield
    finally:
        _origin.reset(token)


def current_origin() -> str | None:
    return _origin.get()


@contextmanager
def batched_changes() -> Iterator[None]:
    """Writes inside this block are published once by the caller, not per row."""
    token = _batch.set(True)
    try:
        yield
    finally:
        _batch.reset(token)


def in_batch() -> bool:
    return _batch.get()


@dataclass(frozen=True)
class AssignmentChange:
    event_type: str  # INSERT | UPDATE | DELETE
    organization_id: int
    vertical_id: str
    department_ids: tuple[str, ...] = ()
    origin: str | None = None


ChangeCallback = Callable[[AssignmentChange], None]


class ChangeFeed:
    """Fan-out of assignment changes to subscribers of one org/vertical."""

    def __init__(self) -> None:
        self._subscribers: dict[tuple[int, str], list[ChangeCallback]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, organization_id: int, vertical_id: str, callback: ChangeCallback) -> None:
        with self._lock:
            self._subscribers[(organization_id, str(vertical_id))].append(callback)

    def unsubscribe(self, organization_id: int, vertical_id: str, callback: ChangeCallback) -> None:
        key = (organization_id, str(vertical_id))
        with self._lock:
            callbacks = self._subscribers.get(key, [])
            if callback in callbacks:
                callbacks.remove(callback)
            if not callbacks:
                self._subscribers.pop(key, None)

    def subscriber_count(self, organization_id: int, vertical_id: str) -> int:
        with self._lock:
            return len(self._subscribers.get((organization_id, str(vertical_id)), []))

    def publish(self, change: AssignmentChange) -> None:
        with self._lock:
            callbacks = list(self._subscribers.get((change.organization_id, change.vertical_id), []))

        for callback in callbacks:
            try:
                callback(change)
            except Exception:
                # One broken listener must not fail the write that triggered it.
                logger.exception(
                    "department_change_subscriber_failed",
                    organization_id=change.organization_id,
                    vertical_id=change.vertical_id,
                )


feed = ChangeFeed()


def publish_on_commit(change: AssignmentChange, change_feed: ChangeFeed | None = None) -> None:
    """Publish *change* when the current transaction commits; dropped on rollback."""
    target = change_feed or feed
    transaction.on_commit(lambda: target.publish(change))


class RealtimeSyncListener:
    """
    Subscribes to assignment changes of one organisation/vertical and calls
    ``on_change`` for every change made by somebody else.

    Call ``close()`` when the editor goes away; a closed listener ignores
    anything still in flight.
    """

    def __init__(
        self,
        organization_id: int,
        vertical_id: str,
        *,
        session_id: str,
        on_change: ChangeCallback,
        change_feed: ChangeFeed | None = None,
        enabled: bool = True,
    ) -> None:
        self.organization_id = organization_id
        self.vertical_id = str(vertical_id)
        self.session_id = session_id
        self.on_change = on_change
        self.feed = change_feed or feed
        self.enabled = enabled
        self._subscribed = False

    def start(self) -> "RealtimeSyncListener":
        if self.enabled and not self._subscribed:
            self.feed.subscribe(self.organization_id, self.vertical_id, self._handle)
            self._subscribed = True
            logger.debug(
                "department_listener_started",
                organization_id=self.organization_id,
                vertical_id=self.vertical_id,
                session_id=self.session_id,
            )
        return self

    def close(self) -> None:
        if self._subscribed:
            self.feed.unsubscribe(self.organization_id, self.vertical_id, self._handle)
            self._subscribed = False

    @property
    def is_active(self) -> bool:
        return self._subscribed

    def __enter__(self) -> "RealtimeSyncListener":
        return self.start()

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _handle(self, change: AssignmentChange) -> None:
        if not self._subscribed:
            return
        if change.origin is not None and change.origin == self.session_id:
            return
        logger.info(
            "department_remote_change",
            event_type=change.event_type,
            department_ids=list(change.department_ids),
            vertical_id=change.vertical_id,
        )
        self.on_change(change)
