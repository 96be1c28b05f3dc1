"""Status events — the observer interface between the core and any UI.

The core never renders anything.  Components publish :class:`StatusEvent`
objects on a :class:`StatusBus`; presentation layers (the HTTP API, a CLI,
tests) subscribe independently.

Event vocabulary
----------------
The ``state`` values below are a stable contract:

* ``embedder_loading`` / ``embedder_ready`` / ``embedder_error``
* ``ingest_started`` — ``document``
* ``embedding_progress`` — ``document``, ``embedded``, ``failed``, ``total``
* ``ingest_succeeded`` — ``document``, ``chunk_count``, ``embedded``, ``failed``, ``total``
* ``ingest_failed`` — ``document``, ``message``
* ``document_removed`` — ``document``, ``chunk_count``
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class StatusState(str, Enum):
    EMBEDDER_LOADING = "embedder_loading"
    EMBEDDER_READY = "embedder_ready"
    EMBEDDER_ERROR = "embedder_error"
    INGEST_STARTED = "ingest_started"
    EMBEDDING_PROGRESS = "embedding_progress"
    INGEST_SUCCEEDED = "ingest_succeeded"
    INGEST_FAILED = "ingest_failed"
    DOCUMENT_REMOVED = "document_removed"


class StatusEvent(BaseModel):
    """One state transition, with whichever counts are relevant to it."""

    state: StatusState
    document: str | None = None
    chunk_count: int | None = None
    embedded: int | None = None
    failed: int | None = None
    total: int | None = None
    message: str | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


StatusListener = Callable[[StatusEvent], None]


class StatusBus:
    """Synchronous fan-out of status events to subscribed listeners."""

    def __init__(self) -> None:
        self._listeners: list[StatusListener] = []

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def emit(self, state: StatusState, **fields: object) -> StatusEvent:
        event = StatusEvent(state=state, **fields)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                # Listeners never abort ingestion or search.
                logger.exception("Status listener %r failed on %s", listener, event.state.value)
        return event


class RecentEvents:
    """Listener keeping the last *maxlen* events, newest last."""

    def __init__(self, maxlen: int = 200) -> None:
        self._events: deque[StatusEvent] = deque(maxlen=maxlen)

    def __call__(self, event: StatusEvent) -> None:
        self._events.append(event)

    def snapshot(self) -> list[StatusEvent]:
        return list(self._events)

    def states(self) -> list[StatusState]:
        return [e.state for e in self._events]
