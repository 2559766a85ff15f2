"""In-process event fan-out for connected clients.

Every subscriber gets its own queue; `emit` pushes the same message to all of
them. The SSE endpoint drains one queue per open HTTP connection.
"""

from __future__ import annotations

import json
import logging
import queue
import threading
from dataclasses import dataclass
from typing import Any, Iterator, Optional

logger = logging.getLogger(__name__)

TEMPLATE_CREATED = "template:created"
TEMPLATE_UPDATED = "template:updated"
TEMPLATE_DELETED = "template:deleted"
SCHEDULES_PUBLISHED = "schedules:published"
EMPLOYEE_ASSIGNED = "employee:assigned"
EMPLOYEE_REMOVED = "employee:removed"


@dataclass(frozen=True)
class Event:
    name: str
    payload: Any

    def to_sse(self) -> str:
        data = json.dumps(self.payload, default=str, separators=(",", ":"))
        return f"event: {self.name}\ndata: {data}\n\n"


class EventBroadcaster:
    def __init__(self, max_queue_size: int = 100):
        self._max_queue_size = max_queue_size
        self._subscribers: list[queue.Queue] = []
        self._lock = threading.Lock()

    def subscribe(self) -> queue.Queue:
        q: queue.Queue = queue.Queue(maxsize=self._max_queue_size)
        with self._lock:
            self._subscribers.append(q)
        return q

    def unsubscribe(self, q: queue.Queue) -> None:
        with self._lock:
            if q in self._subscribers:
                self._subscribers.remove(q)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def emit(self, name: str, payload: Any = None) -> int:
        """Deliver to every subscriber. Returns how many queues received it."""

        event = Event(name=name, payload=payload)
        with self._lock:
            targets = list(self._subscribers)

        delivered = 0
        for q in targets:
            try:
                q.put_nowait(event)
                delivered += 1
            except queue.Full:
                # Slow client; it will miss this event.
                logger.warning("Dropping %s for a subscriber with a full queue", name)
        logger.debug("Emitted %s to %d subscriber(s)", name, delivered)
        return delivered

    def stream(self, q: queue.Queue, *, keepalive_seconds: float = 15.0) -> Iterator[str]:
        """Yield SSE frames from `q` until the client disconnects."""

        try:
            yield ": connected\n\n"
            while True:
                event: Optional[Event]
                try:
                    event = q.get(timeout=keepalive_seconds)
                except queue.Empty:
                    yield ": keepalive\n\n"
                    continue
                yield event.to_sse()
        finally:
            self.unsubscribe(q)
