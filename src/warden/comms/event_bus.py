"""EventBus -- thread-safe pub/sub for guard events.

Guards publish state changes and disturbance reports here; the simulation
harness publishes per-step telemetry.  Debug overlays and loggers
subscribe without the guards knowing they exist.

Event shape: ``{"type": <event_type>, "data": {...}}`` (``data`` omitted
when the publisher passes none).
"""

from __future__ import annotations

import queue
import threading

# Event types published by this package
GUARD_STATE_CHANGED = "guard_state_changed"
GUARD_DISTURBANCE = "guard_disturbance"
GUARD_TELEMETRY = "guard_telemetry"


class EventBus:
    """Simple thread-safe pub/sub with bounded per-subscriber queues."""

    def __init__(self, maxsize: int = 100) -> None:
        self._lock = threading.Lock()
        self._maxsize = maxsize
        self._subscribers: list[tuple[queue.Queue, str | None]] = []

    def subscribe(self, event_type: str | None = None) -> queue.Queue:
        """Subscribe to events.  Returns a Queue that receives them.

        With *event_type* set, only events of that type are delivered;
        otherwise the queue receives everything.
        """
        q: queue.Queue = queue.Queue(maxsize=self._maxsize)
        with self._lock:
            self._subscribers.append((q, event_type))
        return q

    def unsubscribe(self, q: queue.Queue) -> None:
        with self._lock:
            self._subscribers = [(s, f) for s, f in self._subscribers if s is not q]

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, event_type: str, data: dict | None = None) -> None:
        msg = {"type": event_type}
        if data is not None:
            msg["data"] = data
        with self._lock:
            for q, wanted in self._subscribers:
                if wanted in (None, event_type):
                    _offer(q, msg)


def _offer(q: queue.Queue, msg: dict) -> None:
    """Enqueue *msg*, evicting the oldest entry when *q* is full."""
    while True:
        try:
            q.put_nowait(msg)
            return
        except queue.Full:
            try:
                q.get_nowait()
            except queue.Empty:
                continue
