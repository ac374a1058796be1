"""
Live progress fan-out for bulk upload batches.

One topic per batch. Publishing never blocks the pipeline: each subscriber
owns a bounded buffer and the oldest event is dropped when it overflows.
Topics are disposed when the batch reaches a terminal state, which also
wakes and closes every subscriber. Nothing is replayed to late
subscribers; the persisted batch status is the fallback.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)

EVENT_TYPES = ("info", "success", "warning", "error")


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class ProgressEvent:
    batch_id: str
    phase: str
    percentage: int
    message: str
    type: str = "info"
    counters: dict[str, int] | None = None
    timestamp: str = field(default_factory=_utcnow_iso)

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        if payload["counters"] is None:
            payload.pop("counters")
        return payload


class Subscription:
    def __init__(self, broadcaster: "ProgressBroadcaster", batch_id: str, maxlen: int):
        self.batch_id = batch_id
        self._broadcaster = broadcaster
        self._events: deque[ProgressEvent] = deque(maxlen=maxlen)
        self._cond = threading.Condition()
        self._closed = False
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def _offer(self, event: ProgressEvent) -> None:
        with self._cond:
            if self._closed:
                return
            if len(self._events) == self._events.maxlen:
                self.dropped += 1
            self._events.append(event)
            self._cond.notify_all()

    def _shutdown(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def get(self, timeout: float | None = None) -> ProgressEvent | None:
        """Next event, or None on timeout or once the topic is closed and drained."""
        with self._cond:
            if not self._events and not self._closed:
                self._cond.wait(timeout)
            if self._events:
                return self._events.popleft()
            return None

    def drain(self) -> list[ProgressEvent]:
        with self._cond:
            events = list(self._events)
            self._events.clear()
            return events

    def close(self) -> None:
        self._shutdown()
        self._broadcaster._unsubscribe(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class _Topic:
    def __init__(self) -> None:
        self.subscribers: set[Subscription] = set()
        self.last_percentage: int | None = None


class ProgressBroadcaster:
    def __init__(self, buffer_size: int = 200):
        self._buffer_size = max(1, buffer_size)
        self._topics: dict[str, _Topic] = {}
        self._lock = threading.Lock()

    def subscribe(self, batch_id: str) -> Subscription:
        sub = Subscription(self, batch_id, self._buffer_size)
        with self._lock:
            self._topics.setdefault(batch_id, _Topic()).subscribers.add(sub)
        return sub

    def _unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            topic = self._topics.get(sub.batch_id)
            if topic is None:
                return
            topic.subscribers.discard(sub)
            # Drop idle topics nobody has published to yet.
            if not topic.subscribers and topic.last_percentage is None:
                self._topics.pop(sub.batch_id, None)

    def publish(
        self,
        batch_id: str,
        phase: str,
        percentage: int,
        message: str,
        type: str = "info",
        counters: dict[str, int] | None = None,
    ) -> ProgressEvent | None:
        """Fire and forget. Percentages never go backwards within a batch."""
        try:
            with self._lock:
                topic = self._topics.setdefault(batch_id, _Topic())
                pct = max(0, min(100, int(percentage)))
                if topic.last_percentage is not None:
                    pct = max(pct, topic.last_percentage)
                topic.last_percentage = pct
                event = ProgressEvent(
                    batch_id=batch_id,
                    phase=phase,
                    percentage=pct,
                    message=message,
                    type=type if type in EVENT_TYPES else "info",
                    counters=counters,
                )
                subscribers = list(topic.subscribers)
            for sub in subscribers:
                sub._offer(event)
            return event
        except Exception:
            logger.exception("bulk_upload_progress_publish_failed batch_id=%s phase=%s", batch_id, phase)
            return None

    def close_topic(self, batch_id: str) -> None:
        with self._lock:
            topic = self._topics.pop(batch_id, None)
        if topic is None:
            return
        for sub in list(topic.subscribers):
            sub._shutdown()

    def has_topic(self, batch_id: str) -> bool:
        with self._lock:
            return batch_id in self._topics

    def subscriber_count(self, batch_id: str) -> int:
        with self._lock:
            topic = self._topics.get(batch_id)
            return len(topic.subscribers) if topic else 0
