# rkive/events.py

"""
Change notifications keyed by table name.

A consumer calls `hub.subscribe("citations")` and owns the returned
Subscription until it calls `close()` (or leaves the `with` block). Events
published while the subscription is open are queued for it; nothing is
delivered after teardown.
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Set

logger = logging.getLogger("rkive.events")

PAPERS_TABLE = "research_papers"
CITATIONS_TABLE = "citations"
BOOKMARKS_TABLE = "bookmarks"


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    action: str  # "insert" | "update" | "delete"
    record: Dict[str, Any] = field(default_factory=dict)


class Subscription:
    def __init__(self, hub: "ChannelHub", table: str):
        self._hub = hub
        self.table = table
        self._queue: "queue.Queue[ChangeEvent]" = queue.Queue()
        self.closed = False

    def _deliver(self, event: ChangeEvent) -> None:
        if not self.closed:
            self._queue.put(event)

    def get(self, timeout: Optional[float] = None) -> Optional[ChangeEvent]:
        """
        Next queued event, or None if nothing arrives within `timeout`.
        """
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self) -> List[ChangeEvent]:
        """Return every event queued so far without blocking."""
        events: List[ChangeEvent] = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                return events

    def __iter__(self) -> Iterator[ChangeEvent]:
        return iter(self.drain())

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._hub._unsubscribe(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class ChannelHub:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: Dict[str, Set[Subscription]] = {}

    def subscribe(self, table: str) -> Subscription:
        sub = Subscription(self, table)
        with self._lock:
            self._subscribers.setdefault(table, set()).add(sub)
        logger.debug("Subscribed to %s", table)
        return sub

    def _unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            subs = self._subscribers.get(sub.table)
            if subs is not None:
                subs.discard(sub)
                if not subs:
                    del self._subscribers[sub.table]
        logger.debug("Unsubscribed from %s", sub.table)

    def subscriber_count(self, table: str) -> int:
        with self._lock:
            return len(self._subscribers.get(table, ()))

    def publish(self, table: str, action: str, record: Optional[Dict[str, Any]] = None) -> int:
        """
        Deliver a change to every open subscription on `table`.

        Returns the number of subscriptions that received it.
        """
        event = ChangeEvent(table=table, action=action, record=dict(record or {}))
        with self._lock:
            targets = list(self._subscribers.get(table, ()))
        for sub in targets:
            sub._deliver(event)
        return len(targets)
