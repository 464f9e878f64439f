import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Deque, List

DEFAULT_EVENT_LOG_SIZE = 256


@dataclass(frozen=True)
class Event:
    kind: str
    agent: str = ""
    tool: str = ""
    channel: str = ""
    message: str = ""
    time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


Subscriber = Callable[[Event], None]


class EventLog:
    """Fixed-capacity event ring buffer with optional subscriber sinks.

    Appends are lock-protected so one runtime instance can serve tasks from
    several threads; the oldest events are evicted once capacity is reached.
    """

    def __init__(self, capacity: int = DEFAULT_EVENT_LOG_SIZE):
        self._lock = threading.Lock()
        self._events: Deque[Event] = deque(maxlen=max(1, int(capacity or DEFAULT_EVENT_LOG_SIZE)))
        self._subscribers: List[Subscriber] = []

    @property
    def capacity(self) -> int:
        return self._events.maxlen or 0

    def subscribe(self, subscriber: Subscriber) -> None:
        with self._lock:
            self._subscribers.append(subscriber)

    def publish(self, kind: str, agent: str = "", tool: str = "", channel: str = "", message: str = "") -> Event:
        event = Event(kind=kind, agent=agent, tool=tool, channel=channel, message=message)
        with self._lock:
            self._events.append(event)
            subscribers = list(self._subscribers)
        for subscriber in subscribers:
            subscriber(event)
        return event

    def snapshot(self) -> List[Event]:
        with self._lock:
            return list(self._events)

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
