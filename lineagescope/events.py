"""Ordered event log with explicit replay.

Every emitted event is appended to the log before handlers run, so the log
order always matches the order of state changes. A handler registered
with ``replay=True`` first receives the matching past events, synchronously
and in order, and then live events.
"""

from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from lineagescope.logging import logger

ALL_EVENTS = "*"


@dataclass(frozen=True)
class Event:
    """A single entry in the event log."""

    seq: int
    name: str
    payload: dict[str, Any] = field(default_factory=dict)


Handler = Callable[[Event], None]


class EventLog:
    """Per-session event log and dispatcher."""

    def __init__(self, max_events: int = 1000) -> None:
        self._events: deque[Event] = deque(maxlen=max_events)
        self._handlers: list[tuple[str, Handler]] = []
        self._seq = 0

    def on(self, name: str, handler: Handler, replay: bool = False) -> Callable[[], None]:
        """Register a handler for an event name (or ``"*"`` for all events).

        Args:
            name: Event name to listen for.
            handler: Called with each matching Event.
            replay: Deliver matching events already in the log first.

        Returns:
            A function that unregisters the handler.
        """
        if replay:
            for event in list(self._events):
                if name in (ALL_EVENTS, event.name):
                    self._dispatch(handler, event)

        entry = (name, handler)
        self._handlers.append(entry)

        def unsubscribe() -> None:
            if entry in self._handlers:
                self._handlers.remove(entry)

        return unsubscribe

    def emit(self, name: str, **payload: Any) -> Event:
        """Append an event to the log and deliver it to current handlers."""
        self._seq += 1
        event = Event(seq=self._seq, name=name, payload=payload)
        self._events.append(event)
        for handler_name, handler in list(self._handlers):
            if handler_name in (ALL_EVENTS, name):
                self._dispatch(handler, event)
        return event

    def history(self, name: str | None = None) -> list[Event]:
        return [e for e in self._events if name is None or e.name == name]

    def clear(self) -> None:
        self._events.clear()

    @staticmethod
    def _dispatch(handler: Handler, event: Event) -> None:
        # Handler failures are logged, never propagated to the emitter
        try:
            handler(event)
        except Exception:
            logger.exception("Event handler failed for '%s' (seq %d)", event.name, event.seq)
