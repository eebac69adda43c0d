"""Event log storage used by the game service."""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, List, Protocol

from binokel.events import GameEvent, event_from_dict, event_to_dict


class EventStoreError(RuntimeError):
    """Raised when the log cannot accept or return events."""


class EventStore(Protocol):
    def append(self, event: GameEvent) -> None:
        ...

    def read(self, session_id: str, after_sequence: int = 0) -> List[GameEvent]:
        ...

    def last_sequence(self, session_id: str) -> int:
        ...


class InMemoryEventStore:
    """Process-local event log.

    Events are kept in their serialized form so that a replay goes through
    the same decoding as events loaded from any other store.
    """

    def __init__(self) -> None:
        self._events: Dict[str, List[dict]] = defaultdict(list)

    def append(self, event: GameEvent) -> None:
        expected = self.last_sequence(event.session_id) + 1
        if event.sequence != expected:
            raise EventStoreError(
                f"Session {event.session_id}: expected sequence {expected}, got {event.sequence}."
            )
        self._events[event.session_id].append(event_to_dict(event))

    def read(self, session_id: str, after_sequence: int = 0) -> List[GameEvent]:
        return [
            event_from_dict(data)
            for data in self._events.get(session_id, [])
            if data["sequence"] > after_sequence
        ]

    def last_sequence(self, session_id: str) -> int:
        events = self._events.get(session_id)
        return events[-1]["sequence"] if events else 0

    def delete(self, session_id: str) -> None:
        self._events.pop(session_id, None)
