"""In-process event source for embedding the detector without SQLite."""

from __future__ import annotations

from collections import defaultdict

from petpulse.core.storage.models import ActivityEvent


class InMemoryEventSource:
    """Keeps events in a dict of lists keyed by subject. Always available."""

    def __init__(self, events: list[ActivityEvent] | None = None) -> None:
        self._events: dict[str, list[ActivityEvent]] = defaultdict(list)
        for event in events or []:
            self.add(event)

    def add(self, event: ActivityEvent) -> None:
        self._events[event.subject_id].append(event)

    def remove(self, subject_id: str, event_id: str) -> bool:
        """Drop one event. Returns False if the subject has no such event."""
        bucket = self._events.get(subject_id, [])
        for index, event in enumerate(bucket):
            if event.id == event_id:
                del bucket[index]
                return True
        return False

    def get_events_for_subject(self, subject_id: str) -> list[ActivityEvent]:
        return list(self._events.get(subject_id, []))
