"""Event sources — the read contract the anomaly detector depends on."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from petpulse.core.storage.models import ActivityEvent


@runtime_checkable
class ActivityEventSource(Protocol):
    """Anything that can hand over every event logged for a subject.

    Order is not significant; the detector sorts internally.
    ``ActivityRepository`` and ``InMemoryEventSource`` both satisfy it.
    """

    def get_events_for_subject(self, subject_id: str) -> list[ActivityEvent]:
        ...
