"""Anomaly detection for per-subject food, water and litter activity.

``detect_anomalies`` is a pure function of one subject's events.
``AnomalyService`` owns the per-subject alert sets and serialises each
subject's recompute-and-replace step.
"""

from __future__ import annotations

import logging
import threading
import time
from datetime import datetime
from typing import TYPE_CHECKING

from petpulse.core.storage.models import ActivityEvent, AnomalyAlert
from petpulse.domains.pet_health.domain_logic.anomaly_rules import evaluate_window
from petpulse.domains.pet_health.domain_logic.daily_aggregator import (
    DEFAULT_WINDOW_DAYS,
    build_daily_totals,
    validate_events,
)
from petpulse.domains.pet_health.domain_logic.window import split_window

if TYPE_CHECKING:
    from petpulse.core.audit.logger import AuditLogger
    from petpulse.core.storage.models import DailyTotals
    from petpulse.domains.pet_health.connectors import ActivityEventSource

logger = logging.getLogger(__name__)


def detect_anomalies(
    subject_id: str,
    events: list[ActivityEvent],
    *,
    window_days: int = DEFAULT_WINDOW_DAYS,
    now: datetime | None = None,
) -> list[AnomalyAlert]:
    """Compute the current anomaly alerts for one subject.

    Total and side-effect free: an empty event list yields an all-zero
    window and no alerts. Days without events count as zero activity, so a
    subject that simply stops being logged reads as a drop.

    Args:
        subject_id: The subject the events belong to.
        events: All of the subject's events, any order.
        window_days: Half-window length.
        now: Instant anchoring "today" and stamped as ``detected_at``.
    """
    if now is None:
        now = datetime.now().astimezone()
    totals = build_daily_totals(events, window_days=window_days, now=now)
    window = split_window(totals, window_days)
    return evaluate_window(subject_id, window, detected_at=now)


class AnomalyService:
    """Keeps the latest alert set per subject.

    Usage::

        service = AnomalyService(repository)
        service.recalc_anomalies("cat-1")   # after every add/edit/remove
        service.get_anomalies("cat-1")

    Recomputes for the same subject are serialised with a per-subject lock so
    a stale computation can never overwrite a newer one; different subjects
    proceed in parallel.

    One lock is kept per subject ever recomputed and is never released, so
    the lock map grows with the number of distinct pets, not with traffic.
    """

    def __init__(
        self,
        source: ActivityEventSource,
        *,
        window_days: int = DEFAULT_WINDOW_DAYS,
        audit_logger: AuditLogger | None = None,
    ) -> None:
        self._source = source
        self._window_days = window_days
        self._audit = audit_logger
        self._alerts: dict[str, list[AnomalyAlert]] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @property
    def window_days(self) -> int:
        return self._window_days

    def _lock_for(self, subject_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(subject_id)
            if lock is None:
                lock = self._locks[subject_id] = threading.Lock()
            return lock

    def _load_events(self, subject_id: str) -> list[ActivityEvent]:
        return validate_events(self._source.get_events_for_subject(subject_id))

    def recalc_anomalies(
        self,
        subject_id: str,
        *,
        now: datetime | None = None,
        trigger: str = "",
    ) -> list[AnomalyAlert]:
        """Recompute a subject's alerts from its full event list and replace the cached set."""
        with self._lock_for(subject_id):
            start_time = time.monotonic()
            events = self._load_events(subject_id)
            alerts = detect_anomalies(
                subject_id, events, window_days=self._window_days, now=now
            )
            self._alerts[subject_id] = alerts
            elapsed_ms = (time.monotonic() - start_time) * 1000

        logger.info(
            "Recomputed anomalies for subject %s: %d event(s), %d alert(s)",
            subject_id,
            len(events),
            len(alerts),
        )
        if self._audit is not None:
            self._audit.log_recompute(
                subject_id,
                alert_count=len(alerts),
                duration_ms=elapsed_ms,
                trigger=trigger,
            )
        return list(alerts)

    def get_anomalies(self, subject_id: str) -> list[AnomalyAlert]:
        """Last computed alert set; empty if never computed or nothing fires."""
        return list(self._alerts.get(subject_id, []))

    def daily_totals(self, subject_id: str, *, now: datetime | None = None) -> list[DailyTotals]:
        """The dense day sequence the detector sees for a subject."""
        return build_daily_totals(
            self._load_events(subject_id), window_days=self._window_days, now=now
        )

    def evict(self, subject_id: str) -> None:
        """Forget a subject's cached alerts.

        Waits for an in-flight recompute of the subject, so its result cannot
        land after the eviction. The subject's lock itself is kept: a waiter
        may already hold a reference to it.
        """
        with self._lock_for(subject_id):
            self._alerts.pop(subject_id, None)

    def clear(self) -> None:
        """Forget every cached alert set, subject by subject under its lock."""
        with self._locks_guard:
            subjects = list(self._locks)
        for subject_id in subjects:
            self.evict(subject_id)
