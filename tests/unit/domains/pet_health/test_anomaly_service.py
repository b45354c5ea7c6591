"""Tests for AnomalyService — per-subject alert sets and recompute-and-replace."""

from __future__ import annotations

import threading

from conftest import NOW, daily_series, make_event
from petpulse.core.storage.models import ActivityEvent
from petpulse.domains.pet_health.connectors import ActivityEventSource
from petpulse.domains.pet_health.connectors.memory import InMemoryEventSource
from petpulse.domains.pet_health.domain_logic.anomaly_detector import AnomalyService


class TestEventSources:
    def test_in_memory_source_satisfies_protocol(self):
        assert isinstance(InMemoryEventSource(), ActivityEventSource)

    def test_repository_satisfies_protocol(self, activity_repository):
        assert isinstance(activity_repository, ActivityEventSource)

    def test_in_memory_remove(self):
        event = make_event(0, food_amount=10)
        source = InMemoryEventSource([event])
        assert source.remove("cat-1", event.id) is True
        assert source.remove("cat-1", event.id) is False
        assert source.get_events_for_subject("cat-1") == []


class TestGetAnomalies:
    def test_never_computed_is_empty(self):
        service = AnomalyService(InMemoryEventSource())
        assert service.get_anomalies("cat-1") == []

    def test_no_events_yields_empty_set(self):
        service = AnomalyService(InMemoryEventSource())
        assert service.recalc_anomalies("cat-1", now=NOW) == []
        assert service.get_anomalies("cat-1") == []

    def test_returns_last_computed_set(self):
        service = AnomalyService(InMemoryEventSource(daily_series(50, 20)))
        computed = service.recalc_anomalies("cat-1", now=NOW)
        assert [a.id for a in service.get_anomalies("cat-1")] == [a.id for a in computed]

    def test_returned_list_is_a_copy(self):
        service = AnomalyService(InMemoryEventSource(daily_series(50, 20)))
        service.recalc_anomalies("cat-1", now=NOW)
        service.get_anomalies("cat-1").clear()
        assert len(service.get_anomalies("cat-1")) == 1


class TestRecalcAnomalies:
    def test_recompute_replaces_previous_set(self):
        source = InMemoryEventSource(daily_series(50, 20))
        service = AnomalyService(source)
        assert len(service.recalc_anomalies("cat-1", now=NOW)) == 1

        # Refill the current week so the drop disappears
        for offset in range(7):
            source.add(make_event(offset, food_amount=30))
        assert service.recalc_anomalies("cat-1", now=NOW) == []
        assert service.get_anomalies("cat-1") == []

    def test_recompute_is_idempotent(self):
        service = AnomalyService(InMemoryEventSource(daily_series(2, 6, metric="litter_count")))
        first = [a.to_dict() for a in service.recalc_anomalies("cat-1", now=NOW)]
        second = [a.to_dict() for a in service.recalc_anomalies("cat-1", now=NOW)]
        assert first == second

    def test_subjects_are_independent(self):
        source = InMemoryEventSource(
            daily_series(50, 20, subject_id="cat-1") + daily_series(50, 50, subject_id="cat-2")
        )
        service = AnomalyService(source)
        service.recalc_anomalies("cat-1", now=NOW)
        service.recalc_anomalies("cat-2", now=NOW)
        assert len(service.get_anomalies("cat-1")) == 1
        assert service.get_anomalies("cat-2") == []

    def test_unparsable_dates_dropped_before_aggregation(self):
        bad = ActivityEvent(
            id="bad", subject_id="cat-1",
            occurred_at=NOW.isoformat(), date="18/10/2026", water_amount=5000,
        )
        service = AnomalyService(InMemoryEventSource([bad]))
        assert service.recalc_anomalies("cat-1", now=NOW) == []

    def test_window_days_configurable(self):
        service = AnomalyService(
            InMemoryEventSource(daily_series(50, 20, window_days=3)), window_days=3
        )
        alerts = service.recalc_anomalies("cat-1", now=NOW)
        assert [a.window_days for a in alerts] == [3]
        assert len(service.daily_totals("cat-1", now=NOW)) == 6

    def test_reads_from_repository(self, activity_repository):
        for event in daily_series(50, 20):
            activity_repository.save_event(event)
        service = AnomalyService(activity_repository)
        alerts = service.recalc_anomalies("cat-1", now=NOW)
        assert [(a.metric, a.kind, a.change_percent) for a in alerts] == [("food", "drop", -60)]

    def test_concurrent_recomputes_same_subject(self):
        service = AnomalyService(InMemoryEventSource(daily_series(50, 20)))
        results: list[int] = []

        def worker():
            results.append(len(service.recalc_anomalies("cat-1", now=NOW)))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results == [1] * 8
        assert len(service.get_anomalies("cat-1")) == 1

    def test_recompute_is_audited(self, audit_logger):
        service = AnomalyService(
            InMemoryEventSource(daily_series(50, 20)), audit_logger=audit_logger
        )
        service.recalc_anomalies("cat-1", now=NOW, trigger="test")
        events = audit_logger.get_events(action="anomaly_recompute")
        assert len(events) == 1
        assert events[0]["subject_id"] == "cat-1"
        assert '"alerts":1' in events[0]["metadata_json"]


class TestEviction:
    def test_evict_forgets_one_subject(self):
        source = InMemoryEventSource(
            daily_series(50, 20, subject_id="cat-1") + daily_series(50, 20, subject_id="cat-2")
        )
        service = AnomalyService(source)
        service.recalc_anomalies("cat-1", now=NOW)
        service.recalc_anomalies("cat-2", now=NOW)

        service.evict("cat-1")
        assert service.get_anomalies("cat-1") == []
        assert len(service.get_anomalies("cat-2")) == 1

    def test_clear_forgets_everything(self):
        service = AnomalyService(InMemoryEventSource(daily_series(50, 20)))
        service.recalc_anomalies("cat-1", now=NOW)
        service.clear()
        assert service.get_anomalies("cat-1") == []

    def test_clear_waits_for_in_flight_recompute(self):
        events = daily_series(50, 20)
        started = threading.Event()
        release = threading.Event()

        class SlowSource:
            def get_events_for_subject(self, subject_id):
                started.set()
                release.wait(5)
                return list(events)

        service = AnomalyService(SlowSource())
        recompute = threading.Thread(
            target=service.recalc_anomalies, args=("cat-1",), kwargs={"now": NOW}
        )
        recompute.start()
        assert started.wait(5)

        clearer = threading.Thread(target=service.clear)
        clearer.start()
        clearer.join(0.1)
        assert clearer.is_alive()

        release.set()
        recompute.join(5)
        clearer.join(5)
        assert service.get_anomalies("cat-1") == []

    def test_evict_after_recompute_keeps_subject_lock(self):
        service = AnomalyService(InMemoryEventSource(daily_series(50, 20)))
        service.recalc_anomalies("cat-1", now=NOW)
        lock = service._lock_for("cat-1")
        service.evict("cat-1")
        assert service._lock_for("cat-1") is lock
        assert len(service.recalc_anomalies("cat-1", now=NOW)) == 1
