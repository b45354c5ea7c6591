"""Drop, spike and outlier rules over a two-week comparison window.

Each metric is checked independently by three non-exclusive rules:

* **drop**    — current-week average fell by at least the metric's drop ratio.
* **spike**   — current-week average reached the metric's spike multiplier.
* **outlier** — the latest day's raw total met the metric's absolute ceiling,
  regardless of history (a brand-new subject can trip it).

Drop and spike need a non-zero previous average; a zero previous average
leaves only the outlier rule able to fire.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime

from petpulse.core.storage.models import METRICS, AnomalyAlert, AnomalyKind, Metric, Severity
from petpulse.domains.pet_health.domain_logic.window import ComparisonWindow

logger = logging.getLogger(__name__)

CRITICAL_DROP_PERCENT = 50
CRITICAL_SPIKE_PERCENT = 100


@dataclass(frozen=True)
class MetricThresholds:
    """Tunable limits for one metric."""

    drop_ratio: float
    spike_multiplier: float
    outlier_threshold: float
    # Only food escalates an outlier to critical.
    critical_outlier_multiplier: float | None = None
    label: str = ""
    unit: str = ""


THRESHOLDS: dict[Metric, MetricThresholds] = {
    "food": MetricThresholds(
        drop_ratio=0.30,
        spike_multiplier=1.6,
        outlier_threshold=600,
        critical_outlier_multiplier=1.5,
        label="Food intake",
        unit="g",
    ),
    "water": MetricThresholds(
        drop_ratio=0.40,
        spike_multiplier=1.8,
        outlier_threshold=600,
        label="Water intake",
        unit="ml",
    ),
    "litter": MetricThresholds(
        drop_ratio=0.40,
        spike_multiplier=1.8,
        outlier_threshold=8,
        label="Litter visits",
        unit="visits",
    ),
}


def alert_id(subject_id: str, metric: Metric, kind: AnomalyKind, date: str) -> str:
    """Deterministic alert identity: subject, metric, kind and latest window date.

    Unchanged inputs reproduce identical ids, and the outlier rule relies on
    this to skip an id the same run already emitted.
    """
    return f"{subject_id}-{metric}-{kind}-{date}"


def round_half_up(value: float) -> int:
    """Round to the nearest integer, ties toward positive infinity."""
    return math.floor(value + 0.5)


def round_2dp(value: float) -> float:
    return math.floor(value * 100 + 0.5) / 100


def change_percent(previous_avg: float, current_avg: float) -> int:
    """Signed percent change between half-window averages; 0 if previous is 0."""
    if previous_avg <= 0:
        return 0
    return round_half_up((current_avg - previous_avg) / previous_avg * 100)


def _fmt(value: float) -> str:
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return text or "0"


def evaluate_window(
    subject_id: str,
    window: ComparisonWindow,
    *,
    detected_at: datetime,
    thresholds: dict[Metric, MetricThresholds] | None = None,
) -> list[AnomalyAlert]:
    """Apply the drop, spike and outlier rules to every metric.

    Order is stable: drop/spike for food, water, litter, then outliers for
    food, water, litter.

    Args:
        subject_id: Subject the window belongs to (embedded in alert ids).
        window: Previous/current half-windows from :func:`split_window`.
        detected_at: Instant stamped on every alert.
        thresholds: Per-metric limits; defaults to :data:`THRESHOLDS`.

    Returns:
        Flat list of alerts, possibly empty.
    """
    limits = thresholds or THRESHOLDS
    alerts: list[AnomalyAlert] = []
    seen: set[str] = set()

    def emit(metric: Metric, kind: AnomalyKind, severity: Severity, description: str,
             pct: int, prev_avg: float, curr_avg: float) -> None:
        aid = alert_id(subject_id, metric, kind, window.latest_date)
        if aid in seen:
            return
        seen.add(aid)
        alerts.append(AnomalyAlert(
            id=aid,
            subject_id=subject_id,
            metric=metric,
            kind=kind,
            severity=severity,
            description=description,
            change_percent=pct,
            current_average=round_2dp(curr_avg),
            previous_average=round_2dp(prev_avg),
            window_days=window.window_days,
            detected_at=detected_at,
        ))

    days = window.window_days

    for metric in METRICS:
        limit = limits[metric]
        prev_avg = window.previous_average(metric)
        curr_avg = window.current_average(metric)
        if prev_avg <= 0:
            continue
        pct = change_percent(prev_avg, curr_avg)
        averages = (
            f"avg {_fmt(round_2dp(curr_avg))} {limit.unit}/day vs "
            f"{_fmt(round_2dp(prev_avg))} {limit.unit}/day in the previous {days} days"
        )

        if curr_avg < prev_avg and (prev_avg - curr_avg) / prev_avg >= limit.drop_ratio:
            severity: Severity = "critical" if abs(pct) >= CRITICAL_DROP_PERCENT else "warning"
            emit(metric, "drop", severity,
                 f"{limit.label} dropped {abs(pct)}% over the last {days} days ({averages}).",
                 pct, prev_avg, curr_avg)

        if curr_avg > prev_avg and curr_avg >= prev_avg * limit.spike_multiplier:
            severity = "critical" if pct >= CRITICAL_SPIKE_PERCENT else "warning"
            emit(metric, "spike", severity,
                 f"{limit.label} rose {pct}% over the last {days} days ({averages}).",
                 pct, prev_avg, curr_avg)

    for metric in METRICS:
        limit = limits[metric]
        latest_value = window.latest.value(metric)
        if latest_value < limit.outlier_threshold:
            continue
        prev_avg = window.previous_average(metric)
        curr_avg = window.current_average(metric)
        pct = change_percent(prev_avg, curr_avg)
        severity = "warning"
        if (
            limit.critical_outlier_multiplier is not None
            and latest_value >= limit.outlier_threshold * limit.critical_outlier_multiplier
        ):
            severity = "critical"
        emit(metric, "outlier", severity,
             f"{limit.label} reached {_fmt(latest_value)} {limit.unit} on {window.latest_date}, "
             f"at or above the {_fmt(limit.outlier_threshold)} {limit.unit} daily limit "
             f"({pct:+d}% change; avg {_fmt(round_2dp(curr_avg))} vs "
             f"{_fmt(round_2dp(prev_avg))} {limit.unit}/day).",
             pct, prev_avg, curr_avg)

    if alerts:
        logger.debug("Subject %s: %d anomaly alert(s)", subject_id, len(alerts))
    return alerts
