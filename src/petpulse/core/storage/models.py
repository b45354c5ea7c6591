"""Data models for the pet journal event store and anomaly detector."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

Metric = Literal["food", "water", "litter"]
AnomalyKind = Literal["drop", "spike", "outlier"]
Severity = Literal["warning", "critical"]

METRICS: tuple[Metric, ...] = ("food", "water", "litter")

# Canned/pouch diets are ~75% moisture; wet food counts toward hydration.
WET_FOOD_WATER_RATIO = 0.75


@dataclass
class ActivityEvent:
    """One logged activity for a subject (a meal, a drink, a litter visit).

    ``date`` is the producer's local calendar day for ``occurred_at``. It is
    trusted as given; producers own the invariant that the two agree.
    """

    id: str
    subject_id: str
    occurred_at: str  # ISO 8601
    date: str  # 'YYYY-MM-DD'

    food_amount: float | None = None
    wet_food_amount: float | None = None
    dry_food_amount: float | None = None
    snack_amount: float | None = None
    water_amount: float | None = None
    litter_count: float | None = None

    # Encrypted at rest
    notes: str = ""
    created_at: str = ""

    def food_total(self) -> float:
        """Mass of everything eaten in this event."""
        return (
            (self.food_amount or 0.0)
            + (self.wet_food_amount or 0.0)
            + (self.dry_food_amount or 0.0)
            + (self.snack_amount or 0.0)
        )

    def water_total(self) -> float:
        """Water drunk plus the water-equivalent of wet food."""
        return (self.water_amount or 0.0) + (self.wet_food_amount or 0.0) * WET_FOOD_WATER_RATIO

    def litter_total(self) -> float:
        return self.litter_count or 0.0

    def metric_amounts(self) -> dict[str, float | None]:
        """Return the raw metric contributions as a dict."""
        return {
            "food_amount": self.food_amount,
            "wet_food_amount": self.wet_food_amount,
            "dry_food_amount": self.dry_food_amount,
            "snack_amount": self.snack_amount,
            "water_amount": self.water_amount,
            "litter_count": self.litter_count,
        }


@dataclass
class DailyTotals:
    """Per-day sums of each signal. Zero-filled for days without events."""

    date: str
    food: float = 0.0
    water: float = 0.0
    litter: float = 0.0

    def value(self, metric: Metric) -> float:
        return getattr(self, metric)

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "food": self.food,
            "water": self.water,
            "litter": self.litter,
        }


@dataclass
class AnomalyAlert:
    """A severity-tagged anomaly for one metric of one subject.

    Alerts carry no independent identity beyond ``id``; every recompute
    produces a fresh set that replaces the previous one.
    """

    id: str
    subject_id: str
    metric: Metric
    kind: AnomalyKind
    severity: Severity
    description: str
    change_percent: int
    current_average: float
    previous_average: float
    window_days: int
    detected_at: datetime

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the public camelCase property names."""
        return {
            "id": self.id,
            "metric": self.metric,
            "severity": self.severity,
            "description": self.description,
            "changePercent": self.change_percent,
            "currentAverage": self.current_average,
            "previousAverage": self.previous_average,
            "windowDays": self.window_days,
            "detectedAt": self.detected_at.isoformat(),
        }
