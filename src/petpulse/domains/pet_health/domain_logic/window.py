"""Splits the dense day sequence into previous/current half-windows."""

from __future__ import annotations

from dataclasses import dataclass

from petpulse.core.storage.models import DailyTotals, Metric


@dataclass
class ComparisonWindow:
    """Two contiguous, non-overlapping half-windows and the latest raw day."""

    previous: list[DailyTotals]
    current: list[DailyTotals]
    window_days: int

    @property
    def latest(self) -> DailyTotals:
        return self.current[-1]

    @property
    def latest_date(self) -> str:
        return self.latest.date

    def previous_average(self, metric: Metric) -> float:
        return average_metric(self.previous, metric, self.window_days)

    def current_average(self, metric: Metric) -> float:
        return average_metric(self.current, metric, self.window_days)


def split_window(totals: list[DailyTotals], window_days: int) -> ComparisonWindow:
    """Split ``2 * window_days`` dense totals into older and newer halves."""
    if len(totals) != window_days * 2:
        raise ValueError(
            f"Expected {window_days * 2} daily totals, got {len(totals)}"
        )
    return ComparisonWindow(
        previous=totals[:window_days],
        current=totals[window_days:],
        window_days=window_days,
    )


def average_metric(half_window: list[DailyTotals], metric: Metric, window_days: int) -> float:
    """Mean of ``metric`` over a half-window, dividing by ``window_days``."""
    return sum(day.value(metric) for day in half_window) / window_days
