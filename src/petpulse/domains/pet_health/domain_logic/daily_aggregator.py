"""Day-bucketed aggregation of activity events.

Turns an unordered list of events for one subject into a dense,
chronological sequence of :class:`DailyTotals` covering the most recent
``2 * window_days`` calendar days, ending at the day of ``now``.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta

from petpulse.core.storage.models import ActivityEvent, DailyTotals

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_DAYS = 7


def window_dates(*, window_days: int = DEFAULT_WINDOW_DAYS, now: datetime | None = None) -> list[str]:
    """Calendar days of the comparison window, oldest first, last is today.

    ``now`` is read in whatever time zone it carries; callers must use one
    consistently with the producers of ``ActivityEvent.date``.
    """
    if now is None:
        now = datetime.now().astimezone()
    today = now.date()
    span = window_days * 2
    return [(today - timedelta(days=offset)).isoformat() for offset in range(span - 1, -1, -1)]


def build_daily_totals(
    events: list[ActivityEvent],
    *,
    window_days: int = DEFAULT_WINDOW_DAYS,
    now: datetime | None = None,
) -> list[DailyTotals]:
    """Sum each day's food, water and litter contributions.

    Args:
        events: The subject's events, any order.
        window_days: Half-window length; the result has twice this many days.
        now: Anchor instant. Defaults to the current local time.

    Returns:
        Exactly ``2 * window_days`` records, oldest to newest, zero-filled for
        days without events. Events dated outside the window are ignored.
    """
    days = window_dates(window_days=window_days, now=now)
    buckets = {day: DailyTotals(date=day) for day in days}

    # Stable summation order keeps float totals independent of input order.
    for event in sorted(events, key=lambda e: (e.occurred_at, e.id)):
        bucket = buckets.get(event.date)
        if bucket is None:
            continue
        bucket.food += event.food_total()
        bucket.water += event.water_total()
        bucket.litter += event.litter_total()

    return [buckets[day] for day in days]


def validate_events(events: list[ActivityEvent]) -> list[ActivityEvent]:
    """Drop events whose ``date`` is not a canonical 'YYYY-MM-DD' day.

    Each dropped record is logged; it is never silently averaged as zero.
    Agreement between ``date`` and ``occurred_at`` is not checked.
    """
    valid: list[ActivityEvent] = []
    for event in events:
        try:
            parsed = date.fromisoformat(event.date)
        except (TypeError, ValueError):
            parsed = None
        if parsed is None or parsed.isoformat() != event.date:
            logger.warning(
                "Dropping event %s for subject %s: unparsable date %r",
                event.id,
                event.subject_id,
                event.date,
            )
            continue
        valid.append(event)
    return valid
