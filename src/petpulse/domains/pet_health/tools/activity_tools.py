"""MCP tools for logging pet activity (meals, water, litter visits).

Every mutation re-runs the anomaly detector for the affected subject and
returns the fresh alert set alongside the write result.
"""

from __future__ import annotations

import json
import logging
import time
from datetime import datetime
from typing import TYPE_CHECKING, Any

from fastmcp import Context, FastMCP

from petpulse.core.storage.models import ActivityEvent
from petpulse.core.storage.repository import RepositoryError

if TYPE_CHECKING:
    from petpulse.core.audit.logger import AuditLogger
    from petpulse.core.storage.repository import ActivityRepository
    from petpulse.domains.pet_health.domain_logic.anomaly_detector import AnomalyService

logger = logging.getLogger(__name__)


def _resolve_timing(occurred_at: str, date: str) -> tuple[str, str]:
    """Fill in a missing instant or calendar day.

    A day without an instant is pinned to local noon on that day, so the
    two fields never disagree.

    Raises:
        ValueError: If ``occurred_at`` or ``date`` is given but not ISO 8601.
    """
    if occurred_at:
        instant = datetime.fromisoformat(occurred_at)
    elif date:
        instant = datetime.fromisoformat(date).replace(hour=12, minute=0, second=0,
                                                       microsecond=0).astimezone()
        occurred_at = instant.isoformat()
    else:
        instant = datetime.now().astimezone()
        occurred_at = instant.isoformat()
    if not date:
        date = instant.date().isoformat()
    return occurred_at, date


def _event_to_dict(event: ActivityEvent) -> dict[str, Any]:
    data: dict[str, Any] = {
        "event_id": event.id,
        "subject_id": event.subject_id,
        "occurred_at": event.occurred_at,
        "date": event.date,
    }
    data.update({k: v for k, v in event.metric_amounts().items() if v is not None})
    if event.notes:
        data["notes"] = event.notes
    return data


def register_activity_tools(
    mcp: FastMCP,
    repository: ActivityRepository,
    anomaly_service: AnomalyService,
    audit_logger: AuditLogger | None = None,
) -> None:
    """Register activity logging tools on the MCP server."""

    def _recalc(subject_id: str, trigger: str) -> list[dict[str, Any]]:
        alerts = anomaly_service.recalc_anomalies(subject_id, trigger=trigger)
        return [alert.to_dict() for alert in alerts]

    def _audit(tool_name: str, tool_input: dict[str, Any], subject_id: str | None,
               start_time: float, status: str = "success", error_type: str | None = None) -> None:
        if audit_logger is None:
            return
        audit_logger.log_tool_call(
            tool_name=tool_name,
            tool_input=tool_input,
            subject_id=subject_id,
            duration_ms=(time.monotonic() - start_time) * 1000,
            status=status,
            error_type=error_type,
        )

    @mcp.tool
    async def log_activity(
        ctx: Context,
        subject_id: str,
        occurred_at: str = "",
        date: str = "",
        food_amount: float | None = None,
        wet_food_amount: float | None = None,
        dry_food_amount: float | None = None,
        snack_amount: float | None = None,
        water_amount: float | None = None,
        litter_count: float | None = None,
        notes: str = "",
    ) -> str:
        """Record a meal, drink or litter visit for a pet.

        Args:
            subject_id: The pet's identifier.
            occurred_at: When it happened (ISO 8601). Defaults to now.
            date: Local calendar day (YYYY-MM-DD). Defaults to the day of occurred_at.
            food_amount: Food eaten (g), when not split by type.
            wet_food_amount: Wet food eaten (g). Also counts 75% toward water.
            dry_food_amount: Dry food eaten (g).
            snack_amount: Snacks eaten (g).
            water_amount: Water drunk (ml).
            litter_count: Litter-box visits.
            notes: Free-text notes (stored encrypted).
        """
        start_time = time.monotonic()
        tool_input = {"subject_id": subject_id, "occurred_at": occurred_at, "date": date}
        try:
            occurred_at, date = _resolve_timing(occurred_at, date)
            event = ActivityEvent(
                id="",
                subject_id=subject_id,
                occurred_at=occurred_at,
                date=date,
                food_amount=food_amount,
                wet_food_amount=wet_food_amount,
                dry_food_amount=dry_food_amount,
                snack_amount=snack_amount,
                water_amount=water_amount,
                litter_count=litter_count,
                notes=notes,
            )
            event_id = repository.save_event(event)
        except (RepositoryError, ValueError) as exc:
            _audit("log_activity", tool_input, subject_id, start_time, "failure", type(exc).__name__)
            return json.dumps({"status": "error", "message": str(exc)})

        anomalies = _recalc(subject_id, "log_activity")
        _audit("log_activity", tool_input, subject_id, start_time)
        return json.dumps({
            "status": "saved",
            "event_id": event_id,
            "date": date,
            "anomalies": anomalies,
        })

    @mcp.tool
    async def update_activity(
        ctx: Context,
        event_id: str,
        occurred_at: str = "",
        date: str = "",
        food_amount: float | None = None,
        wet_food_amount: float | None = None,
        dry_food_amount: float | None = None,
        snack_amount: float | None = None,
        water_amount: float | None = None,
        litter_count: float | None = None,
        notes: str | None = None,
    ) -> str:
        """Edit a previously logged activity. Omitted fields keep their values.

        Args:
            event_id: The event to edit.
            occurred_at: New instant (ISO 8601).
            date: New local calendar day (YYYY-MM-DD). Derived from occurred_at if
                only the instant changes.
            food_amount: New food amount (g).
            wet_food_amount: New wet food amount (g).
            dry_food_amount: New dry food amount (g).
            snack_amount: New snack amount (g).
            water_amount: New water amount (ml).
            litter_count: New litter-box visit count.
            notes: New notes.
        """
        start_time = time.monotonic()
        existing = repository.get_event(event_id)
        if existing is None:
            return json.dumps({
                "status": "not_found",
                "event_id": event_id,
                "message": "No event found with that ID.",
            })

        tool_input = {"event_id": event_id, "occurred_at": occurred_at, "date": date}
        try:
            if occurred_at or date:
                occurred_at, date = _resolve_timing(occurred_at, date)
            if occurred_at:
                existing.occurred_at = occurred_at
            if date:
                existing.date = date
            overrides = {
                "food_amount": food_amount,
                "wet_food_amount": wet_food_amount,
                "dry_food_amount": dry_food_amount,
                "snack_amount": snack_amount,
                "water_amount": water_amount,
                "litter_count": litter_count,
            }
            for name, value in overrides.items():
                if value is not None:
                    setattr(existing, name, value)
            if notes is not None:
                existing.notes = notes
            repository.update_event(existing)
        except (RepositoryError, ValueError) as exc:
            _audit("update_activity", tool_input, existing.subject_id, start_time,
                   "failure", type(exc).__name__)
            return json.dumps({"status": "error", "message": str(exc)})

        anomalies = _recalc(existing.subject_id, "update_activity")
        _audit("update_activity", tool_input, existing.subject_id, start_time)
        return json.dumps({
            "status": "updated",
            "event": _event_to_dict(existing),
            "anomalies": anomalies,
        })

    @mcp.tool
    async def delete_activity(
        ctx: Context,
        event_id: str,
    ) -> str:
        """Delete a logged activity and recompute the pet's anomalies.

        Args:
            event_id: The event to delete.
        """
        existing = repository.get_event(event_id)
        if existing is None or not repository.delete_event(event_id):
            return json.dumps({
                "status": "not_found",
                "event_id": event_id,
                "message": "No event found with that ID.",
            })

        if audit_logger is not None:
            audit_logger.log_data_delete(
                tool_name="delete_activity",
                subject_id=existing.subject_id,
                count=1,
            )
        anomalies = _recalc(existing.subject_id, "delete_activity")
        return json.dumps({
            "status": "deleted",
            "event_id": event_id,
            "anomalies": anomalies,
        })

    @mcp.tool
    async def list_activity(
        ctx: Context,
        subject_id: str,
        since_date: str = "",
        limit: int = 50,
    ) -> str:
        """List logged activities for a pet, oldest first.

        Args:
            subject_id: The pet's identifier.
            since_date: Only events on or after this day (YYYY-MM-DD).
            limit: Maximum number of (most recent) events to return.
        """
        events = repository.get_events_for_subject(
            subject_id, since_date=since_date or None, limit=limit
        )
        return json.dumps({
            "status": "ok",
            "subject_id": subject_id,
            "count": len(events),
            "events": [_event_to_dict(event) for event in events],
        }, indent=2)

    @mcp.tool
    async def delete_subject_data(
        ctx: Context,
        subject_id: str,
        confirm: str = "",
    ) -> str:
        """Permanently delete every logged activity for a pet.

        Args:
            subject_id: The pet's identifier.
            confirm: Must be exactly 'DELETE_ALL' to proceed. Safety gate.
        """
        if confirm != "DELETE_ALL":
            return json.dumps({
                "status": "cancelled",
                "message": (
                    "To delete this pet's journal, call this tool with "
                    "confirm='DELETE_ALL'. This action cannot be undone."
                ),
            })

        count = repository.delete_subject_data(subject_id)
        anomaly_service.evict(subject_id)
        if audit_logger is not None:
            audit_logger.log_data_delete(
                tool_name="delete_subject_data",
                subject_id=subject_id,
                count=count,
                metadata={"confirmed": True},
            )
        return json.dumps({
            "status": "all_deleted",
            "subject_id": subject_id,
            "events_deleted": count,
        })
