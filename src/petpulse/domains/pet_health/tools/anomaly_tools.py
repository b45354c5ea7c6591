"""MCP tools for reading and recomputing rolling-window anomalies."""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

if TYPE_CHECKING:
    from petpulse.core.audit.logger import AuditLogger
    from petpulse.domains.pet_health.domain_logic.anomaly_detector import AnomalyService

logger = logging.getLogger(__name__)


def register_anomaly_tools(
    mcp: FastMCP,
    anomaly_service: AnomalyService,
    audit_logger: AuditLogger | None = None,
) -> None:
    """Register anomaly tools on the MCP server."""

    @mcp.tool
    async def get_anomalies(
        ctx: Context,
        subject_id: str,
    ) -> str:
        """Return the last computed anomaly alerts for a pet.

        Empty when nothing has been computed yet or no rule currently fires.

        Args:
            subject_id: The pet's identifier.
        """
        alerts = anomaly_service.get_anomalies(subject_id)
        return json.dumps([alert.to_dict() for alert in alerts], indent=2)

    @mcp.tool
    async def recalc_anomalies(
        ctx: Context,
        subject_id: str,
    ) -> str:
        """Recompute a pet's anomaly alerts from its full activity history.

        Idempotent: unchanged history on the same day yields the same alert ids.

        Args:
            subject_id: The pet's identifier.
        """
        start_time = time.monotonic()
        alerts = anomaly_service.recalc_anomalies(subject_id, trigger="recalc_anomalies")
        if audit_logger is not None:
            audit_logger.log_tool_call(
                tool_name="recalc_anomalies",
                tool_input={"subject_id": subject_id},
                subject_id=subject_id,
                duration_ms=(time.monotonic() - start_time) * 1000,
            )
        return json.dumps([alert.to_dict() for alert in alerts], indent=2)

    @mcp.tool
    async def daily_totals(
        ctx: Context,
        subject_id: str,
    ) -> str:
        """Show the per-day food, water and litter totals the detector compares.

        Args:
            subject_id: The pet's identifier.
        """
        totals = anomaly_service.daily_totals(subject_id)
        return json.dumps({
            "subject_id": subject_id,
            "window_days": anomaly_service.window_days,
            "days": [day.to_dict() for day in totals],
        }, indent=2)
