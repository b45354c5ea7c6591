"""MCP tools for viewing the audit trail.

The audit log records which tools touched which pet's journal and when,
never the notes or amounts themselves.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

if TYPE_CHECKING:
    from petpulse.core.audit.logger import AuditLogger

logger = logging.getLogger(__name__)


def register_audit_tools(
    mcp: FastMCP,
    audit_logger: AuditLogger,
) -> None:
    """Register audit trail tools on the MCP server."""

    @mcp.tool
    async def audit_summary(
        ctx: Context,
        days: int = 30,
        subject_id: str = "",
    ) -> str:
        """View recent journal access, recompute and deletion events.

        Args:
            days: Number of days to look back (default: 30).
            subject_id: Optionally restrict to one pet.
        """
        since = (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()

        total_events = audit_logger.count_events(since=since)
        recompute_count = audit_logger.count_events(action="anomaly_recompute", since=since)
        recent_events = audit_logger.get_events(
            since=since, subject_id=subject_id or None, limit=20
        )

        display_events = [
            {
                "timestamp": event.get("timestamp"),
                "action": event.get("action"),
                "tool_name": event.get("tool_name"),
                "subject_id": event.get("subject_id"),
                "status": event.get("status"),
                "duration_ms": event.get("duration_ms"),
            }
            for event in recent_events
        ]

        return json.dumps({
            "status": "ok",
            "period_days": days,
            "total_events": total_events,
            "anomaly_recomputes": recompute_count,
            "recent_events": display_events,
        }, indent=2)
