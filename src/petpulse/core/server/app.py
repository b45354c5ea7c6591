"""PetPulse MCP Server — application factory.

This module provides:
- create_app() for testability (tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import logging

from fastmcp import FastMCP

from petpulse.core.audit.logger import AuditLogger
from petpulse.core.config.settings import get_settings
from petpulse.core.storage.database import JournalDatabase
from petpulse.core.storage.encryption import EncryptionError, FieldEncryptor
from petpulse.core.storage.repository import ActivityRepository
from petpulse.domains.pet_health.domain_logic.anomaly_detector import AnomalyService
from petpulse.domains.pet_health.tools.activity_tools import register_activity_tools
from petpulse.domains.pet_health.tools.anomaly_tools import register_anomaly_tools
from petpulse.domains.pet_health.tools.audit_tools import register_audit_tools

logger = logging.getLogger(__name__)


def _open_repository(db_path: str, encryption_key: str) -> tuple[JournalDatabase, ActivityRepository]:
    """Open the configured journal, or an in-memory one when no key is set."""
    if encryption_key:
        encryptor = FieldEncryptor(encryption_key)
        database = JournalDatabase(db_path)
    else:
        logger.warning(
            "No ENCRYPTION_KEY configured; running an in-memory journal. "
            "Logged activity will not survive a restart."
        )
        encryptor = FieldEncryptor(FieldEncryptor.generate_key())
        database = JournalDatabase(":memory:")
    database.initialize()
    return database, ActivityRepository(database, encryptor)


def create_app(
    *,
    repository_override: ActivityRepository | None = None,
    audit_logger_override: AuditLogger | None = None,
) -> FastMCP:
    """Create and configure the PetPulse MCP server.

    This is the main application factory. It:
    1. Creates the FastMCP server instance
    2. Opens the event store (encrypted SQLite, or in-memory without a key)
    3. Creates the audit logger
    4. Creates the anomaly service that owns per-pet alert sets
    5. Registers all tools
    """
    settings = get_settings()

    server = FastMCP(
        "PetPulse",
        instructions=(
            "Pet health journal server. Log meals, water and litter-box visits "
            "per pet; every change recomputes rolling two-week anomaly alerts "
            "for food, water and litter activity."
        ),
    )

    # --- Event store ---
    database: JournalDatabase | None = None
    if repository_override is not None:
        repository = repository_override
    else:
        try:
            database, repository = _open_repository(settings.db_path, settings.encryption_key)
        except EncryptionError as exc:
            logger.error("Failed to initialize journal storage: %s", exc)
            raise
        logger.info(
            "Journal initialized: %s (schema v%d)",
            settings.db_path if settings.encryption_key else ":memory:",
            database.get_schema_version(),
        )

    # --- Audit trail ---
    audit_logger: AuditLogger | None = audit_logger_override
    if audit_logger is None and database is not None:
        audit_logger = AuditLogger(database)

    # --- Anomaly service ---
    anomaly_service = AnomalyService(
        repository,
        window_days=settings.anomaly_window_days,
        audit_logger=audit_logger,
    )

    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        return {
            "status": "ok",
            "server": "PetPulse",
            "version": "0.1.0",
            "anomaly_window_days": anomaly_service.window_days,
            "subjects_tracked": len(repository.list_subjects()),
            "events_stored": repository.count_events(),
            "audit_enabled": audit_logger is not None,
        }

    register_activity_tools(server, repository, anomaly_service, audit_logger)
    logger.info("Activity logging tools registered")

    register_anomaly_tools(server, anomaly_service, audit_logger)
    logger.info("Anomaly detection tools registered")

    if audit_logger is not None:
        register_audit_tools(server, audit_logger)
        logger.info("Audit tools registered")

    return server


# Module-level instance for FastMCP discovery ("...app.py:mcp").
# Lazy: only created on first access, not when tests import create_app.
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
