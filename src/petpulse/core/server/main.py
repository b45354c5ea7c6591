"""PetPulse server entry point — ``python -m petpulse.core.server.main``."""

from __future__ import annotations

import logging
from ipaddress import ip_address

from petpulse.core.config.settings import Settings, get_settings
from petpulse.core.server.app import create_app


def _describe_journal(settings: Settings) -> str:
    """One-line summary of where events live and how far back alerts look."""
    if settings.encryption_key:
        storage = f"encrypted journal at {settings.db_path}"
    else:
        storage = "in-memory journal (no ENCRYPTION_KEY; data is lost on restart)"
    days = settings.anomaly_window_days
    return f"{storage}, anomaly window {days}+{days} days"


def _is_loopback_host(host: str) -> bool:
    if host == "localhost":
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


def run() -> None:
    """Start the PetPulse MCP server with Streamable HTTP transport."""
    settings = get_settings()
    logging.basicConfig(level=getattr(logging, settings.petpulse_log_level.upper(), logging.INFO))

    logger = logging.getLogger(__name__)
    if not settings.petpulse_allow_insecure_bind and not _is_loopback_host(settings.petpulse_host):
        raise RuntimeError(
            "Refusing to bind PetPulse to a non-loopback host without an auth layer. "
            "Set PETPULSE_ALLOW_INSECURE_BIND=true to override (unsafe)."
        )
    logger.info(
        "Starting PetPulse server on %s:%d with %s",
        settings.petpulse_host,
        settings.petpulse_port,
        _describe_journal(settings),
    )

    mcp = create_app()
    mcp.run(
        transport="streamable-http",
        host=settings.petpulse_host,
        port=settings.petpulse_port,
    )


if __name__ == "__main__":
    run()
