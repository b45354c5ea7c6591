"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """PetPulse server configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Loopback by default: there is no auth layer in front of the journal.
    petpulse_host: str = "127.0.0.1"
    petpulse_port: int = 8011
    petpulse_log_level: str = "info"
    # Binding to a non-loopback host is refused unless this is set true.
    petpulse_allow_insecure_bind: bool = False

    # Storage (event store)
    db_path: str = "~/.petpulse/journal.db"

    # Encryption of free-text notes. Empty runs an in-memory journal.
    encryption_key: str = ""

    # Anomaly detection: half-window length in days
    anomaly_window_days: int = 7


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
