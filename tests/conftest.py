"""Shared test fixtures for PetPulse tests."""

from __future__ import annotations

import itertools
import sys
from datetime import date, datetime, timedelta, timezone
from pathlib import Path

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENCRYPTION_KEY", "")
    monkeypatch.setenv("DB_PATH", ":memory:")
    monkeypatch.setenv("ANOMALY_WINDOW_DAYS", "7")

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from petpulse.core.storage.models import ActivityEvent  # noqa: E402

# Fixed "now" for deterministic windows: the window runs 2026-10-05 .. 2026-10-18.
NOW = datetime(2026, 10, 18, 20, 30, tzinfo=timezone.utc)
TODAY = NOW.date()
_ids = itertools.count(1)


def day(offset: int) -> str:
    """Calendar day ``offset`` days before TODAY, as 'YYYY-MM-DD'."""
    return (TODAY - timedelta(days=offset)).isoformat()


def make_event(
    days_ago: int = 0,
    subject_id: str = "cat-1",
    id: str = "",
    **amounts,
) -> ActivityEvent:
    """Create an event on the day ``days_ago`` days before TODAY."""
    on = date.fromisoformat(day(days_ago))
    occurred = datetime(on.year, on.month, on.day, 8, 0, tzinfo=timezone.utc)
    return ActivityEvent(
        id=id or f"evt-{next(_ids)}",
        subject_id=subject_id,
        occurred_at=occurred.isoformat(),
        date=on.isoformat(),
        **amounts,
    )


def daily_series(previous: float, current: float, metric: str = "food_amount",
                 subject_id: str = "cat-1", window_days: int = 7) -> list[ActivityEvent]:
    """One event per day: ``previous`` in the older half, ``current`` in the newer."""
    events = []
    for offset in range(window_days * 2):
        value = current if offset < window_days else previous
        events.append(make_event(offset, subject_id=subject_id, id=f"{subject_id}-{metric}-{offset}",
                                 **{metric: value}))
    return events


# ---------------------------------------------------------------------------
# In-memory storage fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def journal_db():
    """Create an in-memory JournalDatabase for testing."""
    from petpulse.core.storage.database import JournalDatabase

    db = JournalDatabase(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def field_encryptor():
    """Create a FieldEncryptor with a test key."""
    from cryptography.fernet import Fernet

    from petpulse.core.storage.encryption import FieldEncryptor

    return FieldEncryptor(Fernet.generate_key().decode())


@pytest.fixture
def activity_repository(journal_db, field_encryptor):
    """Create an ActivityRepository backed by in-memory SQLite."""
    from petpulse.core.storage.repository import ActivityRepository

    return ActivityRepository(journal_db, field_encryptor)


@pytest.fixture
def audit_logger(journal_db):
    """Create an AuditLogger backed by in-memory SQLite."""
    from petpulse.core.audit.logger import AuditLogger

    return AuditLogger(journal_db)
