"""Activity event repository — the journal's event store.

The repository mediates between :class:`ActivityEvent` and the SQLite
database, using FieldEncryptor for free-text notes. It satisfies the
``ActivityEventSource`` read contract the anomaly detector depends on.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Any

from petpulse.core.storage.database import JournalDatabase
from petpulse.core.storage.encryption import FieldEncryptor
from petpulse.core.storage.models import ActivityEvent

logger = logging.getLogger(__name__)

_AMOUNT_FIELDS = (
    "food_amount",
    "wet_food_amount",
    "dry_food_amount",
    "snack_amount",
    "water_amount",
    "litter_count",
)


class RepositoryError(Exception):
    """Raised when repository operations fail."""


class ActivityRepository:
    """CRUD repository for per-subject activity events.

    Usage::

        db = JournalDatabase(":memory:")
        db.initialize()
        repo = ActivityRepository(db, FieldEncryptor(key="..."))

        event_id = repo.save_event(event)
        events = repo.get_events_for_subject("cat-1")
    """

    def __init__(self, database: JournalDatabase, encryptor: FieldEncryptor) -> None:
        self._db = database
        self._enc = encryptor

    @staticmethod
    def _new_id() -> str:
        return str(uuid.uuid4())

    @staticmethod
    def _now_iso() -> str:
        return datetime.now(timezone.utc).isoformat()

    @staticmethod
    def _check_event(event: ActivityEvent) -> None:
        if not event.subject_id:
            raise RepositoryError("Event has no subject_id")
        if not event.occurred_at or not event.date:
            raise RepositoryError("Event needs both occurred_at and date")
        try:
            canonical = date.fromisoformat(event.date).isoformat() == event.date
        except ValueError:
            canonical = False
        if not canonical:
            raise RepositoryError(f"date must be YYYY-MM-DD, got {event.date!r}")
        for name in _AMOUNT_FIELDS:
            value = getattr(event, name)
            if value is not None and value < 0:
                raise RepositoryError(f"{name} must be non-negative, got {value!r}")

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save_event(self, event: ActivityEvent) -> str:
        """Persist an activity event.

        Args:
            event: The event to save. If ``event.id`` is empty, a UUID is
                generated.

        Returns:
            The event ID.

        Raises:
            RepositoryError: If the event is missing identity fields or has a
                negative amount.
        """
        self._check_event(event)
        conn = self._db.connection
        eid = event.id or self._new_id()
        now = event.created_at or self._now_iso()

        conn.execute(
            """INSERT INTO activity_events (
                id, subject_id, occurred_at, date,
                food_amount, wet_food_amount, dry_food_amount, snack_amount,
                water_amount, litter_count, notes_enc, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                eid,
                event.subject_id,
                event.occurred_at,
                event.date,
                event.food_amount,
                event.wet_food_amount,
                event.dry_food_amount,
                event.snack_amount,
                event.water_amount,
                event.litter_count,
                self._enc.encrypt(event.notes),
                now,
            ),
        )
        conn.commit()
        logger.info("Saved event %s for subject %s (date=%s)", eid, event.subject_id, event.date)
        return eid

    def update_event(self, event: ActivityEvent) -> bool:
        """Replace the stored fields of an existing event.

        The subject of an event cannot change; a mismatch is rejected.

        Returns:
            True if the event existed and was updated, False otherwise.
        """
        self._check_event(event)
        existing = self.get_event(event.id)
        if existing is None:
            return False
        if existing.subject_id != event.subject_id:
            raise RepositoryError(
                f"Event {event.id} belongs to {existing.subject_id!r}, not {event.subject_id!r}"
            )

        conn = self._db.connection
        conn.execute(
            """UPDATE activity_events SET
                occurred_at = ?, date = ?,
                food_amount = ?, wet_food_amount = ?, dry_food_amount = ?,
                snack_amount = ?, water_amount = ?, litter_count = ?,
                notes_enc = ?
               WHERE id = ?""",
            (
                event.occurred_at,
                event.date,
                event.food_amount,
                event.wet_food_amount,
                event.dry_food_amount,
                event.snack_amount,
                event.water_amount,
                event.litter_count,
                self._enc.encrypt(event.notes),
                event.id,
            ),
        )
        conn.commit()
        logger.info("Updated event %s for subject %s", event.id, event.subject_id)
        return True

    def delete_event(self, event_id: str) -> bool:
        """Delete a single event.

        Returns:
            True if an event was found and deleted, False otherwise.
        """
        conn = self._db.connection
        cursor = conn.execute("DELETE FROM activity_events WHERE id = ?", (event_id,))
        conn.commit()
        if cursor.rowcount == 0:
            return False
        logger.info("Deleted event %s", event_id)
        return True

    def delete_subject_data(self, subject_id: str) -> int:
        """Delete every event for a subject.

        Returns:
            Number of events deleted.
        """
        conn = self._db.connection
        cursor = conn.execute("DELETE FROM activity_events WHERE subject_id = ?", (subject_id,))
        conn.commit()
        logger.warning("Deleted all events for subject %s: %d removed", subject_id, cursor.rowcount)
        return cursor.rowcount

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_event(self, event_id: str) -> ActivityEvent | None:
        """Retrieve an event by ID, decrypting notes."""
        row = self._db.connection.execute(
            "SELECT * FROM activity_events WHERE id = ?", (event_id,)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_event(row)

    def get_events_for_subject(
        self,
        subject_id: str,
        *,
        since_date: str | None = None,
        limit: int | None = None,
    ) -> list[ActivityEvent]:
        """All events for a subject, oldest first.

        Args:
            subject_id: The subject whose events to return.
            since_date: Optional 'YYYY-MM-DD' lower bound (inclusive).
            limit: Optional cap on the number of events, applied to the
                newest events.
        """
        conditions = ["subject_id = ?"]
        params: list[Any] = [subject_id]

        if since_date:
            conditions.append("date >= ?")
            params.append(since_date)

        where = " AND ".join(conditions)
        query = f"SELECT * FROM activity_events WHERE {where} ORDER BY occurred_at DESC, id DESC"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        rows = self._db.connection.execute(query, params).fetchall()
        events = [self._row_to_event(row) for row in rows]
        events.reverse()
        return events

    def list_subjects(self) -> list[str]:
        """Distinct subject ids that have at least one event."""
        rows = self._db.connection.execute(
            "SELECT DISTINCT subject_id FROM activity_events ORDER BY subject_id"
        ).fetchall()
        return [row[0] for row in rows]

    def count_events(self, subject_id: str | None = None) -> int:
        """Return the number of stored events, optionally for one subject."""
        if subject_id is None:
            row = self._db.connection.execute("SELECT COUNT(*) FROM activity_events").fetchone()
        else:
            row = self._db.connection.execute(
                "SELECT COUNT(*) FROM activity_events WHERE subject_id = ?", (subject_id,)
            ).fetchone()
        return row[0]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _row_to_event(self, row: Any) -> ActivityEvent:
        return ActivityEvent(
            id=row["id"],
            subject_id=row["subject_id"],
            occurred_at=row["occurred_at"],
            date=row["date"],
            food_amount=row["food_amount"],
            wet_food_amount=row["wet_food_amount"],
            dry_food_amount=row["dry_food_amount"],
            snack_amount=row["snack_amount"],
            water_amount=row["water_amount"],
            litter_count=row["litter_count"],
            notes=self._enc.decrypt(row["notes_enc"]),
            created_at=row["created_at"],
        )
