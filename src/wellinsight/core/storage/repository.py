"""Health record repository — vital signs, journal entries, insights cache rows.

The repository mediates between stored rows and the SQLite database, using
FieldEncryptor to encrypt/decrypt journal payloads and cached insights.
All timestamps are stored as UTC ISO 8601 strings so lexical comparison in
SQL matches chronological order.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from wellinsight.core.storage.database import HealthDatabase
from wellinsight.core.storage.encryption import FieldEncryptor
from wellinsight.core.storage.models import (
    CacheEntry,
    StoredJournalEntry,
    StoredVitalSign,
)

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    """Raised when repository operations fail."""


def to_utc_iso(value: datetime) -> str:
    """Normalize a datetime to a UTC ISO 8601 string (naive = UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def from_iso(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class HealthRepository:
    """CRUD repository for health records and the per-user insights cache.

    Usage::

        db = HealthDatabase(":memory:")
        db.initialize()
        repo = HealthRepository(db, FieldEncryptor(key))

        repo.save_vital_sign(StoredVitalSign(id="", user_id="u1", recorded_at=now,
                                             systolic_bp=118, diastolic_bp=76))
        readings = repo.get_vital_signs("u1", since=window_start, until=now)
    """

    def __init__(self, database: HealthDatabase, encryptor: FieldEncryptor) -> None:
        self._db = database
        self._enc = encryptor

    @property
    def database(self) -> HealthDatabase:
        return self._db

    @staticmethod
    def _new_id() -> str:
        return str(uuid.uuid4())

    # ------------------------------------------------------------------
    # Vital signs
    # ------------------------------------------------------------------

    def save_vital_sign(self, reading: StoredVitalSign) -> str:
        """Persist a vital sign reading.

        Raises:
            RepositoryError: If the reading carries no measurement at all.
        """
        if (
            reading.systolic_bp is None
            and reading.diastolic_bp is None
            and reading.heart_rate is None
        ):
            raise RepositoryError("Vital sign reading has no measurements")

        rid = reading.id or self._new_id()
        with self._db.transaction() as conn:
            conn.execute(
                """INSERT INTO vital_signs
                   (id, user_id, recorded_at, systolic_bp, diastolic_bp, heart_rate, source)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    rid,
                    reading.user_id,
                    to_utc_iso(reading.recorded_at),
                    reading.systolic_bp,
                    reading.diastolic_bp,
                    reading.heart_rate,
                    reading.source,
                ),
            )
        logger.debug("Saved vital sign %s", rid)
        return rid

    def get_vital_signs(
        self,
        user_id: str,
        *,
        since: datetime,
        until: datetime,
        include_until: bool = True,
    ) -> list[StoredVitalSign]:
        """Vital sign readings for a user inside a time window, oldest first.

        Args:
            since: Inclusive lower bound.
            until: Upper bound, inclusive unless ``include_until`` is False.
        """
        upper = "<=" if include_until else "<"
        rows = self._db.connection.execute(
            f"""SELECT id, user_id, recorded_at, systolic_bp, diastolic_bp, heart_rate, source
                FROM vital_signs
                WHERE user_id = ? AND recorded_at >= ? AND recorded_at {upper} ?
                ORDER BY recorded_at ASC""",
            (user_id, to_utc_iso(since), to_utc_iso(until)),
        ).fetchall()

        return [
            StoredVitalSign(
                id=row["id"],
                user_id=row["user_id"],
                recorded_at=from_iso(row["recorded_at"]),
                systolic_bp=row["systolic_bp"],
                diastolic_bp=row["diastolic_bp"],
                heart_rate=row["heart_rate"],
                source=row["source"],
            )
            for row in rows
        ]

    # ------------------------------------------------------------------
    # Health journal
    # ------------------------------------------------------------------

    def save_journal_entry(self, entry: StoredJournalEntry) -> str:
        """Persist a journal entry with its payload encrypted."""
        eid = entry.id or self._new_id()
        payload_enc = self._enc.encrypt(entry.payload or {})
        with self._db.transaction() as conn:
            conn.execute(
                """INSERT INTO health_journal (id, user_id, recorded_at, payload_enc)
                   VALUES (?, ?, ?, ?)""",
                (eid, entry.user_id, to_utc_iso(entry.recorded_at), payload_enc),
            )
        logger.debug("Saved journal entry %s", eid)
        return eid

    def get_journal_entries(
        self,
        user_id: str,
        *,
        since: datetime,
        until: datetime,
        include_until: bool = True,
    ) -> list[StoredJournalEntry]:
        """Decrypted journal entries for a user inside a time window, oldest first."""
        upper = "<=" if include_until else "<"
        rows = self._db.connection.execute(
            f"""SELECT id, user_id, recorded_at, payload_enc
                FROM health_journal
                WHERE user_id = ? AND recorded_at >= ? AND recorded_at {upper} ?
                ORDER BY recorded_at ASC""",
            (user_id, to_utc_iso(since), to_utc_iso(until)),
        ).fetchall()

        return [
            StoredJournalEntry(
                id=row["id"],
                user_id=row["user_id"],
                recorded_at=from_iso(row["recorded_at"]),
                payload=self._enc.decrypt(row["payload_enc"]) or {},
            )
            for row in rows
        ]

    def count_records(self, user_id: str) -> dict[str, int]:
        """Return stored record counts for a user, per table."""
        conn = self._db.connection
        vitals = conn.execute(
            "SELECT COUNT(*) FROM vital_signs WHERE user_id = ?", (user_id,)
        ).fetchone()[0]
        journal = conn.execute(
            "SELECT COUNT(*) FROM health_journal WHERE user_id = ?", (user_id,)
        ).fetchone()[0]
        return {"vital_signs": vitals, "health_journal": journal}

    def delete_user_records(self, user_id: str) -> int:
        """Delete every record and cached bundle for a user.

        Returns:
            Number of record rows (vitals + journal) deleted.
        """
        with self._db.transaction() as conn:
            vitals = conn.execute(
                "DELETE FROM vital_signs WHERE user_id = ?", (user_id,)
            ).rowcount
            journal = conn.execute(
                "DELETE FROM health_journal WHERE user_id = ?", (user_id,)
            ).rowcount
            conn.execute("DELETE FROM insights_cache WHERE user_id = ?", (user_id,))
        logger.warning("Deleted all health records for a user: %d rows", vitals + journal)
        return vitals + journal

    # ------------------------------------------------------------------
    # Insights cache
    # ------------------------------------------------------------------

    def find_fresh_insights(self, user_id: str, now: datetime) -> CacheEntry | None:
        """Return the freshest cache entry with ``expires_at > now``, or None."""
        row = self._db.connection.execute(
            """SELECT id, user_id, insights_enc, generated_at, expires_at
               FROM insights_cache
               WHERE user_id = ? AND expires_at > ?
               ORDER BY generated_at DESC LIMIT 1""",
            (user_id, to_utc_iso(now)),
        ).fetchone()
        if row is None:
            return None

        return CacheEntry(
            id=row["id"],
            user_id=row["user_id"],
            insights_data=self._enc.decrypt(row["insights_enc"]) or {},
            generated_at=from_iso(row["generated_at"]),
            expires_at=from_iso(row["expires_at"]),
        )

    def upsert_insights(self, entry: CacheEntry) -> CacheEntry:
        """Atomically replace the user's cache row.

        A single ``ON CONFLICT(user_id)`` statement, so concurrent writers never
        leave the user without a row and the last committed write wins.
        """
        eid = entry.id or self._new_id()
        schema_version: Any = entry.insights_data.get("schema_version", 0)
        insights_enc = self._enc.encrypt(entry.insights_data)
        with self._db.transaction() as conn:
            conn.execute(
                """INSERT INTO insights_cache
                       (id, user_id, insights_enc, schema_version, generated_at, expires_at)
                   VALUES (?, ?, ?, ?, ?, ?)
                   ON CONFLICT(user_id) DO UPDATE SET
                       id = excluded.id,
                       insights_enc = excluded.insights_enc,
                       schema_version = excluded.schema_version,
                       generated_at = excluded.generated_at,
                       expires_at = excluded.expires_at""",
                (
                    eid,
                    entry.user_id,
                    insights_enc,
                    int(schema_version),
                    to_utc_iso(entry.generated_at),
                    to_utc_iso(entry.expires_at),
                ),
            )
        return CacheEntry(
            id=eid,
            user_id=entry.user_id,
            insights_data=entry.insights_data,
            generated_at=entry.generated_at,
            expires_at=entry.expires_at,
        )

    def delete_insights(self, user_id: str) -> int:
        """Delete every cache row for a user, expired or not."""
        with self._db.transaction() as conn:
            return conn.execute(
                "DELETE FROM insights_cache WHERE user_id = ?", (user_id,)
            ).rowcount

    def purge_expired_insights(self, now: datetime) -> int:
        """Delete cache rows whose ``expires_at <= now``."""
        with self._db.transaction() as conn:
            count = conn.execute(
                "DELETE FROM insights_cache WHERE expires_at <= ?", (to_utc_iso(now),)
            ).rowcount
        if count:
            logger.info("Purged %d expired insights cache rows", count)
        return count

    def count_cached_insights(self) -> int:
        row = self._db.connection.execute("SELECT COUNT(*) FROM insights_cache").fetchone()
        return row[0]
