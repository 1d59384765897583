"""SQLite database management for the WellInsight record store.

Opens the connection, applies versioned schema migrations and provides a
commit-or-rollback transaction helper for writers.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

logger = logging.getLogger(__name__)

# Current schema version
SCHEMA_VERSION = 2

# ---------------------------------------------------------------------------
# Schema DDL
# ---------------------------------------------------------------------------

_SCHEMA_V1 = """
-- One row per vital sign reading (cuff, watch, clinic visit)
CREATE TABLE IF NOT EXISTS vital_signs (
    id           TEXT PRIMARY KEY,
    user_id      TEXT NOT NULL,
    recorded_at  TEXT NOT NULL,
    systolic_bp  REAL,
    diastolic_bp REAL,
    heart_rate   REAL,
    source       TEXT NOT NULL DEFAULT 'manual',
    created_at   TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Daily journal: sleep / exercise / stress / notes, encrypted JSON payload
CREATE TABLE IF NOT EXISTS health_journal (
    id          TEXT PRIMARY KEY,
    user_id     TEXT NOT NULL,
    recorded_at TEXT NOT NULL,
    payload_enc TEXT NOT NULL,
    created_at  TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Composed insights bundle, at most one row per user
CREATE TABLE IF NOT EXISTS insights_cache (
    id             TEXT PRIMARY KEY,
    user_id        TEXT NOT NULL UNIQUE,
    insights_enc   TEXT NOT NULL,
    schema_version INTEGER NOT NULL,
    generated_at   TEXT NOT NULL,
    expires_at     TEXT NOT NULL
);

-- Indexes for window queries
CREATE INDEX IF NOT EXISTS idx_vitals_user_ts   ON vital_signs(user_id, recorded_at);
CREATE INDEX IF NOT EXISTS idx_journal_user_ts  ON health_journal(user_id, recorded_at);
CREATE INDEX IF NOT EXISTS idx_cache_expires    ON insights_cache(expires_at);
"""

# ---------------------------------------------------------------------------
# V2: Audit log table (access logging, PHI-free)
# ---------------------------------------------------------------------------

_SCHEMA_V2 = """
CREATE TABLE IF NOT EXISTS audit_log (
    id            TEXT PRIMARY KEY,
    timestamp     TEXT NOT NULL DEFAULT (datetime('now')),
    action        TEXT NOT NULL,
    tool_name     TEXT,
    user_hash     TEXT,
    cache_status  TEXT,
    duration_ms   REAL,
    status        TEXT NOT NULL DEFAULT 'success',
    error_type    TEXT,
    metadata_json TEXT
);

CREATE INDEX IF NOT EXISTS idx_audit_timestamp ON audit_log(timestamp);
CREATE INDEX IF NOT EXISTS idx_audit_action    ON audit_log(action);
CREATE INDEX IF NOT EXISTS idx_audit_user      ON audit_log(user_hash);
"""


# (version, DDL, description), applied in order on initialize.
_MIGRATIONS: list[tuple[int, str, str]] = [
    (1, _SCHEMA_V1, "vital_signs, health_journal, insights_cache tables"),
    (2, _SCHEMA_V2, "audit_log table"),
]


class DatabaseError(Exception):
    """Raised when database operations fail."""


class HealthDatabase:
    """SQLite store for health records, the insights cache and the audit log.

    ``":memory:"`` gives a private in-memory database; tests use it, and so
    does the server when no encryption key is configured.

    Usage::

        with HealthDatabase("~/.wellinsight/health.db") as db:
            with db.transaction() as conn:
                conn.execute("DELETE FROM insights_cache")
    """

    def __init__(self, db_path: str = ":memory:") -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None

    @property
    def path(self) -> str:
        return self._db_path

    @property
    def connection(self) -> sqlite3.Connection:
        """The open connection.

        Raises:
            DatabaseError: ``initialize()`` has not been called, or the
                database was closed.
        """
        if self._conn is None:
            raise DatabaseError("Database not initialized. Call initialize() first.")
        return self._conn

    def initialize(self) -> None:
        """Open the connection and bring the schema up to ``SCHEMA_VERSION``.

        Creates parent directories for file databases. Calling it again on an
        open database does nothing.
        """
        if self._conn is not None:
            return
        self._conn = self._open()
        self._migrate()
        logger.info("Health database initialized: %s", self._db_path)

    def _open(self) -> sqlite3.Connection:
        if self._db_path == ":memory:":
            conn = sqlite3.connect(":memory:")
        else:
            db_file = Path(self._db_path).expanduser()
            db_file.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(db_file))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    def _migrate(self) -> None:
        conn = self.connection
        # Version bookkeeping has to exist before the first migration is read.
        conn.execute(
            "CREATE TABLE IF NOT EXISTS schema_version ("
            "version INTEGER NOT NULL, applied_at TEXT NOT NULL DEFAULT (datetime('now')))"
        )
        current = self.get_schema_version()
        for version, ddl, description in _MIGRATIONS:
            if version <= current:
                continue
            conn.executescript(ddl)
            conn.execute("INSERT INTO schema_version (version) VALUES (?)", (version,))
            conn.commit()
            logger.info("Applied schema migration V%d: %s", version, description)

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Yield the connection; commit on success, roll back on error."""
        conn = self.connection
        try:
            yield conn
        except Exception:
            conn.rollback()
            raise
        conn.commit()

    def get_schema_version(self) -> int:
        row = self.connection.execute("SELECT MAX(version) FROM schema_version").fetchone()
        return row[0] if row[0] is not None else 0

    def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        if self._conn is None:
            return
        self._conn.close()
        self._conn = None
        logger.info("Health database closed")

    def __enter__(self) -> HealthDatabase:
        self.initialize()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
