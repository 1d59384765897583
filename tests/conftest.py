"""Shared test fixtures for WellInsight Health tests."""

from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

_SETTINGS_ENV = (
    "ENCRYPTION_KEY",
    "DB_PATH",
    "CACHE_TTL_SECONDS",
    "MIN_DATA_POINTS",
    "ANALYSIS_PERIOD_DAYS",
    "SUMMARY_WINDOW_DAYS",
    "QUICK_STATS_WINDOW_DAYS",
    "SLOW_GENERATION_MS",
    "INSIGHTS_HOST",
    "INSIGHTS_PORT",
    "INSIGHTS_LOG_LEVEL",
    "INSIGHTS_ALLOW_INSECURE_BIND",
)


@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in _SETTINGS_ENV:
        monkeypatch.delenv(name, raising=False)
    # Keep a developer's .env out of the settings under test.
    monkeypatch.chdir(tmp_path)


# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from wellinsight.core.storage.models import (  # noqa: E402
    StoredJournalEntry,
    StoredVitalSign,
)

FIXED_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ---------------------------------------------------------------------------
# In-memory storage fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def health_db():
    """Create an in-memory HealthDatabase for testing."""
    from wellinsight.core.storage.database import HealthDatabase

    db = HealthDatabase(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def field_encryptor():
    """Create a FieldEncryptor with a test key."""
    from cryptography.fernet import Fernet

    from wellinsight.core.storage.encryption import FieldEncryptor

    return FieldEncryptor(Fernet.generate_key().decode())


@pytest.fixture
def health_repository(health_db, field_encryptor):
    """Create a HealthRepository backed by in-memory SQLite."""
    from wellinsight.core.storage.repository import HealthRepository

    return HealthRepository(health_db, field_encryptor)


@pytest.fixture
def audit_logger(health_db):
    """Create an AuditLogger backed by in-memory SQLite."""
    from wellinsight.core.audit.logger import AuditLogger

    return AuditLogger(health_db)


# ---------------------------------------------------------------------------
# Record seeding
# ---------------------------------------------------------------------------

@pytest.fixture
def seed_records(health_repository):
    """Return ``seed(user_id, ...)`` that stores one vital + one journal entry per day.

    Records are placed 1 hour before ``end`` and then once per day going back.
    Pass ``None`` for a metric to leave it out.
    """

    def seed(
        user_id: str = "user-1",
        *,
        end: datetime = FIXED_NOW,
        days: int = 14,
        systolic: float | None = 115,
        diastolic: float | None = 75,
        heart_rate: float | None = 65,
        sleep_hours: float | None = 8,
        exercise_minutes: float | None = 50,
        stress_level: float | None = 2,
    ) -> int:
        count = 0
        for day in range(days):
            when = end - timedelta(days=day, hours=1)
            if systolic is not None or diastolic is not None or heart_rate is not None:
                health_repository.save_vital_sign(StoredVitalSign(
                    id="", user_id=user_id, recorded_at=when,
                    systolic_bp=systolic, diastolic_bp=diastolic, heart_rate=heart_rate,
                ))
                count += 1
            payload: dict = {}
            if sleep_hours is not None:
                payload["sleep"] = {"duration": sleep_hours, "quality": 7}
            if exercise_minutes is not None:
                payload["exercise"] = [
                    {"type": "Walking", "duration": exercise_minutes, "intensity": "moderate"}
                ]
            if stress_level is not None:
                payload["stress"] = {"level": stress_level}
            if payload:
                health_repository.save_journal_entry(StoredJournalEntry(
                    id="", user_id=user_id, recorded_at=when, payload=payload,
                ))
                count += 1
        return count

    return seed
