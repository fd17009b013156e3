"""
Shared pytest fixtures for all tests.

This module provides settings tuned for fast tests, a fixed clock, an
in-memory clinic container and a small seeded clinic (specialty, doctors,
patients, room, treatments, medication).
"""

import os
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

# Ensure test environment
os.environ["ENVIRONMENT"] = "test"

from clinicbook.config.settings import Settings  # noqa: E402
from clinicbook.core.container import ClinicContainer  # noqa: E402

# ============================================================================
# TIME
# ============================================================================


class FixedClock:
    """Clock returning a settable instant."""

    def __init__(self, now: datetime):
        self.current = now

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def day() -> datetime:
    """Midnight (UTC) of the day the tests book appointments on."""
    return datetime(2025, 9, 30, tzinfo=UTC)


@pytest.fixture
def at(day):
    """Build an instant on the test day: ``at(9, 20)``."""

    def _at(hour: int, minute: int = 0) -> datetime:
        return day.replace(hour=hour, minute=minute)

    return _at


@pytest.fixture
def clock(day) -> FixedClock:
    return FixedClock(day.replace(hour=8))


# ============================================================================
# SETTINGS / CONTAINER
# ============================================================================


@pytest.fixture
def settings() -> Settings:
    """Settings with short lock waits and near-zero retry backoff."""
    return Settings(
        _env_file=None,
        ENVIRONMENT="test",
        LOCK_TIMEOUT_SECONDS=0.5,
        CONFLICT_RETRY_ATTEMPTS=3,
        CONFLICT_RETRY_INITIAL_DELAY=0.001,
        CONFLICT_RETRY_MAX_DELAY=0.005,
    )


@pytest.fixture
def container(settings, clock) -> ClinicContainer:
    """Clinic container over a fresh in-memory store."""
    return ClinicContainer.in_memory(settings, clock)


@pytest_asyncio.fixture
async def clinic(container) -> SimpleNamespace:
    """
    Seed reference data through the registry.

    Returns the ids: specialty, doctor, other_doctor, patient,
    other_patient, room, consultation (10.00), xray (75.00), medication.
    """
    registry = container.registry

    specialty = (await registry.register_specialty("General Practice", "Primary care")).value
    doctor = (
        await registry.register_doctor("Alice", "Mwangi", email="alice@clinic.test", specialty_id=specialty.id)
    ).value
    other_doctor = (await registry.register_doctor("Brian", "Otieno", email="brian@clinic.test")).value
    patient = (
        await registry.register_patient("Grace", "Kimani", gender="female", email="grace@example.com")
    ).value
    other_patient = (await registry.register_patient("Peter", "Njoroge", gender="male")).value
    room = (await registry.create_room("101", floor=1, description="Consultation room")).value
    consultation = (await registry.create_treatment("CONSULT", "General consultation", "10.00")).value
    xray = (await registry.create_treatment("XRAY", "Chest X-ray", "75.00")).value
    medication = (
        await registry.create_medication("Amoxicillin", manufacturer="Generic", dosage_form="capsule", strength="500mg")
    ).value

    return SimpleNamespace(
        specialty=specialty.id,
        doctor=doctor.id,
        other_doctor=other_doctor.id,
        patient=patient.id,
        other_patient=other_patient.id,
        room=room.id,
        consultation=consultation.id,
        xray=xray.id,
        medication=medication.id,
    )


# ============================================================================
# DATABASE MOCKS
# ============================================================================


@pytest.fixture
def mock_session():
    """AsyncSession double for repository tests."""
    return AsyncMock(spec=AsyncSession)
