"""
Unit tests for the PrescriptionManager (in-memory storage).
"""

import pytest
import pytest_asyncio

from clinicbook.core.domain import ErrorKind
from tests.utils import assert_failed, assert_succeeded

# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def prescriptions(container):
    return container.prescriptions


@pytest_asyncio.fixture
async def appointment(container, clinic, at):
    return (await container.booking.create(clinic.patient, clinic.doctor, at(9, 0), at(9, 20))).value


# ============================================================================
# CREATE
# ============================================================================


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_prescriber_defaults_to_appointment_doctor(prescriptions, clinic, appointment):
    # Act
    result = await prescriptions.create(clinic.patient, appointment_id=appointment.id, notes="After meals")

    # Assert
    prescription = assert_succeeded(result)
    assert prescription.prescribed_by == clinic.doctor
    assert prescription.appointment_id == appointment.id
    assert result.event_types() == ["PrescriptionIssued"]


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_explicit_prescriber_wins(prescriptions, clinic, appointment):
    prescription = assert_succeeded(
        await prescriptions.create(clinic.patient, appointment_id=appointment.id, prescriber_id=clinic.other_doctor)
    )

    assert prescription.prescribed_by == clinic.other_doctor


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_appointment_of_another_patient_is_a_mismatch(prescriptions, clinic, appointment, container):
    result = await prescriptions.create(clinic.other_patient, appointment_id=appointment.id)

    assert_failed(result, ErrorKind.MISMATCH, "MISMATCH")
    assert result.details["appointment_patient_id"] == clinic.patient
    assert container.uow.store.tables["prescriptions"] == {}


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_standalone_prescription(prescriptions, clinic):
    prescription = assert_succeeded(await prescriptions.create(clinic.patient))

    assert prescription.appointment_id is None
    assert prescription.prescribed_by is None


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_unknown_references_are_not_found(prescriptions, clinic):
    assert_failed(await prescriptions.create(999), ErrorKind.NOT_FOUND)
    assert_failed(await prescriptions.create(clinic.patient, appointment_id=999), ErrorKind.NOT_FOUND)
    assert_failed(await prescriptions.create(clinic.patient, prescriber_id=999), ErrorKind.NOT_FOUND)


# ============================================================================
# ITEMS
# ============================================================================


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_adding_same_medication_replaces_instructions(prescriptions, clinic):
    # Arrange
    prescription = assert_succeeded(await prescriptions.create(clinic.patient))
    first = assert_succeeded(
        await prescriptions.add_item(prescription.id, clinic.medication, "500mg", "3x daily", "7 days")
    )

    # Act
    second = assert_succeeded(
        await prescriptions.add_item(prescription.id, clinic.medication, "250mg", "2x daily", notes="Reduced")
    )

    # Assert
    assert first.created is True
    assert second.created is False
    stored = assert_succeeded(await prescriptions.get(prescription.id))
    assert len(stored.items) == 1
    item = stored.items[0]
    assert (item.dosage, item.frequency, item.duration, item.notes) == ("250mg", "2x daily", None, "Reduced")
    assert item.prescription_id == prescription.id


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_item_requires_dosage_and_known_medication(prescriptions, clinic):
    prescription = assert_succeeded(await prescriptions.create(clinic.patient))

    assert_failed(await prescriptions.add_item(prescription.id, clinic.medication, "", "daily"), ErrorKind.INVALID_INPUT)
    assert_failed(await prescriptions.add_item(prescription.id, 999, "5mg", "daily"), ErrorKind.NOT_FOUND)
    assert_failed(await prescriptions.add_item(999, clinic.medication, "5mg", "daily"), ErrorKind.NOT_FOUND)


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_remove_item(prescriptions, clinic):
    prescription = assert_succeeded(await prescriptions.create(clinic.patient))
    await prescriptions.add_item(prescription.id, clinic.medication, "500mg", "3x daily")

    updated = assert_succeeded(await prescriptions.remove_item(prescription.id, clinic.medication))

    assert updated.items == []
    assert_failed(await prescriptions.remove_item(prescription.id, clinic.medication), ErrorKind.NOT_FOUND)


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_list_for_patient(prescriptions, clinic):
    first = assert_succeeded(await prescriptions.create(clinic.patient))
    second = assert_succeeded(await prescriptions.create(clinic.patient))
    assert_succeeded(await prescriptions.create(clinic.other_patient))

    listed = assert_succeeded(await prescriptions.list_for_patient(clinic.patient))

    assert [p.id for p in listed] == [first.id, second.id]
    assert_failed(await prescriptions.list_for_patient(999), ErrorKind.NOT_FOUND)
