"""Test utilities and helpers."""

from tests.utils.assertions import assert_failed, assert_succeeded
from tests.utils.builders import AppointmentBuilder, InvoiceBuilder
from tests.utils.factories import (
    create_appointment,
    create_doctor,
    create_invoice,
    create_patient,
    create_treatment,
)

__all__ = [
    # Builders
    "AppointmentBuilder",
    "InvoiceBuilder",
    # Factories
    "create_appointment",
    "create_doctor",
    "create_invoice",
    "create_patient",
    "create_treatment",
    # Assertions
    "assert_failed",
    "assert_succeeded",
]
