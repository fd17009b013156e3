"""Clinic schema and sample data.

Revision ID: 001_clinic_schema
Revises: None
Create Date: 2026-10-18

Creates the clinic tables with their referential actions and seeds a small
sample data set (specialties, two doctors, two patients, two rooms, two
treatments, two medications and one appointment with a line, a
prescription, an invoice and a payment).

The sample invoice total is the sum of its appointment lines (10.00); the
sample payment of 20.00 covers it, so the invoice is seeded as paid.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001_clinic_schema"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

gender = sa.Enum("male", "female", "other", name="gender")
appointment_status = sa.Enum(
    "scheduled", "checked_in", "in_progress", "completed", "cancelled", "no_show", name="appointment_status"
)
payment_method = sa.Enum("cash", "card", "insurance", "other", name="payment_method")


def _fk(column: str, target: str, ondelete: str, **kwargs) -> sa.Column:
    return sa.Column(
        column,
        sa.Integer(),
        sa.ForeignKey(target, ondelete=ondelete, onupdate="CASCADE"),
        **kwargs,
    )


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())


def upgrade() -> None:
    """Create clinic tables and seed sample rows."""
    _create_tables()
    _seed_sample_data()


def _create_tables() -> None:
    op.create_table(
        "specialties",
        sa.Column("specialty_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("description", sa.Text()),
    )
    op.create_table(
        "doctors",
        sa.Column("doctor_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("first_name", sa.String(60), nullable=False),
        sa.Column("last_name", sa.String(60), nullable=False),
        sa.Column("email", sa.String(150), nullable=False, unique=True),
        sa.Column("phone", sa.String(30)),
        _fk("specialty_id", "specialties.specialty_id", "SET NULL"),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        _created_at(),
    )
    op.create_table(
        "patients",
        sa.Column("patient_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("first_name", sa.String(60), nullable=False),
        sa.Column("last_name", sa.String(60), nullable=False),
        sa.Column("date_of_birth", sa.Date()),
        sa.Column("gender", gender, server_default="other"),
        sa.Column("email", sa.String(150), unique=True),
        sa.Column("phone", sa.String(30)),
        sa.Column("address", sa.Text()),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        _created_at(),
    )
    op.create_table(
        "rooms",
        sa.Column("room_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("room_number", sa.String(20), nullable=False, unique=True),
        sa.Column("floor", sa.Integer()),
        sa.Column("description", sa.String(255)),
    )
    op.create_table(
        "treatments",
        sa.Column("treatment_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("code", sa.String(30), nullable=False, unique=True),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("price", sa.Numeric(10, 2), nullable=False, server_default="0.00"),
    )
    op.create_table(
        "medications",
        sa.Column("medication_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("manufacturer", sa.String(150)),
        sa.Column("dosage_form", sa.String(100)),
        sa.Column("strength", sa.String(60)),
        sa.UniqueConstraint("name", "strength", "dosage_form", name="uniq_medication"),
    )
    op.create_table(
        "appointments",
        sa.Column("appointment_id", sa.Integer(), primary_key=True, autoincrement=True),
        _fk("patient_id", "patients.patient_id", "CASCADE", nullable=False),
        _fk("doctor_id", "doctors.doctor_id", "RESTRICT", nullable=False),
        _fk("room_id", "rooms.room_id", "SET NULL"),
        sa.Column("appointment_start", sa.DateTime(timezone=True), nullable=False),
        sa.Column("appointment_end", sa.DateTime(timezone=True)),
        sa.Column("status", appointment_status, nullable=False, server_default="scheduled"),
        sa.Column("reason", sa.String(255)),
        sa.Column("notes", sa.Text()),
        sa.Column("cancellation_reason", sa.String(255)),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        _created_at(),
    )
    op.create_index("idx_appointment_patient", "appointments", ["patient_id"])
    op.create_index("idx_appointment_doctor", "appointments", ["doctor_id"])
    op.create_index("idx_appointment_time", "appointments", ["appointment_start"])

    op.create_table(
        "appointment_treatments",
        _fk("appointment_id", "appointments.appointment_id", "CASCADE", primary_key=True),
        _fk("treatment_id", "treatments.treatment_id", "RESTRICT", primary_key=True),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("unit_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("notes", sa.String(255)),
        sa.CheckConstraint("quantity >= 1", name="ck_appointment_treatments_quantity"),
    )
    op.create_table(
        "prescriptions",
        sa.Column("prescription_id", sa.Integer(), primary_key=True, autoincrement=True),
        _fk("appointment_id", "appointments.appointment_id", "SET NULL"),
        _fk("patient_id", "patients.patient_id", "CASCADE", nullable=False),
        _fk("prescribed_by", "doctors.doctor_id", "SET NULL"),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("notes", sa.Text()),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("idx_prescription_patient", "prescriptions", ["patient_id"])

    op.create_table(
        "prescription_items",
        _fk("prescription_id", "prescriptions.prescription_id", "CASCADE", primary_key=True),
        _fk("medication_id", "medications.medication_id", "RESTRICT", primary_key=True),
        sa.Column("dosage", sa.String(100), nullable=False),
        sa.Column("frequency", sa.String(100), nullable=False),
        sa.Column("duration", sa.String(100)),
        sa.Column("notes", sa.String(255)),
    )
    op.create_table(
        "invoices",
        sa.Column("invoice_id", sa.Integer(), primary_key=True, autoincrement=True),
        _fk("appointment_id", "appointments.appointment_id", "SET NULL", unique=True),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False, server_default="0.00"),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("paid", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("notes", sa.Text()),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_table(
        "payments",
        sa.Column("payment_id", sa.Integer(), primary_key=True, autoincrement=True),
        _fk("invoice_id", "invoices.invoice_id", "CASCADE", nullable=False),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("method", payment_method, nullable=False, server_default="cash"),
        sa.Column("reference", sa.String(200)),
    )
    op.create_index("idx_payment_invoice", "payments", ["invoice_id"])


def _table(name: str, *columns: str) -> sa.Table:
    return sa.table(name, *(sa.column(c) for c in columns))


def _seed_sample_data() -> None:
    op.bulk_insert(
        _table("specialties", "name", "description"),
        [
            {"name": "General Practice", "description": "Primary care and consultations"},
            {"name": "Pediatrics", "description": "Children healthcare"},
            {"name": "Dermatology", "description": "Skin related treatments"},
        ],
    )
    op.bulk_insert(
        _table("doctors", "first_name", "last_name", "email", "phone", "specialty_id"),
        [
            {
                "first_name": "Alice",
                "last_name": "Mwangi",
                "email": "alice.mwangi@example.com",
                "phone": "+254700111222",
                "specialty_id": 1,
            },
            {
                "first_name": "John",
                "last_name": "Otieno",
                "email": "john.otieno@example.com",
                "phone": "+254700333444",
                "specialty_id": 2,
            },
        ],
    )
    op.bulk_insert(
        _table("patients", "first_name", "last_name", "date_of_birth", "gender", "email", "phone"),
        [
            {
                "first_name": "Grace",
                "last_name": "Kimani",
                "date_of_birth": date(1990, 5, 15),
                "gender": "female",
                "email": "grace.kimani@example.com",
                "phone": "+254700555666",
            },
            {
                "first_name": "Samuel",
                "last_name": "Wanyama",
                "date_of_birth": date(1985, 11, 2),
                "gender": "male",
                "email": "samuel.wanyama@example.com",
                "phone": "+254700777888",
            },
        ],
    )
    op.bulk_insert(
        _table("rooms", "room_number", "floor", "description"),
        [
            {"room_number": "101", "floor": 1, "description": "Consultation Room 1"},
            {"room_number": "102", "floor": 1, "description": "Consultation Room 2"},
        ],
    )
    op.bulk_insert(
        _table("treatments", "code", "name", "description", "price"),
        [
            {
                "code": "T100",
                "name": "Basic Consultation",
                "description": "Standard patient consultation",
                "price": Decimal("10.00"),
            },
            {
                "code": "T200",
                "name": "Skin Biopsy",
                "description": "Minor skin biopsy procedure",
                "price": Decimal("75.00"),
            },
        ],
    )
    op.bulk_insert(
        _table("medications", "name", "manufacturer", "dosage_form", "strength"),
        [
            {"name": "Amoxicillin", "manufacturer": "Pharma Ltd", "dosage_form": "Capsule", "strength": "500 mg"},
            {"name": "Ibuprofen", "manufacturer": "HealthCorp", "dosage_form": "Tablet", "strength": "200 mg"},
        ],
    )
    op.bulk_insert(
        _table(
            "appointments",
            "patient_id",
            "doctor_id",
            "room_id",
            "appointment_start",
            "appointment_end",
            "status",
            "reason",
        ),
        [
            {
                "patient_id": 1,
                "doctor_id": 1,
                "room_id": 1,
                "appointment_start": datetime(2025, 9, 30, 9, 0, tzinfo=timezone.utc),
                "appointment_end": datetime(2025, 9, 30, 9, 20, tzinfo=timezone.utc),
                "status": "scheduled",
                "reason": "Fever and cough",
            }
        ],
    )
    op.bulk_insert(
        _table("appointment_treatments", "appointment_id", "treatment_id", "quantity", "unit_price", "notes"),
        [
            {
                "appointment_id": 1,
                "treatment_id": 1,
                "quantity": 1,
                "unit_price": Decimal("10.00"),
                "notes": "Initial consult",
            }
        ],
    )
    op.bulk_insert(
        _table("prescriptions", "appointment_id", "patient_id", "prescribed_by", "notes"),
        [{"appointment_id": 1, "patient_id": 1, "prescribed_by": 1, "notes": "Prescribed antibiotics"}],
    )
    op.bulk_insert(
        _table("prescription_items", "prescription_id", "medication_id", "dosage", "frequency", "duration", "notes"),
        [
            {
                "prescription_id": 1,
                "medication_id": 1,
                "dosage": "500 mg",
                "frequency": "Three times a day",
                "duration": "5 days",
                "notes": "Take after meals",
            }
        ],
    )
    op.bulk_insert(
        _table("invoices", "appointment_id", "total_amount", "paid", "notes"),
        [{"appointment_id": 1, "total_amount": Decimal("10.00"), "paid": True, "notes": "Consultation + med"}],
    )
    op.bulk_insert(
        _table("payments", "invoice_id", "amount", "method", "reference"),
        [{"invoice_id": 1, "amount": Decimal("20.00"), "method": "cash", "reference": "receipt-0001"}],
    )


def downgrade() -> None:
    """Drop clinic tables and enum types."""
    for table in (
        "payments",
        "invoices",
        "prescription_items",
        "prescriptions",
        "appointment_treatments",
        "appointments",
        "medications",
        "treatments",
        "rooms",
        "patients",
        "doctors",
        "specialties",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum in (payment_method, appointment_status, gender):
        enum.drop(bind, checkfirst=True)
