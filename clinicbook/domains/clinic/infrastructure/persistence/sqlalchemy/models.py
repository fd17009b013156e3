"""
Clinic ORM models.

Foreign keys carry the referential actions of the clinic schema; the
repositories additionally perform the same steps explicitly so the
in-memory and SQL adapters behave alike.
"""

from datetime import UTC, datetime
from typing import List

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, relationship

from clinicbook.database.base import Base, TimestampMixin


def _utcnow() -> datetime:
    return datetime.now(UTC)


GENDER_VALUES = ("male", "female", "other")
APPOINTMENT_STATUS_VALUES = ("scheduled", "checked_in", "in_progress", "completed", "cancelled", "no_show")
PAYMENT_METHOD_VALUES = ("cash", "card", "insurance", "other")


class SpecialtyModel(Base):
    """Medical specialties"""

    __tablename__ = "specialties"

    id = Column("specialty_id", Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text)

    def __repr__(self):
        return f"<Specialty(name='{self.name}')>"


class DoctorModel(Base, TimestampMixin):
    """Doctors"""

    __tablename__ = "doctors"

    id = Column("doctor_id", Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(60), nullable=False)
    last_name = Column(String(60), nullable=False)
    email = Column(String(150), nullable=False, unique=True)
    phone = Column(String(30))
    specialty_id = Column(
        Integer,
        ForeignKey("specialties.specialty_id", ondelete="SET NULL", onupdate="CASCADE"),
    )
    active = Column(Boolean, nullable=False, default=True)
    version = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<Doctor(email='{self.email}', active={self.active})>"


class PatientModel(Base, TimestampMixin):
    """Patients"""

    __tablename__ = "patients"

    id = Column("patient_id", Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(60), nullable=False)
    last_name = Column(String(60), nullable=False)
    date_of_birth = Column(Date)
    gender = Column(Enum(*GENDER_VALUES, name="gender"), default="other")
    email = Column(String(150), unique=True)
    phone = Column(String(30))
    address = Column(Text)
    version = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<Patient(name='{self.first_name} {self.last_name}')>"


class RoomModel(Base):
    """Consultation rooms"""

    __tablename__ = "rooms"

    id = Column("room_id", Integer, primary_key=True, autoincrement=True)
    room_number = Column(String(20), nullable=False, unique=True)
    floor = Column(Integer)
    description = Column(String(255))


class TreatmentModel(Base):
    """Treatment catalog"""

    __tablename__ = "treatments"

    id = Column("treatment_id", Integer, primary_key=True, autoincrement=True)
    code = Column(String(30), nullable=False, unique=True)
    name = Column(String(120), nullable=False)
    description = Column(Text)
    price = Column(Numeric(10, 2), nullable=False, default=0)


class MedicationModel(Base):
    """Medication catalog"""

    __tablename__ = "medications"

    id = Column("medication_id", Integer, primary_key=True, autoincrement=True)
    name = Column(String(150), nullable=False)
    manufacturer = Column(String(150))
    dosage_form = Column(String(100))
    strength = Column(String(60))

    __table_args__ = (UniqueConstraint("name", "strength", "dosage_form", name="uniq_medication"),)


class AppointmentModel(Base, TimestampMixin):
    """Appointments"""

    __tablename__ = "appointments"

    id = Column("appointment_id", Integer, primary_key=True, autoincrement=True)
    patient_id = Column(
        Integer,
        ForeignKey("patients.patient_id", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=False,
    )
    doctor_id = Column(
        Integer,
        ForeignKey("doctors.doctor_id", ondelete="RESTRICT", onupdate="CASCADE"),
        nullable=False,
    )
    room_id = Column(Integer, ForeignKey("rooms.room_id", ondelete="SET NULL", onupdate="CASCADE"))
    appointment_start = Column(DateTime(timezone=True), nullable=False)
    appointment_end = Column(DateTime(timezone=True))
    status = Column(
        Enum(*APPOINTMENT_STATUS_VALUES, name="appointment_status"),
        nullable=False,
        default="scheduled",
    )
    reason = Column(String(255))
    notes = Column(Text)
    cancellation_reason = Column(String(255))
    version = Column(Integer, nullable=False, default=0)

    # Relationships
    treatments: Mapped[List["AppointmentTreatmentModel"]] = relationship(
        "AppointmentTreatmentModel",
        back_populates="appointment",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_appointment_patient", patient_id),
        Index("idx_appointment_doctor", doctor_id),
        Index("idx_appointment_time", appointment_start),
    )

    def __repr__(self):
        return f"<Appointment(id={self.id}, doctor_id={self.doctor_id}, status='{self.status}')>"


class AppointmentTreatmentModel(Base):
    """Treatment lines of an appointment"""

    __tablename__ = "appointment_treatments"

    appointment_id = Column(
        Integer,
        ForeignKey("appointments.appointment_id", ondelete="CASCADE", onupdate="CASCADE"),
        primary_key=True,
    )
    treatment_id = Column(
        Integer,
        ForeignKey("treatments.treatment_id", ondelete="RESTRICT", onupdate="CASCADE"),
        primary_key=True,
    )
    quantity = Column(Integer, nullable=False, default=1)
    unit_price = Column(Numeric(10, 2), nullable=False)
    notes = Column(String(255))

    appointment: Mapped["AppointmentModel"] = relationship("AppointmentModel", back_populates="treatments")

    __table_args__ = (CheckConstraint("quantity >= 1", name="ck_appointment_treatments_quantity"),)


class PrescriptionModel(Base):
    """Prescriptions"""

    __tablename__ = "prescriptions"

    id = Column("prescription_id", Integer, primary_key=True, autoincrement=True)
    appointment_id = Column(
        Integer,
        ForeignKey("appointments.appointment_id", ondelete="SET NULL", onupdate="CASCADE"),
    )
    patient_id = Column(
        Integer,
        ForeignKey("patients.patient_id", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=False,
    )
    prescribed_by = Column(Integer, ForeignKey("doctors.doctor_id", ondelete="SET NULL", onupdate="CASCADE"))
    issued_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    notes = Column(Text)
    version = Column(Integer, nullable=False, default=0)

    items: Mapped[List["PrescriptionItemModel"]] = relationship(
        "PrescriptionItemModel",
        back_populates="prescription",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (Index("idx_prescription_patient", patient_id),)


class PrescriptionItemModel(Base):
    """Medications of a prescription"""

    __tablename__ = "prescription_items"

    prescription_id = Column(
        Integer,
        ForeignKey("prescriptions.prescription_id", ondelete="CASCADE", onupdate="CASCADE"),
        primary_key=True,
    )
    medication_id = Column(
        Integer,
        ForeignKey("medications.medication_id", ondelete="RESTRICT", onupdate="CASCADE"),
        primary_key=True,
    )
    dosage = Column(String(100), nullable=False)  # e.g. "250 mg"
    frequency = Column(String(100), nullable=False)  # e.g. "Twice a day"
    duration = Column(String(100))  # e.g. "5 days"
    notes = Column(String(255))

    prescription: Mapped["PrescriptionModel"] = relationship("PrescriptionModel", back_populates="items")


class InvoiceModel(Base):
    """Invoices, at most one per appointment"""

    __tablename__ = "invoices"

    id = Column("invoice_id", Integer, primary_key=True, autoincrement=True)
    appointment_id = Column(
        Integer,
        ForeignKey("appointments.appointment_id", ondelete="SET NULL", onupdate="CASCADE"),
        unique=True,
    )
    total_amount = Column(Numeric(12, 2), nullable=False, default=0)
    issued_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    paid = Column(Boolean, nullable=False, default=False)
    notes = Column(Text)
    version = Column(Integer, nullable=False, default=0)

    payments: Mapped[List["PaymentModel"]] = relationship(
        "PaymentModel",
        back_populates="invoice",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="PaymentModel.id",
    )

    def __repr__(self):
        return f"<Invoice(id={self.id}, total={self.total_amount}, paid={self.paid})>"


class PaymentModel(Base):
    """Payments of an invoice"""

    __tablename__ = "payments"

    id = Column("payment_id", Integer, primary_key=True, autoincrement=True)
    invoice_id = Column(
        Integer,
        ForeignKey("invoices.invoice_id", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=False,
    )
    paid_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    amount = Column(Numeric(12, 2), nullable=False)
    method = Column(Enum(*PAYMENT_METHOD_VALUES, name="payment_method"), nullable=False, default="cash")
    reference = Column(String(200))

    invoice: Mapped["InvoiceModel"] = relationship("InvoiceModel", back_populates="payments")

    __table_args__ = (Index("idx_payment_invoice", invoice_id),)
