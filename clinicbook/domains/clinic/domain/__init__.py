"""
Clinic Domain Layer

Core business logic of the clinic bounded context.

Components:
- Entities: Patient, Doctor, Specialty, Room, Treatment, Medication,
  Appointment, Invoice, Prescription
- Value Objects: AppointmentStatus, Gender, PaymentMethod, TimeInterval
- Domain Services: AvailabilityIndex (doctor and room reservations)
"""
