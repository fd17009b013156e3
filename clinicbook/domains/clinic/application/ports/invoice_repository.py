"""
Invoice Repository Port
"""

from typing import Protocol, runtime_checkable

from clinicbook.domains.clinic.domain.entities import Invoice


@runtime_checkable
class IInvoiceRepository(Protocol):
    """
    Invoice repository interface.

    At most one invoice exists per appointment. Invoices are saved together
    with their payments; deleting an invoice deletes its payments.
    """

    async def find_by_id(self, invoice_id: int) -> Invoice | None:
        ...

    async def find_by_appointment(self, appointment_id: int) -> Invoice | None:
        ...

    async def list_unpaid(self) -> list[Invoice]:
        ...

    async def save(self, invoice: Invoice) -> Invoice:
        """
        Create or update an invoice and its payments.

        Raises:
            DuplicateEntityException: another invoice exists for the appointment
            ConcurrencyException: the stored version moved since it was read
        """
        ...

    async def delete(self, invoice_id: int) -> bool:
        ...
