# ============================================================================
# SCOPE: DOMAIN
# Description: Container for the clinic domain.
#              Wires the unit of work, availability index and services.
# ============================================================================
"""
Clinic Domain Container.

Single Responsibility: build the clinic services over one storage adapter
and share the availability index, event publisher, retryer and clock
between them.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from clinicbook.config.settings import Settings, get_settings
from clinicbook.core.domain import DomainEventPublisher
from clinicbook.core.infrastructure import Retryer
from clinicbook.domains.clinic.application.ports import IClock, IUnitOfWork, SystemClock
from clinicbook.domains.clinic.application.services import (
    BillingReconciler,
    BookingEngine,
    ClinicRegistry,
    OperationPolicy,
    PrescriptionManager,
)
from clinicbook.domains.clinic.domain.services import AvailabilityIndex

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)


class ClinicContainer:
    """
    Container for clinic domain dependencies.

    Example:
        ```python
        container = ClinicContainer.in_memory()
        await container.start()
        result = await container.booking.create(patient_id=1, doctor_id=1, start=start)
        ```
    """

    def __init__(
        self,
        uow: IUnitOfWork,
        settings: Settings | None = None,
        clock: IClock | None = None,
        engine: "AsyncEngine | None" = None,
    ):
        """
        Initialize container.

        Args:
            uow: Unit of work of the chosen storage adapter
            settings: Application settings (defaults to get_settings())
            clock: Time source (defaults to the UTC wall clock)
            engine: Database engine to dispose on shutdown, if any
        """
        self.settings = settings or get_settings()
        self.uow = uow
        self.clock = clock or SystemClock()
        self.publisher = DomainEventPublisher()
        self.retryer = Retryer.from_settings(self.settings)
        self.index = AvailabilityIndex(lock_timeout=self.settings.LOCK_TIMEOUT_SECONDS)
        self._engine = engine

        self._billing: BillingReconciler | None = None
        self._booking: BookingEngine | None = None
        self._prescriptions: PrescriptionManager | None = None
        self._registry: ClinicRegistry | None = None
        self._policy: OperationPolicy | None = None

        logger.info(f"ClinicContainer initialized with {type(uow).__name__}")

    # Factories

    @classmethod
    def in_memory(cls, settings: Settings | None = None, clock: IClock | None = None) -> ClinicContainer:
        """Container over the in-memory store."""
        from clinicbook.domains.clinic.infrastructure.persistence.memory import (
            InMemoryStore,
            InMemoryUnitOfWork,
        )
        from clinicbook.domains.clinic.infrastructure.repositories.memory import build_in_memory_repositories

        settings = settings or get_settings()
        store = InMemoryStore(lock_timeout=settings.LOCK_TIMEOUT_SECONDS)
        uow = InMemoryUnitOfWork(store, build_in_memory_repositories(store))
        return cls(uow, settings=settings, clock=clock)

    @classmethod
    def sqlalchemy(
        cls,
        settings: Settings | None = None,
        engine: "AsyncEngine | None" = None,
        clock: IClock | None = None,
    ) -> ClinicContainer:
        """Container over PostgreSQL through SQLAlchemy async sessions."""
        from clinicbook.database import create_async_database_engine, create_session_factory
        from clinicbook.domains.clinic.infrastructure.persistence.sqlalchemy.unit_of_work import (
            SQLAlchemyUnitOfWork,
        )
        from clinicbook.domains.clinic.infrastructure.repositories.sqlalchemy import repositories_factory

        settings = settings or get_settings()
        engine = engine or create_async_database_engine(settings)
        uow = SQLAlchemyUnitOfWork(create_session_factory(engine), repositories_factory(settings.CURRENCY))
        return cls(uow, settings=settings, clock=clock, engine=engine)

    # Services (singletons)

    @property
    def billing(self) -> BillingReconciler:
        if self._billing is None:
            self._billing = BillingReconciler(self.uow, self.settings, self.publisher, self.retryer, self.clock)
        return self._billing

    @property
    def booking(self) -> BookingEngine:
        if self._booking is None:
            self._booking = BookingEngine(
                self.uow,
                self.index,
                self.settings,
                self.publisher,
                self.retryer,
                self.clock,
                billing=self.billing,
            )
        return self._booking

    @property
    def prescriptions(self) -> PrescriptionManager:
        if self._prescriptions is None:
            self._prescriptions = PrescriptionManager(
                self.uow, self.settings, self.publisher, self.retryer, self.clock
            )
        return self._prescriptions

    @property
    def registry(self) -> ClinicRegistry:
        if self._registry is None:
            self._registry = ClinicRegistry(
                self.uow, self.index, self.settings, self.publisher, self.retryer, self.clock
            )
        return self._registry

    @property
    def policy(self) -> OperationPolicy:
        if self._policy is None:
            self._policy = OperationPolicy()
        return self._policy

    # Lifecycle

    async def start(self) -> None:
        """Rebuild the availability index from stored appointments."""
        result = await self.booking.warm_up()
        if result.success:
            report = result.value
            logger.info(f"Availability index warmed up: {report.loaded} loaded, {report.skipped} skipped")
        else:
            logger.error(f"Availability index warm-up failed: {result.error_message}")

    async def dispose(self) -> None:
        """Release the database engine, if any."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
