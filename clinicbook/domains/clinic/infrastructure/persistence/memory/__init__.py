from clinicbook.domains.clinic.infrastructure.persistence.memory.store import (
    InMemoryStore,
    InMemoryUnitOfWork,
)

__all__ = ["InMemoryStore", "InMemoryUnitOfWork"]
