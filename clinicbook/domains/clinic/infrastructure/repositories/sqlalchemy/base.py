"""
Shared plumbing for the SQLAlchemy clinic repositories.
"""

import logging
from typing import Any, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from clinicbook.core.domain import ConcurrencyException, EntityNotFoundException
from clinicbook.domains.clinic.infrastructure.persistence.sqlalchemy.errors import translate_errors

logger = logging.getLogger(__name__)


class SQLAlchemyRepository:
    """
    Base class: id lookup, create-or-update save with optimistic version
    check, and counting helpers.

    Subclasses provide ``model``, ``_to_entity``, ``_to_model`` and
    ``_update_model``; aggregates with children list their relationship
    names in ``load_options``.
    """

    model: Any = None
    entity_name: str = "Entity"
    load_options: Sequence[Any] = ()

    def __init__(self, session: AsyncSession, currency: str = "USD"):
        """
        Initialize repository.

        Args:
            session: SQLAlchemy async session of the current transaction
            currency: Currency of the money columns
        """
        self.session = session
        self.currency = currency

    async def _get_model(self, entity_id: int | None, for_update: bool = False) -> Any | None:
        if entity_id is None:
            return None
        stmt = (
            select(self.model)
            .options(*self.load_options)
            .where(self.model.id == entity_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def _find(self, *criteria: Any, order_by: Any = None) -> list[Any]:
        stmt = select(self.model).options(*self.load_options).where(*criteria)
        stmt = stmt.order_by(order_by if order_by is not None else self.model.id)
        result = await self.session.execute(stmt)
        return [self._to_entity(m) for m in result.scalars().all()]

    async def _find_one(self, *criteria: Any) -> Any | None:
        stmt = select(self.model).options(*self.load_options).where(*criteria).limit(1)
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def _count(self, model: Any, *criteria: Any) -> int:
        result = await self.session.execute(select(func.count()).select_from(model).where(*criteria))
        return int(result.scalar_one())

    async def find_by_id(self, entity_id: int) -> Any | None:
        with translate_errors(f"find {self.entity_name}", self.entity_name):
            model = await self._get_model(entity_id)
            return self._to_entity(model) if model else None

    async def save(self, entity: Any) -> Any:
        """Insert a new entity or update an existing one (row locked)."""
        with translate_errors(f"save {self.entity_name}", self.entity_name):
            if entity.id is None:
                model = self._to_model(entity)
                self.session.add(model)
                await self.session.flush()
                entity.id = model.id
            else:
                model = await self._get_model(entity.id, for_update=True)
                if model is None:
                    raise EntityNotFoundException(self.entity_name, entity.id)
                versioned = hasattr(model, "version")
                if versioned and model.version != entity.version:
                    raise ConcurrencyException(
                        resource=f"{self.model.__tablename__}:{entity.id}",
                        message=f"{self.entity_name} {entity.id} was modified concurrently",
                    )
                self._update_model(model, entity)
                if versioned:
                    entity.increment_version()
                    model.version = entity.version
                await self.session.flush()
            self._after_flush(model, entity)
            return self._to_entity(model)

    async def delete(self, entity_id: int) -> bool:
        with translate_errors(f"delete {self.entity_name}", self.entity_name):
            model = await self._get_model(entity_id)
            if model is None:
                return False
            await self.session.delete(model)
            await self.session.flush()
            return True

    def _after_flush(self, model: Any, entity: Any) -> None:
        """Copy database generated ids back onto the entity."""

    def _to_entity(self, model: Any) -> Any:
        raise NotImplementedError

    def _to_model(self, entity: Any) -> Any:
        raise NotImplementedError

    def _update_model(self, model: Any, entity: Any) -> None:
        raise NotImplementedError
