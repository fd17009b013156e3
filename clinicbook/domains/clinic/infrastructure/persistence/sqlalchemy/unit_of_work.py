"""
SQLAlchemy unit of work.

One AsyncSession per transaction; the repositories handed out are bound
to that session. Commit on normal exit, rollback otherwise.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clinicbook.domains.clinic.application.ports import ClinicRepositories

from .errors import translate_errors

logger = logging.getLogger(__name__)

RepositoriesFactory = Callable[[AsyncSession], ClinicRepositories]


class SQLAlchemyUnitOfWork:
    """
    Unit of work over an async session factory.

    Example:
        ```python
        uow = SQLAlchemyUnitOfWork(create_session_factory(engine), build_sqlalchemy_repositories)
        async with uow.transaction() as repos:
            await repos.patients.save(patient)
        ```
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        repositories_factory: RepositoriesFactory,
    ):
        self._session_factory = session_factory
        self._repositories_factory = repositories_factory

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[ClinicRepositories]:
        async with self._session_factory() as session:
            try:
                yield self._repositories_factory(session)
                with translate_errors("commit"):
                    await session.commit()
            except BaseException:
                await session.rollback()
                logger.debug("Database transaction rolled back")
                raise
