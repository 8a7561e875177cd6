"""SQLAlchemy unit of work

Repositories built on the same AsyncSession flush into one transaction;
the use case decides when it is committed or rolled back.
"""

import logging
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.services.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class SqlAlchemyUnitOfWork(UnitOfWork):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def __aexit__(self, exc_type, exc, tb):
        if exc_type is not None:
            logger.warning(f"Rolling back unit of work after {exc_type.__name__}: {exc}")
        await self.rollback()

    async def commit(self):
        await self.session.commit()

    async def rollback(self):
        # Row locks taken with FOR UPDATE are released here as well
        if self.session.in_transaction():
            await self.session.rollback()
