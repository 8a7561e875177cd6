"""SQLAlchemy implementation of CastRepository"""

from datetime import datetime
from typing import Optional
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.cast_repository import CastRepository
from src.domain.cast import Cast


class SqlAlchemyCastRepository(CastRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, cast_id: int, for_update: bool = False) -> Optional[Cast]:
        stmt = select(Cast).where(Cast.id == cast_id)

        if for_update:
            stmt = stmt.with_for_update()

        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_connect_account_id(self, account_id: str) -> Optional[Cast]:
        stmt = select(Cast).where(Cast.stripe_connect_account_id == account_id).with_for_update()
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_all(self) -> list[Cast]:
        stmt = select(Cast).order_by(Cast.id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def save(self, cast: Cast) -> Cast:
        cast.updated_at = datetime.utcnow()
        self.session.add(cast)
        await self.session.flush()
        return cast
