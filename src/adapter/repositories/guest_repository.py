"""SQLAlchemy implementation of GuestRepository"""

from datetime import datetime
from typing import Optional
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.guest_repository import GuestRepository
from src.domain.guest import Guest


class SqlAlchemyGuestRepository(GuestRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, guest_id: int, for_update: bool = False) -> Optional[Guest]:
        stmt = select(Guest).where(Guest.id == guest_id)

        if for_update:
            stmt = stmt.with_for_update()

        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_page(self, offset: int, limit: int) -> list[Guest]:
        stmt = select(Guest).order_by(Guest.id).offset(offset).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def save(self, guest: Guest) -> Guest:
        guest.updated_at = datetime.utcnow()
        self.session.add(guest)
        await self.session.flush()
        return guest
