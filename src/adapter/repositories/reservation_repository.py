"""SQLAlchemy implementation of ReservationRepository"""

from typing import Optional
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.reservation_repository import ReservationRepository
from src.domain.reservation import Reservation


class SqlAlchemyReservationRepository(ReservationRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, reservation_id: int) -> Optional[Reservation]:
        stmt = select(Reservation).where(Reservation.id == reservation_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
