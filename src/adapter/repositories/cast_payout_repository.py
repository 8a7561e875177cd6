"""SQLAlchemy implementation of CastPayoutRepository

Payout rows are locked with SELECT FOR UPDATE before any status change.
"""

from datetime import date, datetime
from typing import Optional, Sequence
from sqlmodel import select, func
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.cast_payout_repository import CastPayoutRepository
from src.domain.cast_payout import CastPayout, CastPayoutStatus, CastPayoutType

DUE_STATUSES = (CastPayoutStatus.SCHEDULED, CastPayoutStatus.PENDING)


class SqlAlchemyCastPayoutRepository(CastPayoutRepository):
    """
    SQLAlchemy implementation of CastPayoutRepository

    Features:
    - Pessimistic locking via SELECT FOR UPDATE
    - Existence check per (cast, closing month, type) for idempotent closing
    - Due-date queries for the dispatcher
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, payout: CastPayout) -> CastPayout:
        self.session.add(payout)
        await self.session.flush()
        await self.session.refresh(payout)
        return payout

    async def get_by_id(self, payout_id: int, for_update: bool = False) -> Optional[CastPayout]:
        """
        Retrieve payout by ID with optional row-level locking

        Args:
            payout_id: Payout ID
            for_update: If True, locks the row with SELECT FOR UPDATE

        Returns:
            CastPayout if found, None otherwise
        """
        stmt = select(CastPayout).where(CastPayout.id == payout_id)

        if for_update:
            stmt = stmt.with_for_update()

        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def exists_for_month(
        self,
        cast_id: int,
        closing_month: str,
        payout_type: CastPayoutType = CastPayoutType.SCHEDULED,
        for_update: bool = False,
    ) -> bool:
        stmt = (
            select(CastPayout.id)
            .where(CastPayout.cast_id == cast_id)
            .where(CastPayout.closing_month == closing_month)
            .where(CastPayout.type == payout_type)
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.first() is not None

    async def list_due(self, run_date: date, limit: int = 500) -> list[CastPayout]:
        stmt = (
            select(CastPayout)
            .where(CastPayout.status.in_(DUE_STATUSES))
            .where(CastPayout.scheduled_payout_date <= run_date)
            .order_by(CastPayout.scheduled_payout_date, CastPayout.id)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_for_cast(self, cast_id: int, limit: int = 5) -> list[CastPayout]:
        stmt = (
            select(CastPayout)
            .where(CastPayout.cast_id == cast_id)
            .order_by(CastPayout.created_at.desc(), CastPayout.id.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_upcoming_scheduled(self, cast_id: int) -> Optional[CastPayout]:
        stmt = (
            select(CastPayout)
            .where(CastPayout.cast_id == cast_id)
            .where(CastPayout.type == CastPayoutType.SCHEDULED)
            .where(CastPayout.status.in_(DUE_STATUSES))
            .order_by(CastPayout.scheduled_payout_date, CastPayout.id)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def sum_points_by_status(self, cast_id: int, statuses: Sequence[CastPayoutStatus]) -> int:
        stmt = (
            select(func.coalesce(func.sum(CastPayout.total_points), 0))
            .where(CastPayout.cast_id == cast_id)
            .where(CastPayout.status.in_(list(statuses)))
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def save(self, payout: CastPayout) -> CastPayout:
        payout.updated_at = datetime.utcnow()
        self.session.add(payout)
        await self.session.flush()
        return payout
