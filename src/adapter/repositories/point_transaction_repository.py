"""SQLAlchemy implementation of PointTransactionRepository

Provides ledger persistence with pessimistic locking on the unclaimed rows
a payout is about to claim.
"""

from datetime import datetime
from typing import Optional, Sequence
from sqlalchemy import or_, update
from sqlmodel import select, func
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.point_transaction_repository import PointTransactionRepository
from src.domain.point_transaction import (
    EARNABLE_TYPES,
    PointTransaction,
    PointTransactionType,
)


class SqlAlchemyPointTransactionRepository(PointTransactionRepository):
    """
    SQLAlchemy implementation of PointTransactionRepository

    Features:
    - Append-only ledger rows
    - SELECT FOR UPDATE on unclaimed earnable rows
    - Bulk claim / release guarded on cast_payout_id
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, transaction: PointTransaction) -> PointTransaction:
        self.session.add(transaction)
        await self.session.flush()
        await self.session.refresh(transaction)
        return transaction

    async def get_by_id(
        self, transaction_id: int, for_update: bool = False
    ) -> Optional[PointTransaction]:
        stmt = select(PointTransaction).where(PointTransaction.id == transaction_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def save(self, transaction: PointTransaction) -> PointTransaction:
        self.session.add(transaction)
        await self.session.flush()
        return transaction

    async def list_by_payment(self, payment_id: int) -> list[PointTransaction]:
        stmt = (
            select(PointTransaction)
            .where(PointTransaction.payment_id == payment_id)
            .order_by(PointTransaction.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_for_actor(
        self, actor_type: str, actor_id: int, limit: int = 50, offset: int = 0
    ) -> tuple[list[PointTransaction], int]:
        """
        Transaction history for a guest or cast, newest first

        Returns:
            Tuple of (list of PointTransaction, total count)
        """
        if actor_type == "cast":
            condition = PointTransaction.cast_id == actor_id
        else:
            condition = PointTransaction.guest_id == actor_id

        count_stmt = select(func.count()).select_from(PointTransaction).where(condition)
        count_result = await self.session.execute(count_stmt)
        total = count_result.scalar()

        stmt = (
            select(PointTransaction)
            .where(condition)
            .order_by(PointTransaction.created_at.desc(), PointTransaction.id.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all()), total

    async def sum_unsettled(self, cast_id: int) -> int:
        stmt = (
            select(func.coalesce(func.sum(PointTransaction.amount), 0))
            .where(PointTransaction.cast_id == cast_id)
            .where(PointTransaction.transaction_type.in_(EARNABLE_TYPES))
            .where(PointTransaction.cast_payout_id.is_(None))
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def sum_earnable(self, cast_id: int) -> int:
        stmt = (
            select(func.coalesce(func.sum(PointTransaction.amount), 0))
            .where(PointTransaction.cast_id == cast_id)
            .where(PointTransaction.transaction_type.in_(EARNABLE_TYPES))
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def find_casts_with_unclaimed(self, start: datetime, end: datetime) -> list[int]:
        stmt = (
            select(PointTransaction.cast_id)
            .where(PointTransaction.cast_id.is_not(None))
            .where(PointTransaction.transaction_type.in_(EARNABLE_TYPES))
            .where(PointTransaction.cast_payout_id.is_(None))
            .where(PointTransaction.created_at >= start)
            .where(PointTransaction.created_at < end)
            .distinct()
            .order_by(PointTransaction.cast_id)
        )
        result = await self.session.execute(stmt)
        return [row for row in result.scalars().all()]

    async def get_unclaimed_for_cast(
        self,
        cast_id: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        for_update: bool = False,
    ) -> list[PointTransaction]:
        """
        Unclaimed earnable rows for a cast, oldest first

        Args:
            cast_id: Cast ID
            start: Inclusive created_at lower bound
            end: Exclusive created_at upper bound
            for_update: If True, locks the rows with SELECT FOR UPDATE

        Returns:
            Candidate rows ordered by (created_at, id)
        """
        stmt = (
            select(PointTransaction)
            .where(PointTransaction.cast_id == cast_id)
            .where(PointTransaction.transaction_type.in_(EARNABLE_TYPES))
            .where(PointTransaction.cast_payout_id.is_(None))
        )
        if start is not None:
            stmt = stmt.where(PointTransaction.created_at >= start)
        if end is not None:
            stmt = stmt.where(PointTransaction.created_at < end)
        stmt = stmt.order_by(PointTransaction.created_at, PointTransaction.id)

        if for_update:
            stmt = stmt.with_for_update()

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def claim(self, transaction_ids: Sequence[int], payout_id: int) -> int:
        """
        Assign rows to a payout

        Note:
            The cast_payout_id IS NULL guard makes a second claim of the same
            row a no-op; callers compare the returned count.
        """
        if not transaction_ids:
            return 0
        stmt = (
            update(PointTransaction)
            .where(PointTransaction.id.in_(list(transaction_ids)))
            .where(PointTransaction.cast_payout_id.is_(None))
            .values(cast_payout_id=payout_id)
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount or 0

    async def release(self, payout_id: int) -> int:
        stmt = (
            update(PointTransaction)
            .where(PointTransaction.cast_payout_id == payout_id)
            .values(cast_payout_id=None)
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount or 0

    async def sum_for_guest(self, guest_id: int, types: Sequence[PointTransactionType]) -> int:
        stmt = (
            select(func.coalesce(func.sum(PointTransaction.amount), 0))
            .where(PointTransaction.guest_id == guest_id)
            .where(PointTransaction.transaction_type.in_(list(types)))
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def list_exceeded_pending_due(
        self, cutoff: datetime, exclude_markers: Sequence[str]
    ) -> list[PointTransaction]:
        stmt = (
            select(PointTransaction)
            .where(PointTransaction.transaction_type == PointTransactionType.EXCEEDED_PENDING)
            .where(PointTransaction.created_at <= cutoff)
        )
        for marker in exclude_markers:
            stmt = stmt.where(
                or_(
                    PointTransaction.description.is_(None),
                    ~PointTransaction.description.contains(marker),
                )
            )
        stmt = stmt.order_by(PointTransaction.created_at, PointTransaction.id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
