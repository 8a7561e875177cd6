"""SQLAlchemy implementation of PaymentRepository"""

from datetime import datetime
from typing import Optional
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.payment_repository import PaymentRepository
from src.domain.payment import Payment, PaymentStatus


class SqlAlchemyPaymentRepository(PaymentRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, payment: Payment) -> Payment:
        self.session.add(payment)
        await self.session.flush()
        await self.session.refresh(payment)
        return payment

    async def _first(self, stmt, for_update: bool) -> Optional[Payment]:
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_by_id(self, payment_id: int, for_update: bool = False) -> Optional[Payment]:
        """
        Retrieve payment by ID with optional row-level locking

        Args:
            payment_id: Payment ID
            for_update: If True, locks the row with SELECT FOR UPDATE

        Returns:
            Payment if found, None otherwise
        """
        stmt = select(Payment).where(Payment.id == payment_id)
        return await self._first(stmt, for_update)

    async def get_by_payment_intent_id(self, intent_id: str, for_update: bool = False) -> Optional[Payment]:
        stmt = select(Payment).where(Payment.stripe_payment_intent_id == intent_id)
        return await self._first(stmt, for_update)

    async def get_by_stripe_payout_id(self, payout_id: str, for_update: bool = False) -> Optional[Payment]:
        stmt = select(Payment).where(Payment.stripe_payout_id == payout_id)
        return await self._first(stmt, for_update)

    async def get_by_cast_payout_id(self, cast_payout_id: int, for_update: bool = False) -> Optional[Payment]:
        stmt = (
            select(Payment)
            .where(Payment.cast_payout_id == cast_payout_id)
            .order_by(Payment.id.desc())
        )
        return await self._first(stmt, for_update)

    async def list_capturable(self, now: datetime, limit: int = 500) -> list[Payment]:
        stmt = (
            select(Payment)
            .where(Payment.status == PaymentStatus.PENDING)
            .where(Payment.is_automatic.is_(True))
            .where(Payment.stripe_payment_intent_id.is_not(None))
            .where(Payment.expires_at.is_not(None))
            .where(Payment.expires_at <= now)
            .order_by(Payment.expires_at, Payment.id)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def save(self, payment: Payment) -> Payment:
        payment.updated_at = datetime.utcnow()
        self.session.add(payment)
        await self.session.flush()
        return payment
