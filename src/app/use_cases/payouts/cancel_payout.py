"""CancelPayout Use Case"""

import logging
from datetime import datetime
from typing import Optional
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.notification_service import NotificationCategory, NotificationService
from src.app.repositories.cast_payout_repository import CastPayoutRepository
from src.app.repositories.payment_repository import PaymentRepository
from src.app.repositories.point_transaction_repository import PointTransactionRepository
from src.domain.cast_payout import CastPayoutStatus
from src.domain.payment import PaymentStatus
from .dtos import CastPayoutDTO, to_payout_dto
from .notifications import notify_cast

logger = logging.getLogger(__name__)

CANCELLABLE_STATUSES = (CastPayoutStatus.SCHEDULED, CastPayoutStatus.PENDING)


class CancelPayout:
    """
    Use Case: Cancel a payout

    Business Rules:
    1. Only scheduled or pending payouts
    2. Every claimed ledger row is released in the same unit of work, so
       the points become unsettled again
    3. A linked pending Payment is marked canceled
    """

    def __init__(
        self,
        uow: UnitOfWork,
        payout_repo: CastPayoutRepository,
        transaction_repo: PointTransactionRepository,
        payment_repo: PaymentRepository,
        notifier: Optional[NotificationService] = None,
    ):
        self.uow = uow
        self.payout_repo = payout_repo
        self.transaction_repo = transaction_repo
        self.payment_repo = payment_repo
        self.notifier = notifier

    async def execute(self, payout_id: int, reason: Optional[str] = None) -> Result[CastPayoutDTO]:
        try:
            payout = await self.payout_repo.get_by_id(payout_id, for_update=True)
            if not payout:
                return Return.err(Error(code="PAYOUT_NOT_FOUND", message=f"Payout {payout_id} not found"))

            if payout.status not in CANCELLABLE_STATUSES:
                # Built before the rollback expires the payout
                error = Error(
                    code="INVALID_PAYOUT_STATE",
                    message=f"Payout {payout_id} is {payout.status.value} and cannot be cancelled",
                )
                await self.uow.rollback()
                return Return.err(error)

            released = await self.transaction_repo.release(payout.id)
            payout.transition_to(
                CastPayoutStatus.CANCELLED,
                cancelled_at=datetime.utcnow().isoformat(),
                cancel_reason=reason,
                released_transactions=released,
            )
            await self.payout_repo.save(payout)

            payment = await self.payment_repo.get_by_cast_payout_id(payout.id, for_update=True)
            if payment and payment.status == PaymentStatus.PENDING:
                payment.transition_to(PaymentStatus.CANCELED, canceled_with_payout=True)
                await self.payment_repo.save(payment)

            await self.uow.commit()

            logger.info(f"Payout {payout.id} cancelled, {released} ledger rows released")
            await notify_cast(
                self.notifier, payout, NotificationCategory.PAYOUT_CANCELLED,
                "Your scheduled payout was cancelled; the points are unsettled again.",
            )
            return Return.ok(to_payout_dto(payout))

        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="CANCEL_PAYOUT_FAILED",
                    message="Failed to cancel payout",
                    reason=str(e),
                )
            )
