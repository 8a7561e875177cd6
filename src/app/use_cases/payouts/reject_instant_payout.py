"""RejectInstantPayout Use Case"""

import logging
from datetime import datetime
from typing import Optional
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.notification_service import NotificationCategory, NotificationService
from src.app.repositories.cast_payout_repository import CastPayoutRepository
from src.app.repositories.point_transaction_repository import PointTransactionRepository
from src.domain.cast_payout import CastPayoutStatus
from .dtos import CastPayoutDTO, to_payout_dto
from .notifications import notify_cast

logger = logging.getLogger(__name__)


class RejectInstantPayout:
    """
    Use Case: Reject an instant payout request

    Only from pending_approval. Claimed rows are released in the same unit
    of work and the reason is kept in metadata.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        payout_repo: CastPayoutRepository,
        transaction_repo: PointTransactionRepository,
        notifier: Optional[NotificationService] = None,
    ):
        self.uow = uow
        self.payout_repo = payout_repo
        self.transaction_repo = transaction_repo
        self.notifier = notifier

    async def execute(self, payout_id: int, reason: Optional[str] = None) -> Result[CastPayoutDTO]:
        try:
            payout = await self.payout_repo.get_by_id(payout_id, for_update=True)
            if not payout:
                return Return.err(Error(code="PAYOUT_NOT_FOUND", message=f"Payout {payout_id} not found"))

            if payout.status != CastPayoutStatus.PENDING_APPROVAL:
                # Built before the rollback expires the payout
                error = Error(
                    code="INVALID_PAYOUT_STATE",
                    message=f"Payout {payout_id} is {payout.status.value}, not pending_approval",
                )
                await self.uow.rollback()
                return Return.err(error)

            released = await self.transaction_repo.release(payout.id)
            payout.transition_to(
                CastPayoutStatus.REJECTED,
                rejected_at=datetime.utcnow().isoformat(),
                rejection_reason=reason,
                released_transactions=released,
            )
            await self.payout_repo.save(payout)
            await self.uow.commit()

            logger.info(f"Instant payout {payout.id} rejected, {released} ledger rows released")
            message = "Your instant payout request was rejected."
            if reason:
                message = f"{message} Reason: {reason}"
            await notify_cast(self.notifier, payout, NotificationCategory.PAYOUT_REJECTED, message)
            return Return.ok(to_payout_dto(payout))

        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="REJECT_INSTANT_PAYOUT_FAILED",
                    message="Failed to reject instant payout",
                    reason=str(e),
                )
            )
