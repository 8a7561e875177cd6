"""ApproveInstantPayout Use Case"""

import logging
from datetime import datetime
from typing import Optional
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.payment_gateway import PaymentGateway
from src.app.services.notification_service import NotificationCategory, NotificationService
from src.app.repositories.cast_repository import CastRepository
from src.app.repositories.cast_payout_repository import CastPayoutRepository
from src.domain.cast_payout import CastPayoutStatus
from .dtos import CastPayoutDTO, to_payout_dto
from .notifications import notify_cast
from .payout_dispatcher import CONNECT_ACCOUNT_MISSING_REASON, PayoutDispatcher

logger = logging.getLogger(__name__)


class ApproveInstantPayout:
    """
    Use Case: Approve an instant payout request

    Only from pending_approval. Refused while the platform balance is known
    to be short of the net amount; an unknown balance does not block.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        payout_repo: CastPayoutRepository,
        cast_repo: CastRepository,
        gateway: PaymentGateway,
        dispatcher: PayoutDispatcher,
        notifier: Optional[NotificationService] = None,
    ):
        self.uow = uow
        self.payout_repo = payout_repo
        self.cast_repo = cast_repo
        self.gateway = gateway
        self.dispatcher = dispatcher
        self.notifier = notifier

    async def execute(self, payout_id: int) -> Result[CastPayoutDTO]:
        try:
            payout = await self.payout_repo.get_by_id(payout_id, for_update=True)
            if not payout:
                return Return.err(Error(code="PAYOUT_NOT_FOUND", message=f"Payout {payout_id} not found"))

            # Rollback expires loaded rows, so errors are built before it
            if payout.status != CastPayoutStatus.PENDING_APPROVAL:
                error = Error(
                    code="INVALID_PAYOUT_STATE",
                    message=f"Payout {payout_id} is {payout.status.value}, not pending_approval",
                )
                await self.uow.rollback()
                return Return.err(error)

            cast = await self.cast_repo.get_by_id(payout.cast_id, for_update=True)
            if not cast:
                error = Error(code="CAST_NOT_FOUND", message=f"Cast {payout.cast_id} not found")
                await self.uow.rollback()
                return Return.err(error)

            if not cast.can_receive_payouts:
                await self.uow.rollback()
                return Return.err(Error(code="CONNECT_ACCOUNT_MISSING", message=CONNECT_ACCOUNT_MISSING_REASON))

            try:
                balance = await self.gateway.get_platform_balance()
                available = balance.available_for("jpy")
            except Exception as e:
                logger.warning(f"Failed to check platform balance before approving payout {payout_id}: {e}")
                available = None

            if available is not None and available < payout.net_amount_yen:
                error = Error(
                    code="INSUFFICIENT_PLATFORM_BALANCE",
                    message="The platform account does not have enough balance for this payout",
                    reason=f"required={payout.net_amount_yen}, available={available}",
                )
                await self.uow.rollback()
                return Return.err(error)

            payout.transition_to(CastPayoutStatus.PROCESSING, approved_at=datetime.utcnow().isoformat())
            outcome = await self.dispatcher.dispatch(cast, payout, instant=True)
            if outcome.error:
                payout.merge_metadata(approval_failure_reason=outcome.error.message)
                await self.payout_repo.save(payout)
            await self.uow.commit()

            if outcome.error:
                await notify_cast(
                    self.notifier, payout, NotificationCategory.PAYOUT_FAILED,
                    f"Your instant payout of {payout.gross_amount_yen} yen could not be processed.",
                )
                return Return.err(outcome.error)

            logger.info(f"Instant payout {payout.id} approved and dispatched")
            await notify_cast(
                self.notifier, payout, NotificationCategory.PAYOUT_PROCESSING,
                f"Your instant payout of {payout.net_amount_yen} yen was approved and is on its way.",
            )
            return Return.ok(to_payout_dto(payout))

        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="APPROVE_INSTANT_PAYOUT_FAILED",
                    message="Failed to approve instant payout",
                    reason=str(e),
                )
            )
