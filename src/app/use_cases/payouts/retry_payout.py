"""RetryPayout Use Case"""

import logging
from datetime import datetime
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.cast_repository import CastRepository
from src.app.repositories.cast_payout_repository import CastPayoutRepository
from src.domain.cast_payout import CastPayoutStatus, CastPayoutType
from .dtos import CastPayoutDTO, to_payout_dto
from .payout_dispatcher import CONNECT_ACCOUNT_MISSING_REASON, PayoutDispatcher

logger = logging.getLogger(__name__)


class RetryPayout:
    """
    Use Case: Retry a failed payout

    failed -> processing with retry_count += 1, then dispatched again.
    A failure re-marks the payout failed.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        payout_repo: CastPayoutRepository,
        cast_repo: CastRepository,
        dispatcher: PayoutDispatcher,
    ):
        self.uow = uow
        self.payout_repo = payout_repo
        self.cast_repo = cast_repo
        self.dispatcher = dispatcher

    async def execute(self, payout_id: int) -> Result[CastPayoutDTO]:
        try:
            payout = await self.payout_repo.get_by_id(payout_id, for_update=True)
            if not payout:
                return Return.err(Error(code="PAYOUT_NOT_FOUND", message=f"Payout {payout_id} not found"))

            # Rollback expires loaded rows, so errors are built before it
            if payout.status != CastPayoutStatus.FAILED:
                error = Error(
                    code="INVALID_PAYOUT_STATE",
                    message=f"Only failed payouts can be retried (payout {payout_id} is {payout.status.value})",
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

            payout.transition_to(
                CastPayoutStatus.PROCESSING,
                retry_count=payout.retry_count + 1,
                retried_at=datetime.utcnow().isoformat(),
            )
            outcome = await self.dispatcher.dispatch(
                cast, payout, instant=payout.type == CastPayoutType.INSTANT
            )
            await self.uow.commit()

            if outcome.error:
                logger.warning(f"Retry {payout.retry_count} of payout {payout.id} failed: {outcome.error.reason}")
                return Return.err(outcome.error)

            logger.info(f"Payout {payout.id} re-dispatched (retry {payout.retry_count})")
            return Return.ok(to_payout_dto(payout))

        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="RETRY_PAYOUT_FAILED",
                    message="Failed to retry payout",
                    reason=str(e),
                )
            )
