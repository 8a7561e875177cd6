"""FinalizePayout Use Case

Marks a payout paid, either manually by an administrator or when the
gateway reports the bank payout as paid.
"""

import logging
from datetime import datetime
from typing import Optional
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.cast_repository import CastRepository
from src.app.repositories.cast_payout_repository import CastPayoutRepository
from src.app.repositories.payment_repository import PaymentRepository
from src.domain.cast_payout import CastPayout, CastPayoutStatus
from src.domain.payment import PaymentStatus
from .dtos import CastPayoutDTO, FinalizePayoutCommandDTO, to_payout_dto

logger = logging.getLogger(__name__)

FINALIZABLE_STATUSES = (CastPayoutStatus.PROCESSING, CastPayoutStatus.FAILED)


class FinalizePayout:
    """
    Use Case: Finalize (mark paid)

    Business Rules:
    1. Only processing or failed payouts; anything else is INVALID_PAYOUT_STATE
    2. cast.points -= total_points, floored at 0
    3. Payout paid with paid_at and the optional note
    4. Linked Payment marked paid if it is still pending

    apply() works inside the caller's unit of work and does not commit.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        payout_repo: CastPayoutRepository,
        cast_repo: CastRepository,
        payment_repo: PaymentRepository,
    ):
        self.uow = uow
        self.payout_repo = payout_repo
        self.cast_repo = cast_repo
        self.payment_repo = payment_repo

    async def apply(self, payout: CastPayout, note: Optional[str] = None) -> None:
        cast = await self.cast_repo.get_by_id(payout.cast_id, for_update=True)
        if cast:
            cast.points = max(0, (cast.points or 0) - payout.total_points)
            await self.cast_repo.save(cast)

        payout.transition_to(
            CastPayoutStatus.PAID,
            paid_note=note,
            finalized_at=datetime.utcnow().isoformat(),
        )
        await self.payout_repo.save(payout)

        payment = await self.payment_repo.get_by_cast_payout_id(payout.id, for_update=True)
        if payment and payment.status == PaymentStatus.PENDING:
            payment.transition_to(PaymentStatus.PAID)
            await self.payment_repo.save(payment)

        logger.info(f"Payout {payout.id} finalized: {payout.total_points} points settled for cast {payout.cast_id}")

    async def execute(self, command: FinalizePayoutCommandDTO) -> Result[CastPayoutDTO]:
        try:
            payout = await self.payout_repo.get_by_id(command.payout_id, for_update=True)
            if not payout:
                return Return.err(Error(
                    code="PAYOUT_NOT_FOUND",
                    message=f"Payout {command.payout_id} not found",
                ))

            if payout.status not in FINALIZABLE_STATUSES:
                # Built before the rollback expires the payout
                error = Error(
                    code="INVALID_PAYOUT_STATE",
                    message=f"Payout {command.payout_id} is {payout.status.value} and cannot be marked paid",
                )
                await self.uow.rollback()
                return Return.err(error)

            await self.apply(payout, command.note)
            await self.uow.commit()
            return Return.ok(to_payout_dto(payout))

        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="FINALIZE_PAYOUT_FAILED",
                    message="Failed to finalize payout",
                    reason=str(e),
                )
            )
