"""TransferExceededPending Use Case

Moves settled overtime charges from guests to the reservation's cast once
the hold period has passed.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.cast_repository import CastRepository
from src.app.repositories.payment_repository import PaymentRepository
from src.app.repositories.point_transaction_repository import PointTransactionRepository
from src.domain.payment import PaymentStatus
from src.domain.payout_policy import PayoutPolicy
from src.domain.point_transaction import PointTransaction, PointTransactionType
from .dtos import ExceededPendingTransferResultDTO

logger = logging.getLogger(__name__)

AUTO_TRANSFERRED = "(auto-transferred to cast)"
NOT_TRANSFERRED = "(not transferred - payment failed)"

_DONE_MARKERS = (AUTO_TRANSFERRED, NOT_TRANSFERRED)


def mark(description: Optional[str], marker: str) -> str:
    return f"{description or ''} {marker}".strip()


class TransferExceededPending:
    """
    Use Case: Credit exceeded_pending charges to casts

    Business Rules:
    1. Candidates: exceeded_pending rows older than the hold period whose
       description carries neither done marker
    2. Each row runs in its own unit of work, re-read with SELECT FOR UPDATE
    3. Rows without a guest or cast are skipped and stay candidates
    4. Linked payment still pending: skipped until it settles
    5. Linked payment failed or canceled: marked not transferred, no credit
    6. Otherwise the cast gains abs(amount) points through a transfer row
       and the source row is marked auto-transferred, so reruns never
       credit twice
    """

    def __init__(
        self,
        uow: UnitOfWork,
        transaction_repo: PointTransactionRepository,
        cast_repo: CastRepository,
        payment_repo: PaymentRepository,
        policy: PayoutPolicy,
    ):
        self.uow = uow
        self.transaction_repo = transaction_repo
        self.cast_repo = cast_repo
        self.payment_repo = payment_repo
        self.policy = policy

    async def execute(self, now: Optional[datetime] = None) -> Result[ExceededPendingTransferResultDTO]:
        now = now or datetime.utcnow()
        cutoff = now - timedelta(days=self.policy.exceeded_pending_transfer_days)

        try:
            candidates = await self.transaction_repo.list_exceeded_pending_due(cutoff, _DONE_MARKERS)
        except Exception as e:
            return Return.err(
                Error(
                    code="EXCEEDED_PENDING_TRANSFER_FAILED",
                    message="Failed to load exceeded_pending rows",
                    reason=str(e),
                )
            )

        transaction_ids = [row.id for row in candidates]
        logger.info(
            f"Found {len(transaction_ids)} exceeded_pending rows created on or before "
            f"{cutoff.isoformat()}"
        )

        processed = not_transferred = skipped = failed = transferred_points = 0
        for transaction_id in transaction_ids:
            try:
                outcome, points = await self._transfer_one(transaction_id)
            except Exception as e:
                await self.uow.rollback()
                failed += 1
                logger.error(f"Failed to transfer exceeded_pending row {transaction_id}: {e}")
                continue

            if outcome == "transferred":
                processed += 1
                transferred_points += points
            elif outcome == "not_transferred":
                not_transferred += 1
            else:
                skipped += 1

        logger.info(
            f"Exceeded pending transfer complete: {processed} transferred ({transferred_points} points), "
            f"{not_transferred} not transferred, {skipped} skipped, {failed} failed"
        )
        return Return.ok(
            ExceededPendingTransferResultDTO(
                processed=processed,
                not_transferred=not_transferred,
                skipped=skipped,
                failed=failed,
                total=len(transaction_ids),
                transferred_points=transferred_points,
            )
        )

    async def _transfer_one(self, transaction_id: int) -> tuple[str, int]:
        row = await self.transaction_repo.get_by_id(transaction_id, for_update=True)
        if not row or any(marker in (row.description or "") for marker in _DONE_MARKERS):
            await self.uow.rollback()
            return "skipped", 0

        if not row.cast_id or not row.guest_id:
            logger.warning(f"Exceeded pending row {transaction_id} has no cast or guest, skipping")
            await self.uow.rollback()
            return "skipped", 0

        if row.payment_id is not None:
            payment = await self.payment_repo.get_by_id(row.payment_id)
            status = payment.status if payment else None
            if status == PaymentStatus.PENDING:
                await self.uow.rollback()
                return "skipped", 0
            if status in (PaymentStatus.FAILED, PaymentStatus.CANCELED):
                row.description = mark(row.description, NOT_TRANSFERRED)
                await self.transaction_repo.save(row)
                await self.uow.commit()
                logger.info(
                    f"Exceeded pending row {transaction_id} not transferred, "
                    f"payment {row.payment_id} is {status.value}"
                )
                return "not_transferred", 0

        cast = await self.cast_repo.get_by_id(row.cast_id, for_update=True)
        if not cast:
            logger.error(f"Cast {row.cast_id} for exceeded_pending row {transaction_id} not found")
            await self.uow.rollback()
            return "skipped", 0

        points = abs(row.amount)
        cast.points = (cast.points or 0) + points
        await self.cast_repo.save(cast)

        await self.transaction_repo.create(
            PointTransaction(
                guest_id=row.guest_id,
                cast_id=row.cast_id,
                transaction_type=PointTransactionType.TRANSFER,
                amount=points,
                reservation_id=row.reservation_id,
                description=f"Auto-transfer exceeded pending amount - {row.id}",
            )
        )

        row.description = mark(row.description, AUTO_TRANSFERRED)
        await self.transaction_repo.save(row)
        await self.uow.commit()

        logger.info(
            f"Transferred {points} exceeded pending points from row {transaction_id} "
            f"to cast {row.cast_id}"
        )
        return "transferred", points
