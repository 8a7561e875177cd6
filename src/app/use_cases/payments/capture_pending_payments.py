"""CapturePendingPayments Use Case

Periodic sweep that captures delayed-capture automatic payments once their
capture time has passed.
"""

import logging
from datetime import datetime
from typing import Optional
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.payment_gateway import PaymentGateway
from src.app.services.notification_service import (
    NotificationCategory,
    NotificationService,
    notify_safely,
)
from src.app.repositories.guest_repository import GuestRepository
from src.app.repositories.payment_repository import PaymentRepository
from src.app.repositories.point_transaction_repository import PointTransactionRepository
from src.app.repositories.reservation_repository import ReservationRepository
from src.domain.payment import Payment, PaymentStatus
from .dtos import CaptureSweepResultDTO
from .labels import PAYMENT_COMPLETED, PAYMENT_FAILED_RETURNED, relabel_payment_rows
from .reversal import take_back_points

logger = logging.getLogger(__name__)


class CapturePendingPayments:
    """
    Use Case: Capture due automatic payments

    Business Rules:
    1. Candidates: pending, automatic, with an intent id, expires_at <= now
    2. Each payment runs in its own unit of work and is re-read with
       SELECT FOR UPDATE; anything no longer pending is skipped
    3. Capture success: paid, metadata.captured_at, rows relabelled
       "payment completed", guest notified
    4. Capture declined: failed, metadata.capture_error, credited points
       taken back from the guest (floored at 0), rows relabelled
       "payment failed - points returned", guest and cast notified
    5. Gateway exception: rolled back and left pending for the next sweep
    """

    def __init__(
        self,
        uow: UnitOfWork,
        payment_repo: PaymentRepository,
        transaction_repo: PointTransactionRepository,
        guest_repo: GuestRepository,
        reservation_repo: ReservationRepository,
        gateway: PaymentGateway,
        notifier: Optional[NotificationService] = None,
    ):
        self.uow = uow
        self.payment_repo = payment_repo
        self.transaction_repo = transaction_repo
        self.guest_repo = guest_repo
        self.reservation_repo = reservation_repo
        self.gateway = gateway
        self.notifier = notifier

    async def execute(self, now: Optional[datetime] = None) -> Result[CaptureSweepResultDTO]:
        now = now or datetime.utcnow()
        try:
            candidates = await self.payment_repo.list_capturable(now)
        except Exception as e:
            return Return.err(
                Error(
                    code="CAPTURE_PENDING_PAYMENTS_FAILED",
                    message="Failed to load capturable payments",
                    reason=str(e),
                )
            )

        payment_ids = [payment.id for payment in candidates]
        logger.info(f"Found {len(payment_ids)} payments due for capture")

        processed = failed = skipped = 0
        for payment_id in payment_ids:
            try:
                outcome = await self._capture_one(payment_id)
            except Exception as e:
                await self.uow.rollback()
                failed += 1
                logger.error(f"Capture of payment {payment_id} errored, left pending: {e}")
                continue

            if outcome == "captured":
                processed += 1
            elif outcome == "failed":
                failed += 1
            else:
                skipped += 1

        logger.info(
            f"Capture sweep complete: {processed} captured, {failed} failed, "
            f"{skipped} skipped of {len(payment_ids)}"
        )
        return Return.ok(
            CaptureSweepResultDTO(
                processed=processed,
                failed=failed,
                skipped=skipped,
                total=len(payment_ids),
            )
        )

    async def _capture_one(self, payment_id: int) -> str:
        payment = await self.payment_repo.get_by_id(payment_id, for_update=True)
        if not payment or payment.status != PaymentStatus.PENDING:
            await self.uow.rollback()
            logger.info(f"Payment {payment_id} no longer pending, skipping")
            return "skipped"

        capture = await self.gateway.capture_charge(payment.stripe_payment_intent_id)
        now = datetime.utcnow()

        if capture.success:
            payment.transition_to(PaymentStatus.PAID, captured_at=now.isoformat())
            await self.payment_repo.save(payment)
            await relabel_payment_rows(self.transaction_repo, payment.id, PAYMENT_COMPLETED)
            await self.uow.commit()

            logger.info(f"Captured payment {payment.id} ({payment.amount} yen)")
            await notify_safely(
                self.notifier, payment.user_id, "guest",
                NotificationCategory.PAYMENT_CAPTURED,
                f"Your payment of {payment.amount} yen has been completed.",
                {"payment_id": payment.id, "amount_yen": payment.amount},
            )
            return "captured"

        error_message = capture.error_message or "capture failed"
        payment.transition_to(
            PaymentStatus.FAILED,
            capture_error=error_message,
            capture_failed_at=now.isoformat(),
        )
        payment.error_message = error_message
        await self.payment_repo.save(payment)

        returned = await take_back_points(payment, self.guest_repo, self.payment_repo)
        await relabel_payment_rows(self.transaction_repo, payment.id, PAYMENT_FAILED_RETURNED)
        await self.uow.commit()

        logger.warning(
            f"Capture declined for payment {payment.id}: {error_message}; "
            f"{returned} points taken back from guest {payment.user_id}"
        )
        await self._notify_capture_failure(payment, returned)
        return "failed"

    async def _notify_capture_failure(self, payment: Payment, returned: int) -> None:
        context = {"payment_id": payment.id, "amount_yen": payment.amount, "points_returned": returned}
        await notify_safely(
            self.notifier, payment.user_id, "guest",
            NotificationCategory.PAYMENT_CAPTURE_FAILED,
            f"Your payment of {payment.amount} yen could not be completed; "
            f"{returned} points were returned.",
            context,
        )
        if payment.reservation_id is None:
            return
        try:
            reservation = await self.reservation_repo.get_by_id(payment.reservation_id)
        except Exception as e:
            logger.error(f"Failed to load reservation {payment.reservation_id} for notification: {e}")
            return
        if reservation and reservation.cast_id:
            await notify_safely(
                self.notifier, reservation.cast_id, "cast",
                NotificationCategory.RESERVATION_PAYMENT_FAILED,
                f"The guest's payment for reservation {payment.reservation_id} could not be completed.",
                context,
            )
