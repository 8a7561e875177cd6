"""ProcessAutomaticPayment Use Case

Covers a guest's point shortfall during exceeded time by charging a card.
"""

import logging
from datetime import datetime
from typing import Optional
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.payment_gateway import PaymentGateway
from src.app.services.notification_service import NotificationService
from src.app.repositories.guest_repository import GuestRepository
from src.app.repositories.payment_repository import PaymentRepository
from src.app.repositories.point_transaction_repository import PointTransactionRepository
from src.app.repositories.reservation_repository import ReservationRepository
from src.app.use_cases.grades.recalculate_guest_grade import RecalculateGuestGrade
from src.domain.guest import Guest
from src.domain.payment import Payment
from src.domain.payout_policy import PayoutPolicy
from src.domain.point_transaction import PointTransaction, PointTransactionType
from .automatic_payment import AutomaticPaymentFlow
from .dtos import AutomaticPaymentCommandDTO
from .labels import CAPTURE_SCHEDULED

logger = logging.getLogger(__name__)


class ProcessAutomaticPayment(AutomaticPaymentFlow):
    """
    Use Case: Automatic payment for an exceeded-time shortfall

    On authorization:
    1. Payment stays pending with the intent id; capture due after
       capture_delay_days (expires_at and metadata.scheduled_capture_at)
    2. guest.points += shortfall, metadata.points_credited = True
    3. Ledger rows: +N buy and -N exceeded_pending, both tied to the payment
    4. Guest grade recomputed; a failure there is logged, not raised
    """

    def __init__(
        self,
        uow: UnitOfWork,
        guest_repo: GuestRepository,
        payment_repo: PaymentRepository,
        transaction_repo: PointTransactionRepository,
        reservation_repo: ReservationRepository,
        gateway: PaymentGateway,
        policy: PayoutPolicy,
        notifier: Optional[NotificationService] = None,
        grade_recalculator: Optional[RecalculateGuestGrade] = None,
    ):
        super().__init__(
            uow, guest_repo, payment_repo, transaction_repo,
            reservation_repo, gateway, policy, notifier,
        )
        self.grade_recalculator = grade_recalculator or RecalculateGuestGrade(
            uow, guest_repo, transaction_repo
        )

    async def credit(
        self,
        guest: Guest,
        payment: Payment,
        command: AutomaticPaymentCommandDTO,
        now: datetime,
    ) -> datetime:
        capture_at = now + self.capture_delay()
        points = command.required_points

        payment.expires_at = capture_at
        payment.merge_metadata(
            payment_authorized=True,
            authorized_at=now.isoformat(),
            scheduled_capture_at=capture_at.isoformat(),
            capture_method="manual",
            points_credited=True,
        )

        guest.points = (guest.points or 0) + points
        await self.guest_repo.save(guest)

        await self.transaction_repo.create(
            PointTransaction(
                guest_id=guest.id,
                transaction_type=PointTransactionType.BUY,
                amount=points,
                reservation_id=command.reservation_id,
                payment_id=payment.id,
                description=f"{command.description} - reservation {command.reservation_id} {CAPTURE_SCHEDULED}",
            )
        )
        await self.transaction_repo.create(
            PointTransaction(
                guest_id=guest.id,
                cast_id=await self.reservation_cast_id(command.reservation_id),
                transaction_type=PointTransactionType.EXCEEDED_PENDING,
                amount=-points,
                reservation_id=command.reservation_id,
                payment_id=payment.id,
                description=f"Automatic deduction for exceeded time - paid via card (Payment ID: {payment.id}) {CAPTURE_SCHEDULED}",
            )
        )

        try:
            await self.grade_recalculator.apply(guest)
        except Exception as e:
            logger.warning(f"Failed to update grade after automatic payment for guest {guest.id}: {e}")

        return capture_at
