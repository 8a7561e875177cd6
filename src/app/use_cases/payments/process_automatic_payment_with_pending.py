"""ProcessAutomaticPaymentWithPending Use Case

Deferred-capture variant used when a reservation is created without
enough points: one pending ledger row, captured after the delay.
"""

from datetime import datetime, timedelta
from src.app.services.notification_service import NotificationCategory, notify_safely
from src.domain.guest import Guest
from src.domain.payment import Payment
from src.domain.point_transaction import PointTransaction, PointTransactionType
from .automatic_payment import AutomaticPaymentFlow
from .dtos import AutomaticPaymentCommandDTO, AutomaticPaymentResultDTO
from .labels import CAPTURE_SCHEDULED


class ProcessAutomaticPaymentWithPending(AutomaticPaymentFlow):
    """
    Use Case: Automatic payment with a pending ledger row

    On authorization:
    1. expires_at = now + capture_delay_days + 1 hour
    2. guest.points += shortfall, metadata.points_credited = True
    3. One +N pending row tied to the payment
    4. Guest notified of the scheduled charge
    """

    deduction_type = "reservation_shortfall"

    async def credit(
        self,
        guest: Guest,
        payment: Payment,
        command: AutomaticPaymentCommandDTO,
        now: datetime,
    ) -> datetime:
        capture_at = now + self.capture_delay() + timedelta(hours=1)
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
                transaction_type=PointTransactionType.PENDING,
                amount=points,
                reservation_id=command.reservation_id,
                payment_id=payment.id,
                description=f"{command.description} {CAPTURE_SCHEDULED}",
            )
        )
        return capture_at

    async def after_success(self, result: AutomaticPaymentResultDTO) -> None:
        await notify_safely(
            self.notifier, result.guest_id, "guest",
            NotificationCategory.PAYMENT_SCHEDULED,
            f"{result.amount_yen} yen for {result.required_points} points will be charged "
            f"on {result.scheduled_capture_at:%Y-%m-%d %H:%M} UTC. "
            f"Current balance: {result.new_balance} points.",
            {"payment_id": result.payment_id, "amount_yen": result.amount_yen},
        )
