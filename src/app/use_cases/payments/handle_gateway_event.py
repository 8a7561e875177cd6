"""HandleGatewayEvent Use Case

Applies verified payment gateway webhook events to payments, payouts and
connected-account state.
"""

import logging
from datetime import datetime
from typing import Any, Optional
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.notification_service import NotificationCategory, NotificationService
from src.app.repositories.cast_repository import CastRepository
from src.app.repositories.cast_payout_repository import CastPayoutRepository
from src.app.repositories.guest_repository import GuestRepository
from src.app.repositories.payment_repository import PaymentRepository
from src.app.repositories.point_transaction_repository import PointTransactionRepository
from src.app.use_cases.payouts.finalize_payout import FinalizePayout
from src.app.use_cases.payouts.notifications import notify_cast
from src.domain.cast_payout import CastPayoutStatus
from src.domain.conversion import points_for_payment
from src.domain.payment import Payment, PaymentStatus, PaymentUserType
from src.domain.payout_policy import PayoutPolicy
from src.domain.point_transaction import PointTransaction, PointTransactionType
from .dtos import GatewayEventResultDTO
from .reversal import take_back_points

logger = logging.getLogger(__name__)


class HandleGatewayEvent:
    """
    Use Case: Gateway webhook

    Events:
    - payment_intent.succeeded: pending payment -> paid; points credited
      (buy row + balance) only when metadata.points_credited is unset
    - payment_intent.payment_failed / payment_intent.canceled: pending
      payment -> failed / canceled, credited points taken back
    - payout.paid: linked cast payout finalized
    - payout.failed / payout.canceled: linked payment and payout failed
    - account.updated: cast payouts_enabled synced
    - anything else is acknowledged and ignored

    Replays are harmless: every handler checks the current status first.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        payment_repo: PaymentRepository,
        payout_repo: CastPayoutRepository,
        guest_repo: GuestRepository,
        cast_repo: CastRepository,
        transaction_repo: PointTransactionRepository,
        finalize: FinalizePayout,
        policy: PayoutPolicy,
        notifier: Optional[NotificationService] = None,
    ):
        self.uow = uow
        self.payment_repo = payment_repo
        self.payout_repo = payout_repo
        self.guest_repo = guest_repo
        self.cast_repo = cast_repo
        self.transaction_repo = transaction_repo
        self.finalize = finalize
        self.policy = policy
        self.notifier = notifier

    async def execute(self, event: dict[str, Any]) -> Result[GatewayEventResultDTO]:
        event_type = event.get("type", "")
        data = (event.get("data") or {}).get("object") or {}

        handlers = {
            "payment_intent.succeeded": self._intent_succeeded,
            "payment_intent.payment_failed": self._intent_failed,
            "payment_intent.canceled": self._intent_failed,
            "payout.paid": self._payout_paid,
            "payout.failed": self._payout_failed,
            "payout.canceled": self._payout_failed,
            "account.updated": self._account_updated,
        }
        handler = handlers.get(event_type)
        if handler is None:
            logger.info(f"Unhandled webhook event {event_type}")
            return Return.ok(GatewayEventResultDTO(event_type=event_type, handled=False))

        try:
            result = await handler(event_type, data)
            await self.uow.commit()
        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="HANDLE_GATEWAY_EVENT_FAILED",
                    message=f"Failed to handle {event_type}",
                    reason=str(e),
                )
            )

        if result.action == "payout_paid" and result.cast_payout_id is not None:
            payout = await self._load_payout_for_notice(result.cast_payout_id)
            if payout:
                await notify_cast(
                    self.notifier, payout, NotificationCategory.PAYOUT_PAID,
                    f"Your payout of {payout.net_amount_yen} yen has arrived.",
                )
        return Return.ok(result)

    async def _intent_succeeded(self, event_type: str, data: dict) -> GatewayEventResultDTO:
        payment = await self._payment_for_intent(data)
        if not payment or payment.status != PaymentStatus.PENDING:
            return self._ignored(event_type, payment)

        payment.transition_to(PaymentStatus.PAID, webhook_confirmed_at=datetime.utcnow().isoformat())
        credited = 0
        if not payment.points_credited and payment.user_type == PaymentUserType.GUEST:
            credited = await self._credit_purchase(payment)
        await self.payment_repo.save(payment)

        logger.info(f"Payment {payment.id} confirmed by webhook, {credited} points credited")
        return GatewayEventResultDTO(
            event_type=event_type,
            handled=True,
            action="payment_paid",
            payment_id=payment.id,
            detail={"points_credited": credited},
        )

    async def _credit_purchase(self, payment: Payment) -> int:
        points = int((payment.meta or {}).get("required_points") or 0)
        if points <= 0:
            points = points_for_payment(payment.amount, self.policy.yen_per_point)
        guest = await self.guest_repo.get_by_id(payment.user_id, for_update=True)
        if not guest or points <= 0:
            return 0

        await self.transaction_repo.create(
            PointTransaction(
                guest_id=guest.id,
                transaction_type=PointTransactionType.BUY,
                amount=points,
                payment_id=payment.id,
                reservation_id=payment.reservation_id,
                description=payment.description or "Point purchase",
            )
        )
        guest.points = (guest.points or 0) + points
        await self.guest_repo.save(guest)
        payment.merge_metadata(points_credited=True, required_points=points)
        return points

    async def _intent_failed(self, event_type: str, data: dict) -> GatewayEventResultDTO:
        payment = await self._payment_for_intent(data)
        if not payment or payment.status != PaymentStatus.PENDING:
            return self._ignored(event_type, payment)

        target = PaymentStatus.CANCELED if event_type.endswith("canceled") else PaymentStatus.FAILED
        error = (data.get("last_payment_error") or {}).get("message")
        payment.transition_to(target, webhook_event=event_type, failed_at=datetime.utcnow().isoformat())
        if error:
            payment.error_message = error
        await self.payment_repo.save(payment)
        returned = await take_back_points(payment, self.guest_repo, self.payment_repo)

        logger.warning(f"Payment {payment.id} marked {target.value} by webhook, {returned} points taken back")
        return GatewayEventResultDTO(
            event_type=event_type,
            handled=True,
            action=f"payment_{target.value}",
            payment_id=payment.id,
            detail={"points_returned": returned},
        )

    async def _payout_paid(self, event_type: str, data: dict) -> GatewayEventResultDTO:
        payment = await self._payment_for_payout(data)
        if not payment or payment.cast_payout_id is None:
            return self._ignored(event_type, payment)

        payout = await self.payout_repo.get_by_id(payment.cast_payout_id, for_update=True)
        if not payout or not payout.can_transition_to(CastPayoutStatus.PAID):
            return self._ignored(event_type, payment)

        payment.merge_metadata(stripe_payout_status=data.get("status"), last_payout_event=event_type)
        await self.payment_repo.save(payment)
        await self.finalize.apply(payout, note="Confirmed by payout.paid")

        return GatewayEventResultDTO(
            event_type=event_type,
            handled=True,
            action="payout_paid",
            payment_id=payment.id,
            cast_payout_id=payout.id,
        )

    async def _payout_failed(self, event_type: str, data: dict) -> GatewayEventResultDTO:
        payment = await self._payment_for_payout(data)
        if not payment:
            return self._ignored(event_type, payment)

        reason = data.get("failure_message") or data.get("failure_code") or event_type
        if payment.status == PaymentStatus.PENDING:
            payment.transition_to(
                PaymentStatus.FAILED,
                stripe_payout_status=data.get("status"),
                last_payout_event=event_type,
            )
            payment.error_message = reason
            await self.payment_repo.save(payment)

        payout_id = None
        if payment.cast_payout_id is not None:
            payout = await self.payout_repo.get_by_id(payment.cast_payout_id, for_update=True)
            if payout and payout.can_transition_to(CastPayoutStatus.FAILED):
                payout.transition_to(
                    CastPayoutStatus.FAILED,
                    stripe_error=reason,
                    error_code="GATEWAY_ERROR",
                    failed_at=datetime.utcnow().isoformat(),
                )
                await self.payout_repo.save(payout)
                payout_id = payout.id

        logger.warning(f"Bank payout {data.get('id')} failed: {reason}")
        return GatewayEventResultDTO(
            event_type=event_type,
            handled=True,
            action="payout_failed",
            payment_id=payment.id,
            cast_payout_id=payout_id,
        )

    async def _account_updated(self, event_type: str, data: dict) -> GatewayEventResultDTO:
        account_id = data.get("id")
        cast = await self.cast_repo.get_by_connect_account_id(account_id) if account_id else None
        if not cast:
            logger.warning(f"Connected account {account_id} updated but no cast found")
            return GatewayEventResultDTO(event_type=event_type, handled=False)

        cast.payouts_enabled = bool(data.get("payouts_enabled", False))
        await self.cast_repo.save(cast)
        logger.info(f"Cast {cast.id} payouts_enabled={cast.payouts_enabled} synced from webhook")
        return GatewayEventResultDTO(
            event_type=event_type,
            handled=True,
            action="account_synced",
            detail={"cast_id": cast.id, "payouts_enabled": cast.payouts_enabled},
        )

    async def _payment_for_intent(self, data: dict) -> Optional[Payment]:
        intent_id = data.get("id")
        return await self.payment_repo.get_by_payment_intent_id(intent_id, for_update=True) if intent_id else None

    async def _payment_for_payout(self, data: dict) -> Optional[Payment]:
        payout_id = data.get("id")
        payment = await self.payment_repo.get_by_stripe_payout_id(payout_id, for_update=True) if payout_id else None
        if not payment:
            logger.warning(f"Payout event for {payout_id} without a matching payment")
        return payment

    async def _load_payout_for_notice(self, payout_id: int):
        try:
            return await self.payout_repo.get_by_id(payout_id)
        except Exception as e:
            logger.error(f"Failed to reload payout {payout_id} for notification: {e}")
            return None

    @staticmethod
    def _ignored(event_type: str, payment: Optional[Payment]) -> GatewayEventResultDTO:
        return GatewayEventResultDTO(
            event_type=event_type,
            handled=False,
            payment_id=payment.id if payment else None,
        )
