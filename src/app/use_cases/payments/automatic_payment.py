"""Automatic payment flow shared by the immediate and deferred variants

The guest's registered cards are tried in listed order with an
authorize-only charge. The first success credits points at once; the
actual capture happens later (see CapturePendingPayments).
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Optional
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.payment_gateway import ChargeResult, PaymentGateway
from src.app.services.notification_service import (
    NotificationCategory,
    NotificationService,
    notify_safely,
)
from src.app.repositories.guest_repository import GuestRepository
from src.app.repositories.payment_repository import PaymentRepository
from src.app.repositories.point_transaction_repository import PointTransactionRepository
from src.app.repositories.reservation_repository import ReservationRepository
from src.domain.conversion import ChargeBreakdown, charge_breakdown
from src.domain.guest import Guest
from src.domain.payment import Payment, PaymentMethod, PaymentStatus, PaymentUserType
from src.domain.payout_policy import PayoutPolicy
from .dtos import AutomaticPaymentCommandDTO, AutomaticPaymentResultDTO, AutomaticPaymentState

logger = logging.getLogger(__name__)

NO_PAYMENT_METHOD_MESSAGE = "No registered payment method found"


class AutomaticPaymentFlow(ABC):
    """
    Template for automatic payment use cases

    State per attempt:
    INITIATED -> AUTHORIZING -> AUTHORIZED | ALL_CARDS_FAILED | NO_PAYMENT_METHOD

    Subclasses decide how an authorized charge is credited (credit()).
    """

    deduction_type = "exceeded_time_shortfall"

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
    ):
        self.uow = uow
        self.guest_repo = guest_repo
        self.payment_repo = payment_repo
        self.transaction_repo = transaction_repo
        self.reservation_repo = reservation_repo
        self.gateway = gateway
        self.policy = policy
        self.notifier = notifier

    @abstractmethod
    async def credit(
        self,
        guest: Guest,
        payment: Payment,
        command: AutomaticPaymentCommandDTO,
        now: datetime,
    ) -> datetime:
        """Grant points for an authorized payment; returns the capture time"""
        pass

    async def after_success(self, result: AutomaticPaymentResultDTO) -> None:
        pass

    async def execute(self, command: AutomaticPaymentCommandDTO) -> Result[AutomaticPaymentResultDTO]:
        try:
            guest = await self.guest_repo.get_by_id(command.guest_id, for_update=True)
            if not guest:
                return Return.err(Error(
                    code="GUEST_NOT_FOUND",
                    message=f"Guest {command.guest_id} not found",
                ))

            breakdown = charge_breakdown(
                command.required_points,
                self.policy.yen_per_point,
                self.policy.consumption_tax_rate,
                self.policy.minimum_charge_yen,
            )

            logger.info(
                f"Processing automatic payment for guest {guest.id}: "
                f"{command.required_points} points -> {breakdown.amount_yen} yen "
                f"(reservation {command.reservation_id})"
            )

            if not guest.stripe_customer_id:
                await self.uow.rollback()
                return await self._fail(
                    command, breakdown, None, AutomaticPaymentState.NO_PAYMENT_METHOD,
                    [NO_PAYMENT_METHOD_MESSAGE],
                )

            payment = await self.payment_repo.create(
                Payment(
                    user_id=guest.id,
                    user_type=PaymentUserType.GUEST,
                    amount=breakdown.amount_yen,
                    status=PaymentStatus.PENDING,
                    payment_method=PaymentMethod.CARD,
                    is_automatic=True,
                    description=command.description,
                    reservation_id=command.reservation_id,
                    stripe_customer_id=guest.stripe_customer_id,
                    meta={
                        "automatic_payment": True,
                        "deduction_type": self.deduction_type,
                        "required_points": command.required_points,
                        "conversion_rate": str(breakdown.conversion_rate),
                        "base_amount_yen": breakdown.base_amount_yen,
                        "tax_amount_yen": breakdown.tax_amount_yen,
                    },
                )
            )

            charge, errors, state = await self._authorize(guest, payment, breakdown, command)

            if charge is None:
                payment.transition_to(PaymentStatus.FAILED, card_errors=errors)
                payment.error_message = "; ".join(errors)[:2000]
                await self.payment_repo.save(payment)
                # Committed, not rolled back: the declined attempt stays on record
                # with no ledger rows (DESIGN.md, open question 7)
                await self.uow.commit()
                return await self._fail(command, breakdown, payment.id, state, errors)

            now = datetime.utcnow()
            payment.stripe_payment_intent_id = charge.payment_intent_id
            capture_at = await self.credit(guest, payment, command, now)
            await self.payment_repo.save(payment)
            await self.uow.commit()

            logger.info(
                f"Automatic payment {payment.id} authorized for guest {guest.id}: "
                f"{breakdown.amount_yen} yen, {command.required_points} points credited, "
                f"capture at {capture_at.isoformat()}"
            )

            result = AutomaticPaymentResultDTO(
                success=True,
                state=AutomaticPaymentState.AUTHORIZED,
                guest_id=guest.id,
                payment_id=payment.id,
                required_points=command.required_points,
                amount_yen=breakdown.amount_yen,
                base_amount_yen=breakdown.base_amount_yen,
                tax_amount_yen=breakdown.tax_amount_yen,
                new_balance=guest.points,
                stripe_payment_intent_id=charge.payment_intent_id,
                scheduled_capture_at=capture_at,
                errors=errors,
            )
            await self.after_success(result)
            return Return.ok(result)

        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Automatic payment processing failed for guest {command.guest_id}: {e}")
            return Return.err(
                Error(
                    code="AUTOMATIC_PAYMENT_FAILED",
                    message="Payment processing failed",
                    reason=str(e),
                )
            )

    async def _authorize(
        self,
        guest: Guest,
        payment: Payment,
        breakdown: ChargeBreakdown,
        command: AutomaticPaymentCommandDTO,
    ) -> tuple[Optional[ChargeResult], list[str], str]:
        """Try each card in listed order; stop at the first authorization"""
        methods = await self.gateway.list_payment_methods(guest.stripe_customer_id)
        if not methods:
            return None, [NO_PAYMENT_METHOD_MESSAGE], AutomaticPaymentState.NO_PAYMENT_METHOD

        errors: list[str] = []
        for method in methods:
            last4 = method.card_last4 or "????"
            try:
                charge = await self.gateway.authorize_charge(
                    customer_id=guest.stripe_customer_id,
                    payment_method_id=method.id,
                    amount=breakdown.amount_yen,
                    currency="jpy",
                    description=command.description,
                    metadata={
                        "payment_id": payment.id,
                        "guest_id": guest.id,
                        "reservation_id": command.reservation_id,
                        "required_points": command.required_points,
                    },
                )
            except Exception as e:
                charge = ChargeResult(success=False, error_message=str(e))

            if charge.success:
                logger.info(f"Card ending in {last4} authorized for payment {payment.id}")
                return charge, errors, AutomaticPaymentState.AUTHORIZED

            errors.append(f"card ending in {last4}: {charge.error_message}")
            logger.warning(f"Card ending in {last4} declined for payment {payment.id}: {charge.error_message}")

        return None, errors, AutomaticPaymentState.ALL_CARDS_FAILED

    async def _fail(
        self,
        command: AutomaticPaymentCommandDTO,
        breakdown: ChargeBreakdown,
        payment_id: Optional[int],
        state: str,
        errors: list[str],
    ) -> Result[AutomaticPaymentResultDTO]:
        no_method = state == AutomaticPaymentState.NO_PAYMENT_METHOD
        logger.error(
            f"Automatic payment failed for guest {command.guest_id} "
            f"({state}): {'; '.join(errors)}"
        )
        await self._notify_failure(command, breakdown, no_method)

        return Return.ok(
            AutomaticPaymentResultDTO(
                success=False,
                state=state,
                guest_id=command.guest_id,
                payment_id=payment_id,
                required_points=command.required_points,
                amount_yen=breakdown.amount_yen,
                base_amount_yen=breakdown.base_amount_yen,
                tax_amount_yen=breakdown.tax_amount_yen,
                all_cards_failed=True,
                requires_card_registration=no_method,
                errors=errors,
            )
        )

    async def _notify_failure(
        self, command: AutomaticPaymentCommandDTO, breakdown: ChargeBreakdown, no_method: bool
    ) -> None:
        context = {
            "reservation_id": command.reservation_id,
            "required_points": command.required_points,
            "amount_yen": breakdown.amount_yen,
        }
        if no_method:
            guest_message = (
                f"We could not charge {breakdown.amount_yen} yen for "
                f"{command.required_points} points: no card is registered. "
                "Please register a card."
            )
        else:
            guest_message = (
                f"We could not charge {breakdown.amount_yen} yen for "
                f"{command.required_points} points: every registered card was declined. "
                "Please update your payment method."
            )

        await notify_safely(
            self.notifier, command.guest_id, "guest",
            NotificationCategory.PAYMENT_FAILED, guest_message, context,
        )

        if command.reservation_id is None:
            return

        try:
            reservation = await self.reservation_repo.get_by_id(command.reservation_id)
        except Exception as e:
            logger.error(f"Failed to load reservation {command.reservation_id} for notification: {e}")
            return

        if reservation and reservation.cast_id:
            await notify_safely(
                self.notifier, reservation.cast_id, "cast",
                NotificationCategory.RESERVATION_PAYMENT_FAILED,
                f"The guest's automatic payment for reservation {command.reservation_id} failed.",
                context,
            )
        await notify_safely(
            self.notifier, command.guest_id, "guest",
            NotificationCategory.CHAT_SYSTEM,
            "Automatic payment failed. The reservation may end when points run out.",
            context,
        )

    def capture_delay(self) -> timedelta:
        return timedelta(days=self.policy.capture_delay_days)

    async def reservation_cast_id(self, reservation_id: Optional[int]) -> Optional[int]:
        if reservation_id is None:
            return None
        try:
            reservation = await self.reservation_repo.get_by_id(reservation_id)
        except Exception as e:
            logger.warning(f"Failed to load reservation {reservation_id} for cast lookup: {e}")
            return None
        return reservation.cast_id if reservation else None
