"""Payout Dispatcher

Moves a payout's net amount platform -> connected account -> bank.
Runs inside the caller's unit of work and never commits.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from libs.result import Error
from src.app.services.payment_gateway import PaymentGateway
from src.app.repositories.cast_payout_repository import CastPayoutRepository
from src.app.repositories.payment_repository import PaymentRepository
from src.domain.cast import Cast
from src.domain.cast_payout import CastPayout, CastPayoutStatus, CastPayoutType
from src.domain.payment import Payment, PaymentMethod, PaymentStatus, PaymentUserType

logger = logging.getLogger(__name__)

CONNECT_ACCOUNT_MISSING_REASON = "Stripe Connect account is not set up"
_INSUFFICIENT_MARKERS = ("insufficient", "available funds", "balance")


def classify_gateway_error(message: str) -> str:
    lowered = message.lower()
    if any(marker in lowered for marker in _INSUFFICIENT_MARKERS):
        return "INSUFFICIENT_PLATFORM_BALANCE"
    return "GATEWAY_ERROR"


@dataclass
class DispatchOutcome:
    dispatched: bool
    payment: Optional[Payment] = None
    error: Optional[Error] = None
    waiting: bool = False


class PayoutDispatcher:
    """
    Dispatch a payout through the gateway

    Sequence:
    1. Cast without a ready connected account: scheduled -> pending with
       waiting_for_stripe_connect; processing -> failed; pending untouched
    2. Platform balance pre-check (warning only)
    3. Transfer to the connected account; stripe_transfer_id saved at once.
       Skipped when an earlier attempt already recorded stripe_transfer_id
    4. Payout to the bank rail
    5. Payment (pending, method payout); payout metadata.payment_id

    Any gateway error marks the payout failed with metadata.stripe_error,
    keeping stripe_transfer_id when the transfer had gone through. No
    Payment is created in that case.
    """

    def __init__(
        self,
        payout_repo: CastPayoutRepository,
        payment_repo: PaymentRepository,
        gateway: PaymentGateway,
    ):
        self.payout_repo = payout_repo
        self.payment_repo = payment_repo
        self.gateway = gateway

    async def dispatch(self, cast: Cast, payout: CastPayout, instant: bool) -> DispatchOutcome:
        if not cast.can_receive_payouts:
            return await self._wait_for_account(cast, payout)

        if payout.status != CastPayoutStatus.PROCESSING:
            payout.transition_to(CastPayoutStatus.PROCESSING)
        await self.payout_repo.save(payout)

        metadata = {
            "cast_payout_id": payout.id,
            "type": payout.type.value,
            "closing_month": payout.closing_month,
            "instant": instant,
        }

        # A transfer that went through on an earlier attempt is never repeated
        transfer_id = (payout.meta or {}).get("stripe_transfer_id")

        try:
            if transfer_id:
                logger.info(
                    f"Payout {payout.id} already transferred ({transfer_id}), "
                    f"creating bank payout only"
                )
            else:
                await self._check_platform_balance(payout)
                transfer = await self.gateway.create_transfer(
                    payout.net_amount_yen,
                    "jpy",
                    cast.stripe_connect_account_id,
                    {**metadata, "transfer_purpose": "instant_payout" if instant else "scheduled_payout"},
                )
                transfer_id = transfer.transfer_id
                payout.merge_metadata(stripe_transfer_id=transfer_id)
                await self.payout_repo.save(payout)

                logger.info(
                    f"Transfer {transfer_id} to {cast.stripe_connect_account_id} completed "
                    f"for payout {payout.id}, creating bank payout"
                )

            bank_payout = await self.gateway.create_payout(
                payout.net_amount_yen,
                "jpy",
                cast.stripe_connect_account_id,
                instant,
                {
                    **metadata,
                    "requested_via": "instant" if instant else "scheduled",
                    "transfer_id": transfer_id,
                },
            )
        except Exception as e:
            return await self._fail(cast, payout, str(e))

        payment = await self.payment_repo.create(
            Payment(
                user_id=cast.id,
                user_type=PaymentUserType.CAST,
                cast_payout_id=payout.id,
                amount=payout.net_amount_yen,
                payment_method=PaymentMethod.PAYOUT,
                status=PaymentStatus.PENDING,
                stripe_payout_id=bank_payout.payout_id,
                stripe_connect_account_id=cast.stripe_connect_account_id,
                description="Instant payout" if payout.type == CastPayoutType.INSTANT else "Month-end payout",
                meta={
                    **metadata,
                    "stripe_payout_status": bank_payout.status,
                    "stripe_transfer_id": transfer_id,
                },
            )
        )

        payout.merge_metadata(payment_id=payment.id, stripe_payout_id=bank_payout.payout_id)
        await self.payout_repo.save(payout)

        logger.info(
            f"Payout {payout.id} dispatched: {payout.net_amount_yen} yen to cast {cast.id} "
            f"(payment {payment.id}, bank payout {bank_payout.payout_id})"
        )
        return DispatchOutcome(dispatched=True, payment=payment)

    async def _wait_for_account(self, cast: Cast, payout: CastPayout) -> DispatchOutcome:
        logger.warning(
            f"Payout {payout.id} skipped - connected account not ready for cast {cast.id} "
            f"(account={bool(cast.stripe_connect_account_id)}, payouts_enabled={cast.payouts_enabled})"
        )
        error = Error(
            code="CONNECT_ACCOUNT_MISSING",
            message=CONNECT_ACCOUNT_MISSING_REASON,
        )

        if payout.status == CastPayoutStatus.SCHEDULED:
            payout.transition_to(
                CastPayoutStatus.PENDING,
                waiting_for_stripe_connect=True,
                reason=CONNECT_ACCOUNT_MISSING_REASON,
            )
            await self.payout_repo.save(payout)
        elif payout.status == CastPayoutStatus.PROCESSING:
            payout.transition_to(
                CastPayoutStatus.FAILED,
                stripe_error=CONNECT_ACCOUNT_MISSING_REASON,
                failed_at=datetime.utcnow().isoformat(),
            )
            await self.payout_repo.save(payout)

        return DispatchOutcome(dispatched=False, error=error, waiting=True)

    async def _check_platform_balance(self, payout: CastPayout) -> None:
        try:
            balance = await self.gateway.get_platform_balance()
        except Exception as e:
            logger.warning(f"Failed to check platform balance before transfer: {e}")
            return

        available = balance.available_for("jpy")
        if available < payout.net_amount_yen:
            logger.warning(
                f"Insufficient platform balance for payout {payout.id}: "
                f"required={payout.net_amount_yen}, available={available}, "
                f"shortfall={payout.net_amount_yen - available}"
            )

    async def _fail(self, cast: Cast, payout: CastPayout, message: str) -> DispatchOutcome:
        code = classify_gateway_error(message)
        logger.error(
            f"Payout {payout.id} for cast {cast.id} failed ({code}): {message}"
        )

        payout.transition_to(
            CastPayoutStatus.FAILED,
            stripe_error=message,
            error_code=code,
            failed_at=datetime.utcnow().isoformat(),
        )
        await self.payout_repo.save(payout)

        if code == "INSUFFICIENT_PLATFORM_BALANCE":
            user_message = "The platform account does not have enough balance for this payout"
        else:
            user_message = "Payout processing failed"
        return DispatchOutcome(
            dispatched=False,
            error=Error(code=code, message=user_message, reason=message),
        )
