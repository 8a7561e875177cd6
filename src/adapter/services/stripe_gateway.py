"""Stripe payment gateway adapter

Card charges are authorized with manual capture and captured later by the
capture sweep. Payouts move funds platform -> connected account (transfer)
and then connected account -> bank (payout).
"""

import asyncio
import logging
from typing import Any, Optional
import stripe
from src.app.services.payment_gateway import (
    CaptureResult,
    ChargeResult,
    ConnectedAccountStatus,
    PaymentGateway,
    PaymentGatewayError,
    PaymentMethodInfo,
    PayoutResult,
    PlatformBalance,
    TransferResult,
)

logger = logging.getLogger(__name__)


def _stringify(metadata: dict[str, Any]) -> dict[str, str]:
    # Stripe metadata values must be strings
    return {str(k): str(v) for k, v in metadata.items() if v is not None}


class StripePaymentGateway(PaymentGateway):
    """Stripe implementation of PaymentGateway"""

    def __init__(self, secret_key: str, webhook_secret: Optional[str] = None):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        stripe.api_key = secret_key

    async def _call(self, fn, *args, **kwargs):
        # The SDK is blocking; keep the event loop free
        return await asyncio.to_thread(fn, *args, **kwargs)

    async def create_customer(self, email: Optional[str], metadata: dict[str, Any]) -> str:
        try:
            customer = await self._call(
                stripe.Customer.create, email=email, metadata=_stringify(metadata)
            )
        except stripe.StripeError as e:
            raise PaymentGatewayError(str(e)) from e
        return customer.id

    async def list_payment_methods(self, customer_id: str) -> list[PaymentMethodInfo]:
        try:
            methods = await self._call(
                stripe.PaymentMethod.list, customer=customer_id, type="card"
            )
        except stripe.StripeError as e:
            logger.error(f"Failed to list payment methods for {customer_id}: {e}")
            return []
        return [
            PaymentMethodInfo(
                id=method.id,
                card_last4=getattr(method.card, "last4", None) if method.card else None,
                brand=getattr(method.card, "brand", None) if method.card else None,
            )
            for method in methods.data
        ]

    async def authorize_charge(
        self,
        customer_id: str,
        payment_method_id: str,
        amount: int,
        currency: str,
        description: str,
        metadata: dict[str, Any],
    ) -> ChargeResult:
        try:
            intent = await self._call(
                stripe.PaymentIntent.create,
                amount=amount,
                currency=currency.lower(),
                customer=customer_id,
                payment_method=payment_method_id,
                capture_method="manual",
                confirm=True,
                off_session=True,
                description=description,
                metadata=_stringify(metadata),
            )
        except stripe.StripeError as e:
            return ChargeResult(success=False, error_message=getattr(e, "user_message", None) or str(e))

        if intent.status != "requires_capture":
            return ChargeResult(
                success=False,
                payment_intent_id=intent.id,
                status=intent.status,
                error_message=f"unexpected intent status {intent.status}",
            )
        return ChargeResult(success=True, payment_intent_id=intent.id, status=intent.status)

    async def capture_charge(self, payment_intent_id: str) -> CaptureResult:
        try:
            intent = await self._call(stripe.PaymentIntent.capture, payment_intent_id)
        except stripe.StripeError as e:
            return CaptureResult(success=False, error_message=str(e))
        return CaptureResult(success=intent.status == "succeeded", status=intent.status,
                             error_message=None if intent.status == "succeeded" else intent.status)

    async def cancel_charge(self, payment_intent_id: str) -> CaptureResult:
        try:
            intent = await self._call(stripe.PaymentIntent.cancel, payment_intent_id)
        except stripe.StripeError as e:
            return CaptureResult(success=False, error_message=str(e))
        return CaptureResult(success=intent.status == "canceled", status=intent.status)

    async def create_transfer(
        self, amount: int, currency: str, destination: str, metadata: dict[str, Any]
    ) -> TransferResult:
        try:
            transfer = await self._call(
                stripe.Transfer.create,
                amount=amount,
                currency=currency.lower(),
                destination=destination,
                metadata=_stringify(metadata),
            )
        except stripe.StripeError as e:
            raise PaymentGatewayError(str(e)) from e
        return TransferResult(transfer_id=transfer.id, amount=transfer.amount)

    async def create_payout(
        self,
        amount: int,
        currency: str,
        connected_account_id: str,
        instant: bool,
        metadata: dict[str, Any],
    ) -> PayoutResult:
        try:
            payout = await self._call(
                stripe.Payout.create,
                amount=amount,
                currency=currency.lower(),
                method="instant" if instant else "standard",
                metadata=_stringify(metadata),
                stripe_account=connected_account_id,
            )
        except stripe.StripeError as e:
            raise PaymentGatewayError(str(e)) from e
        return PayoutResult(payout_id=payout.id, amount=payout.amount, status=payout.status)

    async def get_platform_balance(self) -> PlatformBalance:
        try:
            balance = await self._call(stripe.Balance.retrieve)
        except stripe.StripeError as e:
            raise PaymentGatewayError(str(e)) from e
        return PlatformBalance(
            available={entry.currency: entry.amount for entry in balance.available},
            pending={entry.currency: entry.amount for entry in balance.pending},
        )

    async def get_connected_account_status(self, account_id: str) -> ConnectedAccountStatus:
        try:
            account = await self._call(stripe.Account.retrieve, account_id)
        except stripe.StripeError as e:
            raise PaymentGatewayError(str(e)) from e
        return ConnectedAccountStatus(
            account_id=account.id,
            payouts_enabled=bool(account.payouts_enabled),
            charges_enabled=bool(account.charges_enabled),
            details_submitted=bool(account.details_submitted),
        )

    def construct_event(self, payload: bytes, signature: str) -> dict[str, Any]:
        if not self.webhook_secret:
            raise PaymentGatewayError("Stripe webhook secret not configured")
        try:
            event = stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as e:
            raise PaymentGatewayError(f"Invalid webhook: {e}") from e
        return event.to_dict() if hasattr(event, "to_dict") else dict(event)
