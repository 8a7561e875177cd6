"""Automatic payment, capture and webhook use cases"""
from .process_automatic_payment import ProcessAutomaticPayment
from .process_automatic_payment_with_pending import ProcessAutomaticPaymentWithPending
from .capture_pending_payments import CapturePendingPayments
from .handle_gateway_event import HandleGatewayEvent
from .dtos import (
    AutomaticPaymentState,
    AutomaticPaymentCommandDTO,
    AutomaticPaymentResultDTO,
    CaptureSweepResultDTO,
    GatewayEventResultDTO,
)

__all__ = [
    "ProcessAutomaticPayment",
    "ProcessAutomaticPaymentWithPending",
    "CapturePendingPayments",
    "HandleGatewayEvent",
    "AutomaticPaymentState",
    "AutomaticPaymentCommandDTO",
    "AutomaticPaymentResultDTO",
    "CaptureSweepResultDTO",
    "GatewayEventResultDTO",
]
