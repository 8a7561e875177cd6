from .unit_of_work import UnitOfWork
from .notification_service import NotificationService, NotificationCategory, notify_safely
from .payment_gateway import (
    PaymentGateway,
    PaymentGatewayError,
    PaymentMethodInfo,
    ChargeResult,
    CaptureResult,
    TransferResult,
    PayoutResult,
    PlatformBalance,
    ConnectedAccountStatus,
)

__all__ = [
    "UnitOfWork",
    "NotificationService",
    "NotificationCategory",
    "notify_safely",
    "PaymentGateway",
    "PaymentGatewayError",
    "PaymentMethodInfo",
    "ChargeResult",
    "CaptureResult",
    "TransferResult",
    "PayoutResult",
    "PlatformBalance",
    "ConnectedAccountStatus",
]
