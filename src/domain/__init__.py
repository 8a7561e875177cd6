from .base import BaseModel
from .errors import InvalidTransitionError
from .cast_payout import CastPayout, CastPayoutStatus, CastPayoutType
from .point_transaction import PointTransaction, PointTransactionType, EARNABLE_TYPES
from .payment import Payment, PaymentStatus, PaymentUserType, PaymentMethod
from .guest import Guest
from .cast import Cast
from .reservation import Reservation
from .payout_policy import PayoutPolicy

__all__ = [
    "BaseModel",
    "InvalidTransitionError",
    "CastPayout",
    "CastPayoutStatus",
    "CastPayoutType",
    "PointTransaction",
    "PointTransactionType",
    "EARNABLE_TYPES",
    "Payment",
    "PaymentStatus",
    "PaymentUserType",
    "PaymentMethod",
    "Guest",
    "Cast",
    "Reservation",
    "PayoutPolicy",
]
