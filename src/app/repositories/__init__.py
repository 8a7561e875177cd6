from .point_transaction_repository import PointTransactionRepository
from .payment_repository import PaymentRepository
from .cast_payout_repository import CastPayoutRepository
from .guest_repository import GuestRepository
from .cast_repository import CastRepository
from .reservation_repository import ReservationRepository

__all__ = [
    "PointTransactionRepository",
    "PaymentRepository",
    "CastPayoutRepository",
    "GuestRepository",
    "CastRepository",
    "ReservationRepository",
]
