from .point_transaction_repository import SqlAlchemyPointTransactionRepository
from .payment_repository import SqlAlchemyPaymentRepository
from .cast_payout_repository import SqlAlchemyCastPayoutRepository
from .guest_repository import SqlAlchemyGuestRepository
from .cast_repository import SqlAlchemyCastRepository
from .reservation_repository import SqlAlchemyReservationRepository

__all__ = [
    "SqlAlchemyPointTransactionRepository",
    "SqlAlchemyPaymentRepository",
    "SqlAlchemyCastPayoutRepository",
    "SqlAlchemyGuestRepository",
    "SqlAlchemyCastRepository",
    "SqlAlchemyReservationRepository",
]
