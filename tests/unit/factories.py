"""Entity builders shared by unit tests"""

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Optional
from src.domain.cast_payout import CastPayout, CastPayoutStatus, CastPayoutType
from src.domain.payment import Payment, PaymentMethod, PaymentStatus, PaymentUserType
from src.domain.point_transaction import PointTransaction, PointTransactionType


def make_earning(id: int, amount: int, days_ago: int = 0, cast_id: int = 7) -> PointTransaction:
    return PointTransaction(
        id=id,
        cast_id=cast_id,
        guest_id=42,
        transaction_type=PointTransactionType.TRANSFER,
        amount=amount,
        created_at=datetime.utcnow() - timedelta(days=days_ago),
    )


def make_payout(
    status: CastPayoutStatus = CastPayoutStatus.SCHEDULED,
    payout_type: CastPayoutType = CastPayoutType.SCHEDULED,
    id: int = 1,
    cast_id: int = 7,
    meta: Optional[dict] = None,
) -> CastPayout:
    return CastPayout(
        id=id,
        cast_id=cast_id,
        type=payout_type,
        closing_month="2025-01",
        period_start=date(2025, 1, 1),
        period_end=date(2025, 1, 31),
        total_points=50000,
        conversion_rate=Decimal("1.2"),
        gross_amount_yen=60000,
        fee_rate=Decimal("0.1"),
        fee_amount_yen=6000,
        net_amount_yen=54000,
        transaction_count=3,
        scheduled_payout_date=date(2025, 2, 28),
        status=status,
        meta=meta or {},
    )


def make_card_payment(
    id: int = 100,
    status: PaymentStatus = PaymentStatus.PENDING,
    meta: Optional[dict] = None,
    reservation_id: Optional[int] = 1001,
) -> Payment:
    return Payment(
        id=id,
        user_id=42,
        user_type=PaymentUserType.GUEST,
        amount=1320,
        status=status,
        payment_method=PaymentMethod.CARD,
        is_automatic=True,
        stripe_payment_intent_id="pi_123",
        reservation_id=reservation_id,
        meta=meta or {},
    )


def make_exceeded_pending(
    id: int = 500,
    amount: int = -1000,
    payment_id: Optional[int] = 100,
    cast_id: Optional[int] = 7,
    description: str = "Automatic deduction for exceeded time (payment completed)",
) -> PointTransaction:
    return PointTransaction(
        id=id,
        guest_id=42,
        cast_id=cast_id,
        transaction_type=PointTransactionType.EXCEEDED_PENDING,
        amount=amount,
        reservation_id=1001,
        payment_id=payment_id,
        description=description,
        created_at=datetime.utcnow() - timedelta(days=3),
    )
