"""Payment Domain Entity

One attempt to move money through the payment gateway: an automatic card
charge for a guest, or a payout to a cast's connected account.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import BigInteger, ForeignKey, JSON, String
from src.domain.base import BaseModel, BigIntegerPK
from src.domain.errors import InvalidTransitionError


class PaymentStatus(str, Enum):
    """Payment status types"""
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    CANCELED = "canceled"


class PaymentUserType(str, Enum):
    GUEST = "guest"
    CAST = "cast"


class PaymentMethod(str, Enum):
    CARD = "card"
    PAYOUT = "payout"


# Statuses only ever leave pending
PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.PAID, PaymentStatus.FAILED, PaymentStatus.CANCELED},
    PaymentStatus.PAID: set(),
    PaymentStatus.FAILED: set(),
    PaymentStatus.CANCELED: set(),
}


class Payment(BaseModel, table=True):
    """
    Payment - gateway money movement record

    Domain Rules:
    - Status transitions are monotonic: pending -> paid | failed | canceled
    - Terminal statuses never change
    - metadata["points_credited"] marks that points were already granted for
      this payment, so repeated gateway callbacks never credit twice
    - expires_at is when a delayed-capture authorization becomes capturable
    """

    __tablename__ = "payments"
    __table_args__ = (
        Index('ix_payments_status_expires_at', 'status', 'expires_at'),
        Index('ix_payments_user', 'user_type', 'user_id'),
    )

    id: int = Field(
        sa_column=Column(BigIntegerPK, primary_key=True, autoincrement=True),
        description="Unique payment identifier (auto-increment)"
    )

    user_id: int = Field(
        description="Guest or cast ID"
    )

    user_type: PaymentUserType = Field(
        description="Owner kind (guest, cast)"
    )

    amount: int = Field(
        sa_column=Column(BigInteger, nullable=False),
        description="Amount in yen"
    )

    currency: str = Field(
        default="jpy",
        sa_column=Column(String(3), nullable=False, default="jpy"),
    )

    status: PaymentStatus = Field(
        default=PaymentStatus.PENDING,
        description="Payment status (pending, paid, failed, canceled)"
    )

    payment_method: PaymentMethod = Field(
        default=PaymentMethod.CARD,
        description="card for guest charges, payout for cast payouts"
    )

    is_automatic: bool = Field(
        default=False,
        description="Created by the automatic payment engine"
    )

    description: Optional[str] = Field(
        default=None,
        sa_column=Column(String(500), nullable=True),
    )

    stripe_customer_id: Optional[str] = Field(default=None, sa_column=Column(String(255), nullable=True))
    stripe_payment_intent_id: Optional[str] = Field(default=None, sa_column=Column(String(255), nullable=True, index=True))
    stripe_payout_id: Optional[str] = Field(default=None, sa_column=Column(String(255), nullable=True, index=True))
    stripe_connect_account_id: Optional[str] = Field(default=None, sa_column=Column(String(255), nullable=True))

    reservation_id: Optional[int] = Field(default=None)

    cast_payout_id: Optional[int] = Field(
        default=None,
        sa_column=Column(BigIntegerPK, ForeignKey("cast_payouts.id"), nullable=True, index=True),
    )

    error_message: Optional[str] = Field(
        default=None,
        sa_column=Column(String(2000), nullable=True),
    )

    meta: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column("metadata", JSON, nullable=False, default=dict),
        description="Audit bag (deduction_type, required_points, conversion_rate, capture timestamps)"
    )

    expires_at: Optional[datetime] = Field(default=None)
    paid_at: Optional[datetime] = Field(default=None)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def can_transition_to(self, target: PaymentStatus) -> bool:
        return target in PAYMENT_TRANSITIONS.get(self.status, set())

    def transition_to(self, target: PaymentStatus, **metadata: Any) -> None:
        """Move to target status, merging metadata; raises on illegal moves"""
        if not self.can_transition_to(target):
            raise InvalidTransitionError("payment", self.status.value, target.value)
        self.status = target
        now = datetime.utcnow()
        if target == PaymentStatus.PAID and self.paid_at is None:
            self.paid_at = now
        self.updated_at = now
        if metadata:
            self.merge_metadata(**metadata)

    def merge_metadata(self, **values: Any) -> None:
        # Reassign so the JSON column is flagged dirty
        self.meta = {**(self.meta or {}), **values}
        self.updated_at = datetime.utcnow()

    @property
    def points_credited(self) -> bool:
        return bool((self.meta or {}).get("points_credited"))
