"""Cast Payout Domain Entity

Aggregates a cast's earnable ledger rows into one payable unit, either by
the monthly closing job (scheduled) or on request (instant).
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import BigInteger, JSON, Numeric, String
from src.domain.base import BaseModel, BigIntegerPK
from src.domain.errors import InvalidTransitionError


class CastPayoutType(str, Enum):
    SCHEDULED = "scheduled"
    INSTANT = "instant"


class CastPayoutStatus(str, Enum):
    """Payout status types"""
    SCHEDULED = "scheduled"                # Closed, waiting for its payout date
    PENDING = "pending"                    # Due, waiting for the cast's connected account
    PENDING_APPROVAL = "pending_approval"  # Instant request waiting for an admin
    PROCESSING = "processing"              # Money movement initiated
    PAID = "paid"
    FAILED = "failed"                      # Retryable
    CANCELLED = "cancelled"
    REJECTED = "rejected"


PAYOUT_TRANSITIONS = {
    CastPayoutStatus.SCHEDULED: {
        CastPayoutStatus.PROCESSING, CastPayoutStatus.PENDING, CastPayoutStatus.CANCELLED,
    },
    CastPayoutStatus.PENDING: {CastPayoutStatus.PROCESSING, CastPayoutStatus.CANCELLED},
    CastPayoutStatus.PENDING_APPROVAL: {CastPayoutStatus.PROCESSING, CastPayoutStatus.REJECTED},
    CastPayoutStatus.PROCESSING: {
        CastPayoutStatus.PAID, CastPayoutStatus.FAILED, CastPayoutStatus.PENDING,
    },
    CastPayoutStatus.FAILED: {CastPayoutStatus.PROCESSING, CastPayoutStatus.PAID},
    CastPayoutStatus.PAID: set(),
    CastPayoutStatus.CANCELLED: set(),
    CastPayoutStatus.REJECTED: set(),
}

OPEN_STATUSES = (
    CastPayoutStatus.SCHEDULED,
    CastPayoutStatus.PENDING,
    CastPayoutStatus.PENDING_APPROVAL,
    CastPayoutStatus.PROCESSING,
    CastPayoutStatus.FAILED,
)

RELEASED_STATUSES = (CastPayoutStatus.CANCELLED, CastPayoutStatus.REJECTED)


class CastPayout(BaseModel, table=True):
    """
    Cast Payout - settlement of claimed ledger rows

    Domain Rules:
    - net_amount_yen = gross_amount_yen - fee_amount_yen, never negative
    - Claimed rows (point_transactions.cast_payout_id = id) sum to total_points
    - Cancelling or rejecting releases every claimed row in the same unit of work
    - One scheduled payout per cast per closing_month
    - Status changes only through transition_to (see PAYOUT_TRANSITIONS)
    """

    __tablename__ = "cast_payouts"
    __table_args__ = (
        Index('ix_cast_payouts_cast_month', 'cast_id', 'closing_month', 'type'),
        Index('ix_cast_payouts_status_date', 'status', 'scheduled_payout_date'),
    )

    id: int = Field(
        sa_column=Column(BigIntegerPK, primary_key=True, autoincrement=True),
        description="Unique payout identifier (auto-increment)"
    )

    cast_id: int = Field(
        index=True,
        description="Cast receiving the payout"
    )

    type: CastPayoutType = Field(
        description="scheduled (monthly close) or instant (on request)"
    )

    closing_month: str = Field(
        sa_column=Column(String(7), nullable=False),
        description="Closing month (YYYY-MM)"
    )

    period_start: date
    period_end: date

    total_points: int = Field(
        sa_column=Column(BigInteger, nullable=False),
        description="Sum of claimed ledger rows"
    )

    conversion_rate: Decimal = Field(
        sa_column=Column(Numeric(10, 4), nullable=False),
        description="Yen per point at creation time"
    )

    gross_amount_yen: int = Field(sa_column=Column(BigInteger, nullable=False))

    fee_rate: Decimal = Field(sa_column=Column(Numeric(6, 4), nullable=False))

    fee_amount_yen: int = Field(sa_column=Column(BigInteger, nullable=False))

    net_amount_yen: int = Field(sa_column=Column(BigInteger, nullable=False))

    transaction_count: int = Field(default=0)

    scheduled_payout_date: date

    status: CastPayoutStatus = Field(
        description="Payout status"
    )

    paid_at: Optional[datetime] = Field(default=None)

    meta: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column("metadata", JSON, nullable=False, default=dict),
        description="Audit bag (source, stripe ids, errors, retry_count)"
    )

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def can_transition_to(self, target: CastPayoutStatus) -> bool:
        return target in PAYOUT_TRANSITIONS.get(self.status, set())

    def transition_to(self, target: CastPayoutStatus, **metadata: Any) -> None:
        """Move to target status, merging metadata; raises on illegal moves"""
        if not self.can_transition_to(target):
            raise InvalidTransitionError("payout", self.status.value, target.value)
        self.status = target
        if target == CastPayoutStatus.PAID:
            self.paid_at = datetime.utcnow()
        self.updated_at = datetime.utcnow()
        if metadata:
            self.merge_metadata(**metadata)

    def merge_metadata(self, **values: Any) -> None:
        self.meta = {**(self.meta or {}), **values}
        self.updated_at = datetime.utcnow()

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES

    @property
    def retry_count(self) -> int:
        return int((self.meta or {}).get("retry_count", 0))
