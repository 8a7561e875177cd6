"""Point Transaction Domain Entity

Immutable append-only ledger of point movements for guests and casts.
Balances are always derived from these rows; a cast's unsettled balance is
the sum of its earnable rows not yet claimed by a payout.
"""

from datetime import datetime
from enum import Enum
from typing import Iterable, Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import BigInteger, ForeignKey, String
from src.domain.base import BaseModel, BigIntegerPK


class PointTransactionType(str, Enum):
    """Ledger entry types"""
    BUY = "buy"                            # Points purchased (card or automatic payment)
    TRANSFER = "transfer"                  # Reservation earnings credited to a cast
    GIFT = "gift"                          # Gift earnings credited to a cast
    PENDING = "pending"                    # Points held for a reservation
    EXCEEDED_PENDING = "exceeded_pending"  # Overtime charge against a guest
    CONVERT = "convert"                    # Unused points returned to a guest
    REFUND = "refund"                      # Compensation back to a guest


EARNABLE_TYPES = (PointTransactionType.TRANSFER, PointTransactionType.GIFT)


class PointTransaction(BaseModel, table=True):
    """
    Point Transaction - one immutable ledger row

    Domain Rules:
    - Rows are append-only; only cast_payout_id (claim/release) and
      description (status relabelling) are ever updated
    - Exactly one owning side (guest_id or cast_id); transfer rows may carry
      both for provenance, the cast being the owner, and exceeded_pending
      rows carry the reservation's cast they are later transferred to
    - amount is signed (negative for deductions)
    - Once cast_payout_id is set the row is excluded from unsettled balances
    """

    __tablename__ = "point_transactions"
    __table_args__ = (
        Index('ix_point_transactions_cast_unclaimed', 'cast_id', 'cast_payout_id'),
        Index('ix_point_transactions_created_at', 'created_at'),
        Index('ix_point_transactions_payment_id', 'payment_id'),
    )

    id: int = Field(
        sa_column=Column(BigIntegerPK, primary_key=True, autoincrement=True),
        description="Unique ledger row identifier (auto-increment)"
    )

    guest_id: Optional[int] = Field(
        default=None,
        index=True,
        description="Guest owning (or paying for) the row"
    )

    cast_id: Optional[int] = Field(
        default=None,
        description="Cast owning (or earning from) the row"
    )

    transaction_type: PointTransactionType = Field(
        description="Ledger entry type"
    )

    amount: int = Field(
        sa_column=Column(BigInteger, nullable=False),
        description="Signed point amount"
    )

    reservation_id: Optional[int] = Field(
        default=None,
        description="Reservation the row belongs to"
    )

    payment_id: Optional[int] = Field(
        default=None,
        description="Payment that produced the row"
    )

    cast_payout_id: Optional[int] = Field(
        default=None,
        sa_column=Column(BigIntegerPK, ForeignKey("cast_payouts.id"), nullable=True),
        description="Payout that claimed the row (None = unsettled)"
    )

    description: Optional[str] = Field(
        default=None,
        sa_column=Column(String(500), nullable=True),
        description="Human readable description"
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Row timestamp (immutable)"
    )

    @property
    def is_claimed(self) -> bool:
        return self.cast_payout_id is not None

    @property
    def is_earnable(self) -> bool:
        return self.transaction_type in EARNABLE_TYPES


def select_oldest_first(
    transactions: Iterable[PointTransaction], required_points: int
) -> tuple[list[PointTransaction], int]:
    """
    Pick whole rows oldest-first until their sum reaches required_points

    Rows are never split, so the selected total can exceed the requirement by
    at most the amount of the row that crosses it. If the rows run out first
    the returned total is below required_points.

    Returns:
        Tuple of (selected rows, selected total)
    """
    ordered = sorted(transactions, key=lambda t: (t.created_at, t.id or 0))
    selected: list[PointTransaction] = []
    total = 0
    for transaction in ordered:
        if total >= required_points:
            break
        selected.append(transaction)
        total += transaction.amount
    return selected, total
