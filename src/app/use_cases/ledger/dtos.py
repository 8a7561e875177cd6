"""Data Transfer Objects for Ledger Use Cases

Pydantic models for command inputs and response outputs.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field
from src.domain.point_transaction import PointTransactionType


class RecordPointEntryCommandDTO(BaseModel):
    """
    Command DTO for appending a ledger row

    Earnable types (transfer, gift) are owned by cast_id; every other type
    is owned by guest_id.
    """

    transaction_type: PointTransactionType = Field(
        ...,
        description="Ledger entry type"
    )

    amount: int = Field(
        ...,
        description="Signed point amount (earnings must be positive)"
    )

    guest_id: Optional[int] = Field(
        default=None,
        description="Guest owning the row, or paying for a cast's earnings"
    )

    cast_id: Optional[int] = Field(
        default=None,
        description="Cast earning the row"
    )

    reservation_id: Optional[int] = Field(default=None)

    payment_id: Optional[int] = Field(default=None)

    description: Optional[str] = Field(
        default=None,
        max_length=500,
    )

    class Config:
        json_schema_extra = {
            "example": {
                "transaction_type": "transfer",
                "amount": 12000,
                "guest_id": 42,
                "cast_id": 7,
                "reservation_id": 1001,
                "description": "Reservation 1001 earnings"
            }
        }


class PointTransactionDTO(BaseModel):
    id: int
    transaction_type: str
    amount: int
    guest_id: Optional[int] = None
    cast_id: Optional[int] = None
    reservation_id: Optional[int] = None
    payment_id: Optional[int] = None
    cast_payout_id: Optional[int] = None
    description: Optional[str] = None
    created_at: datetime


class RecordPointEntryResponseDTO(BaseModel):
    """Response DTO for a recorded ledger row with the owner's new balance"""

    transaction: PointTransactionDTO

    balance_after: int = Field(
        ...,
        description="Owner's denormalized points balance after the write"
    )


class ListPointTransactionsResponseDTO(BaseModel):
    transactions: list[PointTransactionDTO]
    total: int
    limit: int
    offset: int


class UnsettledBalanceDTO(BaseModel):
    """
    Response DTO for a cast's unsettled earnings

    Yen figures use the payout conversion (rounded down).
    """

    cast_id: int
    unsettled_points: int
    unsettled_yen: int
    instant_available_points: int
    instant_available_yen: int


class CastPointsDiscrepancyDTO(BaseModel):
    cast_id: int
    cast_points: int
    calculated_points: int
    discrepancy: int


class CastPointsReconciliationResultDTO(BaseModel):
    total_casts_checked: int
    discrepancies_found: int
    discrepancies: list[CastPointsDiscrepancyDTO]
    reconciliation_time: datetime
    execution_time_ms: int


def to_transaction_dto(transaction) -> PointTransactionDTO:
    return PointTransactionDTO(
        id=transaction.id,
        transaction_type=transaction.transaction_type.value
        if hasattr(transaction.transaction_type, "value") else transaction.transaction_type,
        amount=transaction.amount,
        guest_id=transaction.guest_id,
        cast_id=transaction.cast_id,
        reservation_id=transaction.reservation_id,
        payment_id=transaction.payment_id,
        cast_payout_id=transaction.cast_payout_id,
        description=transaction.description,
        created_at=transaction.created_at,
    )


class ExceededPendingTransferResultDTO(BaseModel):
    processed: int
    not_transferred: int
    skipped: int
    failed: int
    total: int
    transferred_points: int
