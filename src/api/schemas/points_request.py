"""Request schemas for the points API

Pydantic models for validating incoming HTTP requests.
"""

from typing import Optional
from pydantic import BaseModel, Field, model_validator
from src.domain.point_transaction import EARNABLE_TYPES, PointTransactionType


class RecordPointEntryRequestSchema(BaseModel):
    """
    Request schema for appending a ledger row

    Used for POST /points/transactions endpoint.
    """

    transaction_type: PointTransactionType = Field(
        ...,
        description="Ledger entry type (buy, transfer, gift, pending, exceeded_pending, convert, refund)"
    )

    amount: int = Field(
        ...,
        description="Signed point amount, non-zero"
    )

    guest_id: Optional[int] = Field(default=None, gt=0)
    cast_id: Optional[int] = Field(default=None, gt=0)
    reservation_id: Optional[int] = Field(default=None)
    payment_id: Optional[int] = Field(default=None)

    description: Optional[str] = Field(
        default=None,
        max_length=500,
        description="Free text shown in the ledger history"
    )

    @model_validator(mode="after")
    def validate_owner(self):
        """Earnings need a cast; every other type needs a guest"""
        if self.amount == 0:
            raise ValueError("amount must not be zero")
        if self.transaction_type in EARNABLE_TYPES and self.cast_id is None:
            raise ValueError("cast_id is required for earnable entries")
        if self.transaction_type not in EARNABLE_TYPES and self.guest_id is None:
            raise ValueError("guest_id is required for guest entries")
        return self

    class Config:
        json_schema_extra = {
            "example": {
                "transaction_type": "gift",
                "amount": 3000,
                "guest_id": 42,
                "cast_id": 7,
                "description": "Gift: bouquet"
            }
        }
