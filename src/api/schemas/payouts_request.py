"""Request schemas for the payout and payment APIs"""

from typing import Optional
from pydantic import BaseModel, Field


class InstantPayoutRequestSchema(BaseModel):
    """
    Request schema for an instant payout

    Used for POST /casts/{cast_id}/payouts/instant endpoint.
    """

    amount_yen: int = Field(
        ...,
        gt=0,
        description="Requested gross amount in yen"
    )

    memo: Optional[str] = Field(
        default=None,
        max_length=500,
    )

    class Config:
        json_schema_extra = {
            "example": {
                "amount_yen": 10000,
                "memo": "Rent"
            }
        }


class PayoutActionRequestSchema(BaseModel):
    """Optional reason or note for admin payout actions"""

    reason: Optional[str] = Field(default=None, max_length=500)
    note: Optional[str] = Field(default=None, max_length=500)


class ClosePeriodRequestSchema(BaseModel):
    year: int = Field(..., ge=2000, le=2100)
    month: int = Field(..., ge=1, le=12)


class AutomaticPaymentRequestSchema(BaseModel):
    """
    Request schema for an automatic payment

    Used for POST /payments/automatic and /payments/automatic/pending.
    """

    guest_id: int = Field(..., gt=0)

    required_points: int = Field(
        ...,
        gt=0,
        description="Points the guest is short of"
    )

    reservation_id: Optional[int] = Field(default=None)

    description: Optional[str] = Field(default=None, max_length=500)
