"""Data Transfer Objects for Payment Use Cases"""

from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, Field


class AutomaticPaymentState:
    INITIATED = "initiated"
    AUTHORIZING = "authorizing"
    AUTHORIZED = "authorized"
    ALL_CARDS_FAILED = "all_cards_failed"
    NO_PAYMENT_METHOD = "no_payment_method"


class AutomaticPaymentCommandDTO(BaseModel):
    """
    Command DTO for charging a guest's card to cover a point shortfall

    Used as input to ProcessAutomaticPayment and
    ProcessAutomaticPaymentWithPending.
    """

    guest_id: int = Field(
        ...,
        description="Guest to charge"
    )

    required_points: int = Field(
        ...,
        gt=0,
        description="Point shortfall to cover (must be > 0)"
    )

    reservation_id: Optional[int] = Field(
        default=None,
        description="Reservation the shortfall belongs to"
    )

    description: str = Field(
        default="Automatic payment for exceeded time",
        max_length=400,
    )

    class Config:
        json_schema_extra = {
            "example": {
                "guest_id": 42,
                "required_points": 1000,
                "reservation_id": 1001,
                "description": "Automatic payment for exceeded time"
            }
        }


class AutomaticPaymentResultDTO(BaseModel):
    """
    Outcome of an automatic payment attempt

    Card failures are reported here with success=False rather than as errors.
    """

    success: bool
    state: str
    guest_id: int
    payment_id: Optional[int] = None
    required_points: int
    amount_yen: int = Field(..., description="Charged amount incl. tax, after minimum clamp")
    base_amount_yen: int
    tax_amount_yen: int
    new_balance: Optional[int] = None
    stripe_payment_intent_id: Optional[str] = None
    scheduled_capture_at: Optional[datetime] = None
    all_cards_failed: bool = False
    requires_card_registration: bool = False
    errors: list[str] = Field(default_factory=list)


class CaptureSweepResultDTO(BaseModel):
    processed: int
    failed: int
    skipped: int
    total: int


class GatewayEventResultDTO(BaseModel):
    event_type: str
    handled: bool
    action: Optional[str] = None
    payment_id: Optional[int] = None
    cast_payout_id: Optional[int] = None
    detail: Optional[dict[str, Any]] = None
