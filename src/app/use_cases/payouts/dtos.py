"""Data Transfer Objects for Payout Use Cases

Pydantic models for command inputs and response outputs.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional
from pydantic import BaseModel, Field
from src.domain.cast_payout import CastPayout


class InstantPayoutCommandDTO(BaseModel):
    """
    Command DTO for an instant payout request

    Used as input to CreateInstantPayout use case.
    """

    cast_id: int = Field(
        ...,
        description="Cast requesting the payout"
    )

    amount_yen: int = Field(
        ...,
        gt=0,
        description="Requested gross amount in yen"
    )

    memo: Optional[str] = Field(
        default=None,
        max_length=500,
        description="Free text shown to administrators"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "cast_id": 7,
                "amount_yen": 10000,
                "memo": "Rent"
            }
        }


class FinalizePayoutCommandDTO(BaseModel):
    payout_id: int
    note: Optional[str] = Field(default=None, max_length=500)


class CastPayoutDTO(BaseModel):
    id: int
    cast_id: int
    type: str
    status: str
    closing_month: str
    period_start: date
    period_end: date
    total_points: int
    conversion_rate: Decimal
    gross_amount_yen: int
    fee_rate: Decimal
    fee_amount_yen: int
    net_amount_yen: int
    transaction_count: int
    scheduled_payout_date: date
    paid_at: Optional[datetime] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime


class ClosePeriodResultDTO(BaseModel):
    """Outcome of one monthly closing run"""

    closing_month: str
    period_start: date
    period_end: date
    created: int = Field(..., description="Scheduled payouts created by this run")
    skipped: int
    failed: int
    payout_ids: list[int] = Field(default_factory=list)


class ProcessDuePayoutsResultDTO(BaseModel):
    run_date: date
    dispatched: int
    waiting: int = Field(..., description="Left pending until the cast's account is ready")
    failed: int
    total: int


class CastPayoutSummaryDTO(BaseModel):
    """Cast dashboard summary"""

    cast_id: int
    grade: Optional[str] = None
    conversion_rate: Decimal
    scheduled_fee_rate: Decimal
    instant_fee_rate: Decimal
    unsettled_points: int
    unsettled_amount_yen: int
    instant_available_points: int
    instant_available_amount_yen: int
    instant_min_amount_yen: int
    payouts_enabled: bool
    upcoming_payout: Optional[CastPayoutDTO] = None
    recent_history: list[CastPayoutDTO] = Field(default_factory=list)


def to_payout_dto(payout: CastPayout) -> CastPayoutDTO:
    return CastPayoutDTO(
        id=payout.id,
        cast_id=payout.cast_id,
        type=payout.type.value if hasattr(payout.type, "value") else payout.type,
        status=payout.status.value if hasattr(payout.status, "value") else payout.status,
        closing_month=payout.closing_month,
        period_start=payout.period_start,
        period_end=payout.period_end,
        total_points=payout.total_points,
        conversion_rate=payout.conversion_rate,
        gross_amount_yen=payout.gross_amount_yen,
        fee_rate=payout.fee_rate,
        fee_amount_yen=payout.fee_amount_yen,
        net_amount_yen=payout.net_amount_yen,
        transaction_count=payout.transaction_count,
        scheduled_payout_date=payout.scheduled_payout_date,
        paid_at=payout.paid_at,
        metadata=dict(payout.meta or {}),
        created_at=payout.created_at,
        updated_at=payout.updated_at,
    )
