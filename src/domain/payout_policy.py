"""Payout Policy

Immutable bundle of every tunable the payment and payout engines use.
Built once from configuration and injected, so use cases never read
global config.
"""

from decimal import Decimal
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field

DEFAULT_SCHEDULED_FEE_RATES = {
    "platinum": Decimal("0"),
    "gold": Decimal("0.01"),
    "silver": Decimal("0.015"),
    "bronze": Decimal("0.02"),
    "default": Decimal("0.025"),
}

DEFAULT_INSTANT_FEE_RATES = {
    "platinum": Decimal("0.02"),
    "gold": Decimal("0.035"),
    "silver": Decimal("0.05"),
    "bronze": Decimal("0.07"),
    "default": Decimal("0.08"),
}


def _rates(values: Optional[dict[str, Any]], defaults: dict[str, Decimal]) -> dict[str, Decimal]:
    if not values:
        return dict(defaults)
    rates = {str(k).lower(): Decimal(str(v)) for k, v in values.items()}
    rates.setdefault("default", defaults["default"])
    return rates


class PayoutPolicy(BaseModel):
    """Conversion, tax, fee and scheduling parameters"""

    model_config = ConfigDict(frozen=True)

    yen_per_point: Decimal = Field(default=Decimal("1.2"), gt=0)
    consumption_tax_rate: Decimal = Field(default=Decimal("0.1"), ge=0)
    minimum_charge_yen: int = Field(default=100, ge=0)
    capture_delay_days: int = Field(default=2, ge=0)
    exceeded_pending_transfer_days: int = Field(default=2, ge=0)

    instant_min_amount_yen: int = Field(default=5000, ge=0)
    instant_min_points: int = Field(default=1000, ge=0)
    instant_max_ratio: Decimal = Field(default=Decimal("0.5"), ge=0, le=1)
    instant_requires_approval: bool = False

    scheduled_fee_rates: dict[str, Decimal] = Field(
        default_factory=lambda: dict(DEFAULT_SCHEDULED_FEE_RATES)
    )
    instant_fee_rates: dict[str, Decimal] = Field(
        default_factory=lambda: dict(DEFAULT_INSTANT_FEE_RATES)
    )

    scheduled_payout_offset_months: int = Field(default=1, ge=0)
    business_day_adjustment: bool = True
    timezone: str = "Asia/Tokyo"

    def scheduled_fee_rate(self, grade: Optional[str]) -> Decimal:
        return self._lookup(self.scheduled_fee_rates, grade)

    def instant_fee_rate(self, grade: Optional[str]) -> Decimal:
        return self._lookup(self.instant_fee_rates, grade)

    @staticmethod
    def _lookup(rates: dict[str, Decimal], grade: Optional[str]) -> Decimal:
        key = (grade or "default").lower()
        if key in rates:
            return rates[key]
        return rates.get("default", Decimal("0"))

    @classmethod
    def from_config(cls, config: Any) -> "PayoutPolicy":
        """Build from an ApplicationConfig-like object"""
        return cls(
            yen_per_point=Decimal(str(getattr(config, "YEN_PER_POINT", "1.2"))),
            consumption_tax_rate=Decimal(str(getattr(config, "CONSUMPTION_TAX_RATE", "0.1"))),
            minimum_charge_yen=int(getattr(config, "MINIMUM_CHARGE_YEN", 100)),
            capture_delay_days=int(getattr(config, "CAPTURE_DELAY_DAYS", 2)),
            exceeded_pending_transfer_days=int(
                getattr(config, "EXCEEDED_PENDING_TRANSFER_DAYS", 2)
            ),
            instant_min_amount_yen=int(getattr(config, "INSTANT_MIN_AMOUNT_YEN", 5000)),
            instant_min_points=int(getattr(config, "INSTANT_MIN_POINTS", 1000)),
            instant_max_ratio=Decimal(str(getattr(config, "INSTANT_MAX_RATIO", "0.5"))),
            instant_requires_approval=bool(getattr(config, "INSTANT_REQUIRES_APPROVAL", False)),
            scheduled_fee_rates=_rates(
                getattr(config, "SCHEDULED_FEE_RATES", None), DEFAULT_SCHEDULED_FEE_RATES
            ),
            instant_fee_rates=_rates(
                getattr(config, "INSTANT_FEE_RATES", None), DEFAULT_INSTANT_FEE_RATES
            ),
            scheduled_payout_offset_months=int(getattr(config, "SCHEDULED_PAYOUT_OFFSET_MONTHS", 1)),
            business_day_adjustment=bool(getattr(config, "BUSINESS_DAY_ADJUSTMENT", True)),
            timezone=getattr(config, "PLATFORM_TIMEZONE", "Asia/Tokyo"),
        )
