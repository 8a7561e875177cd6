"""Points / Yen Conversion

Pure arithmetic shared by the payment and payout engines. Decimal is used
throughout so ceil/floor stay exact for rates like 1.2 that have no exact
binary representation.
"""

import math
from dataclasses import dataclass
from decimal import Decimal, ROUND_CEILING, ROUND_FLOOR
from typing import Union

Number = Union[int, float, str, Decimal]

MIN_RATE = Decimal("0.0001")
DEFAULT_TAX_RATE = Decimal("0.1")
DEFAULT_MINIMUM_CHARGE_YEN = 100


def _d(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() keeps 1.2 as 1.2 instead of 1.19999...
    return Decimal(str(value))


def _ceil(value: Decimal) -> int:
    return int(value.to_integral_value(rounding=ROUND_CEILING))


def _floor(value: Decimal) -> int:
    return int(value.to_integral_value(rounding=ROUND_FLOOR))


def points_to_yen(points: int, rate: Number) -> int:
    """Yen charged for points (rounded up)"""
    return _ceil(_d(points) * _d(rate))


def yen_to_points(yen: int, rate: Number) -> int:
    """Points needed to cover a yen amount (rounded up)"""
    return _ceil(_d(yen) / max(_d(rate), MIN_RATE))


def points_for_payment(yen: int, rate: Number) -> int:
    """Points granted for a settled yen amount (rounded down)"""
    return _floor(_d(yen) / max(_d(rate), MIN_RATE))


def points_to_payout_yen(points: int, rate: Number) -> int:
    """Gross payout yen for earned points (rounded down, never overpays)"""
    return _floor(_d(points) * _d(rate))


def apply_consumption_tax(yen: int, tax_rate: Number = DEFAULT_TAX_RATE) -> int:
    return _ceil(_d(yen) * (1 + _d(tax_rate)))


def clamp_minimum_charge(yen: int, minimum: int = DEFAULT_MINIMUM_CHARGE_YEN) -> int:
    return max(yen, minimum)


def split_fee(gross: int, fee_rate: Number) -> tuple[int, int]:
    """
    Split a gross amount into (fee, net)

    fee = floor(gross * fee_rate), net = max(0, gross - fee)
    """
    fee = _floor(_d(gross) * _d(fee_rate))
    return fee, max(0, gross - fee)


@dataclass(frozen=True)
class ChargeBreakdown:
    points: int
    conversion_rate: Decimal
    base_amount_yen: int
    tax_amount_yen: int
    amount_yen: int


def charge_breakdown(
    points: int,
    rate: Number,
    tax_rate: Number = DEFAULT_TAX_RATE,
    minimum_charge: int = DEFAULT_MINIMUM_CHARGE_YEN,
) -> ChargeBreakdown:
    """
    Card amount for a point shortfall: points -> yen (ceil) -> tax (ceil)
    -> clamp to the minimum charge
    """
    base = points_to_yen(points, rate)
    taxed = apply_consumption_tax(base, tax_rate)
    return ChargeBreakdown(
        points=points,
        conversion_rate=_d(rate),
        base_amount_yen=base,
        tax_amount_yen=taxed - base,
        amount_yen=clamp_minimum_charge(taxed, minimum_charge),
    )


def max_instant_points(unsettled_points: int, max_ratio: Number) -> int:
    """Largest number of points an instant payout may consume"""
    if unsettled_points <= 0:
        return 0
    return math.floor(_d(unsettled_points) * _d(max_ratio))
