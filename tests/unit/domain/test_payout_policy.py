"""Unit tests for PayoutPolicy"""

import pytest
from decimal import Decimal
from types import SimpleNamespace
from pydantic import ValidationError
from src.domain.payout_policy import PayoutPolicy


class TestFeeResolution:

    def test_grade_lookup_is_case_insensitive(self):
        policy = PayoutPolicy()

        assert policy.scheduled_fee_rate("Gold") == Decimal("0.01")
        assert policy.instant_fee_rate("gold") == Decimal("0.035")

    def test_unknown_grade_falls_back_to_default(self):
        policy = PayoutPolicy()

        assert policy.scheduled_fee_rate("green") == Decimal("0.025")
        assert policy.instant_fee_rate(None) == Decimal("0.08")


class TestFromConfig:

    def test_reads_config_values(self):
        config = SimpleNamespace(
            YEN_PER_POINT=1.5,
            INSTANT_MIN_AMOUNT_YEN=3000,
            SCHEDULED_FEE_RATES={"Gold": 0.02},
            PLATFORM_TIMEZONE="UTC",
        )

        policy = PayoutPolicy.from_config(config)

        assert policy.yen_per_point == Decimal("1.5")
        assert policy.instant_min_amount_yen == 3000
        assert policy.scheduled_fee_rate("gold") == Decimal("0.02")
        assert policy.scheduled_fee_rate("silver") == Decimal("0.025")
        assert policy.timezone == "UTC"

    def test_missing_values_use_defaults(self):
        policy = PayoutPolicy.from_config(SimpleNamespace())

        assert policy.instant_max_ratio == Decimal("0.5")
        assert policy.capture_delay_days == 2

    def test_policy_is_frozen(self):
        policy = PayoutPolicy()

        with pytest.raises(ValidationError):
            policy.yen_per_point = Decimal("2")
