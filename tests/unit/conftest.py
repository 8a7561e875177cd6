import pytest
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from src.domain.cast import Cast
from src.domain.guest import Guest
from src.domain.payout_policy import PayoutPolicy


@pytest.fixture
def mock_uow():
    """Mock unit of work"""
    uow = MagicMock()
    uow.__aenter__ = AsyncMock(return_value=uow)
    uow.__aexit__ = AsyncMock()
    uow.commit = AsyncMock()
    uow.rollback = AsyncMock()
    return uow


@pytest.fixture
def mock_notifier():
    notifier = MagicMock()
    notifier.notify = AsyncMock(return_value=True)
    return notifier


@pytest.fixture
def policy():
    """Policy with a flat 10% scheduled fee and 8% instant fee"""
    return PayoutPolicy(
        yen_per_point=Decimal("1.2"),
        scheduled_fee_rates={"default": Decimal("0.1")},
        instant_fee_rates={"default": Decimal("0.08")},
    )


@pytest.fixture
def sample_guest():
    return Guest(
        id=42,
        nickname="guest42",
        points=500,
        grade="green",
        grade_points=0,
        stripe_customer_id="cus_123",
    )


@pytest.fixture
def sample_cast():
    return Cast(
        id=7,
        nickname="cast7",
        points=50000,
        grade="bronze",
        stripe_connect_account_id="acct_123",
        payouts_enabled=True,
    )
