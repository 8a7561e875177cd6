"""Unit tests for CloseMonthlyPeriod use case

Tests cover:
- One scheduled payout per cast with fee and net from the grade table
- Re-runs for an already closed month create nothing
- Casts with no positive balance are skipped
- A failing cast does not stop the run
"""

import pytest
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from src.app.use_cases.payouts.close_monthly_period import CloseMonthlyPeriod
from src.domain.cast_payout import CastPayoutStatus, CastPayoutType
from tests.unit.factories import make_earning


@pytest.fixture
def january_rows():
    return [
        make_earning(1, 20000, cast_id=7),
        make_earning(2, 20000, cast_id=7),
        make_earning(3, 10000, cast_id=7),
    ]


@pytest.fixture
def mock_transaction_repo(january_rows):
    repo = MagicMock()
    repo.find_casts_with_unclaimed = AsyncMock(return_value=[7])
    repo.get_unclaimed_for_cast = AsyncMock(return_value=january_rows)
    repo.claim = AsyncMock(return_value=len(january_rows))
    return repo


@pytest.fixture
def mock_payout_repo():
    repo = MagicMock()
    repo.exists_for_month = AsyncMock(return_value=False)

    async def create(payout):
        payout.id = 11
        return payout

    repo.create = AsyncMock(side_effect=create)
    return repo


@pytest.fixture
def mock_cast_repo(sample_cast):
    repo = MagicMock()
    repo.get_by_id = AsyncMock(return_value=sample_cast)
    return repo


@pytest.fixture
def use_case(mock_uow, mock_transaction_repo, mock_payout_repo, mock_cast_repo, policy):
    return CloseMonthlyPeriod(mock_uow, mock_transaction_repo, mock_payout_repo, mock_cast_repo, policy)


@pytest.mark.asyncio
class TestCloseMonthlyPeriod:

    async def test_creates_scheduled_payout(
        self, use_case, mock_payout_repo, mock_transaction_repo, mock_uow
    ):
        """
        Given: A cast with 50000 unsettled points earned in January 2025
        When: January is closed at 1.2 yen/point and a 10% fee
        Then: One scheduled payout of 60000 gross, 6000 fee, 54000 net is created
              for 2025-02-28 and all three rows are claimed
        """
        # Act
        result = await use_case.execute(period_end=date(2025, 1, 31))

        # Assert
        assert result.is_ok()
        dto = result.value
        assert dto.closing_month == "2025-01"
        assert dto.period_start == date(2025, 1, 1)
        assert dto.created == 1
        assert dto.payout_ids == [11]

        payout = mock_payout_repo.create.call_args.args[0]
        assert payout.type == CastPayoutType.SCHEDULED
        assert payout.status == CastPayoutStatus.SCHEDULED
        assert payout.total_points == 50000
        assert payout.gross_amount_yen == 60000
        assert payout.fee_rate == Decimal("0.1")
        assert payout.fee_amount_yen == 6000
        assert payout.net_amount_yen == 54000
        assert payout.transaction_count == 3
        assert payout.scheduled_payout_date == date(2025, 2, 28)
        assert payout.meta["source"] == "auto-close"

        mock_transaction_repo.claim.assert_awaited_once_with([1, 2, 3], 11)
        mock_uow.commit.assert_called_once()

    async def test_rerun_creates_nothing(self, use_case, mock_payout_repo, mock_transaction_repo):
        # Arrange
        mock_payout_repo.exists_for_month = AsyncMock(return_value=True)

        # Act
        result = await use_case.execute(period_end=date(2025, 1, 31))

        # Assert
        assert result.value.created == 0
        assert result.value.skipped == 1
        mock_payout_repo.create.assert_not_called()
        mock_transaction_repo.claim.assert_not_called()

    async def test_non_positive_balance_skipped(
        self, use_case, mock_transaction_repo, mock_payout_repo
    ):
        # Arrange
        mock_transaction_repo.get_unclaimed_for_cast = AsyncMock(
            return_value=[make_earning(1, 500), make_earning(2, -500)]
        )

        # Act
        result = await use_case.execute(period_end=date(2025, 1, 31))

        # Assert
        assert result.value.skipped == 1
        mock_payout_repo.create.assert_not_called()

    async def test_grade_fee_applied(self, mock_uow, mock_transaction_repo, mock_payout_repo, mock_cast_repo):
        """
        Given: Built-in fee tables and a bronze cast
        When: The month is closed
        Then: The 2% bronze scheduled fee applies
        """
        # Arrange
        from src.domain.payout_policy import PayoutPolicy
        use_case = CloseMonthlyPeriod(
            mock_uow, mock_transaction_repo, mock_payout_repo, mock_cast_repo, PayoutPolicy()
        )

        # Act
        await use_case.execute(period_end=date(2025, 1, 31))

        # Assert
        payout = mock_payout_repo.create.call_args.args[0]
        assert payout.fee_rate == Decimal("0.02")
        assert payout.fee_amount_yen == 1200
        assert payout.net_amount_yen == 58800

    async def test_claim_mismatch_rolls_back_cast(
        self, use_case, mock_transaction_repo, mock_uow
    ):
        # Arrange
        mock_transaction_repo.claim = AsyncMock(return_value=2)

        # Act
        result = await use_case.execute(period_end=date(2025, 1, 31))

        # Assert
        assert result.is_ok()
        assert result.value.failed == 1
        assert result.value.created == 0
        mock_uow.rollback.assert_called_once()
        mock_uow.commit.assert_not_called()

    async def test_one_cast_failing_does_not_stop_others(
        self, use_case, mock_transaction_repo, mock_cast_repo, sample_cast
    ):
        # Arrange
        mock_transaction_repo.find_casts_with_unclaimed = AsyncMock(return_value=[7, 8])
        mock_transaction_repo.get_unclaimed_for_cast = AsyncMock(
            side_effect=[Exception("lock timeout"), [make_earning(4, 1000, cast_id=8)]]
        )
        mock_transaction_repo.claim = AsyncMock(return_value=1)

        # Act
        result = await use_case.execute(period_end=date(2025, 1, 31))

        # Assert
        assert result.value.failed == 1
        assert result.value.created == 1

    async def test_candidate_query_failure(self, use_case, mock_transaction_repo):
        # Arrange
        mock_transaction_repo.find_casts_with_unclaimed = AsyncMock(side_effect=Exception("Database error"))

        # Act
        result = await use_case.execute(period_end=date(2025, 1, 31))

        # Assert
        assert result.is_err()
        assert result.error.code == "CLOSE_MONTHLY_PERIOD_FAILED"
