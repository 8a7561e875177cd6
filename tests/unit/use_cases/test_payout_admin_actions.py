"""Unit tests for administrator payout actions

Tests cover:
- ApproveInstantPayout: balance check and dispatch
- RejectInstantPayout: rows released
- RetryPayout: only from failed, retry_count incremented
- CancelPayout: rows released, linked payment canceled
- FinalizePayout: cast points settled, payout and payment paid
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from libs.result import Error
from src.app.services.notification_service import NotificationCategory
from src.app.services.payment_gateway import PlatformBalance
from src.app.use_cases.payouts.approve_instant_payout import ApproveInstantPayout
from src.app.use_cases.payouts.cancel_payout import CancelPayout
from src.app.use_cases.payouts.dtos import FinalizePayoutCommandDTO
from src.app.use_cases.payouts.finalize_payout import FinalizePayout
from src.app.use_cases.payouts.payout_dispatcher import DispatchOutcome
from src.app.use_cases.payouts.reject_instant_payout import RejectInstantPayout
from src.app.use_cases.payouts.retry_payout import RetryPayout
from src.domain.cast_payout import CastPayoutStatus, CastPayoutType
from src.domain.payment import PaymentStatus
from tests.unit.factories import make_card_payment, make_payout


@pytest.fixture
def mock_payout_repo():
    repo = MagicMock()
    repo.get_by_id = AsyncMock(return_value=None)
    repo.save = AsyncMock()
    return repo


@pytest.fixture
def mock_cast_repo(sample_cast):
    repo = MagicMock()
    repo.get_by_id = AsyncMock(return_value=sample_cast)
    repo.save = AsyncMock()
    return repo


@pytest.fixture
def mock_transaction_repo():
    repo = MagicMock()
    repo.release = AsyncMock(return_value=3)
    return repo


@pytest.fixture
def mock_payment_repo():
    repo = MagicMock()
    repo.get_by_cast_payout_id = AsyncMock(return_value=None)
    repo.save = AsyncMock()
    return repo


@pytest.fixture
def mock_gateway():
    gateway = MagicMock()
    gateway.get_platform_balance = AsyncMock(return_value=PlatformBalance(available={"jpy": 100000}))
    return gateway


@pytest.fixture
def mock_dispatcher():
    dispatcher = MagicMock()
    dispatcher.dispatch = AsyncMock(return_value=DispatchOutcome(dispatched=True))
    return dispatcher


def instant_payout(status: CastPayoutStatus):
    return make_payout(status=status, payout_type=CastPayoutType.INSTANT)


@pytest.mark.asyncio
class TestApproveInstantPayout:

    @pytest.fixture
    def use_case(self, mock_uow, mock_payout_repo, mock_cast_repo, mock_gateway, mock_dispatcher, mock_notifier):
        return ApproveInstantPayout(
            mock_uow, mock_payout_repo, mock_cast_repo, mock_gateway, mock_dispatcher, mock_notifier
        )

    async def test_approve_dispatches(self, use_case, mock_payout_repo, mock_dispatcher, mock_uow):
        # Arrange
        payout = instant_payout(CastPayoutStatus.PENDING_APPROVAL)
        mock_payout_repo.get_by_id = AsyncMock(return_value=payout)

        # Act
        result = await use_case.execute(1)

        # Assert
        assert result.is_ok()
        assert payout.status == CastPayoutStatus.PROCESSING
        assert "approved_at" in payout.meta
        assert mock_dispatcher.dispatch.call_args.kwargs["instant"] is True
        mock_uow.commit.assert_called_once()

    async def test_known_short_balance_refused(
        self, use_case, mock_payout_repo, mock_gateway, mock_dispatcher
    ):
        """
        Given: A 54000 yen net request and 1000 yen on the platform account
        When: An administrator approves it
        Then: INSUFFICIENT_PLATFORM_BALANCE and the request stays pending_approval
        """
        # Arrange
        payout = instant_payout(CastPayoutStatus.PENDING_APPROVAL)
        mock_payout_repo.get_by_id = AsyncMock(return_value=payout)
        mock_gateway.get_platform_balance = AsyncMock(return_value=PlatformBalance(available={"jpy": 1000}))

        # Act
        result = await use_case.execute(1)

        # Assert
        assert result.error.code == "INSUFFICIENT_PLATFORM_BALANCE"
        assert payout.status == CastPayoutStatus.PENDING_APPROVAL
        mock_dispatcher.dispatch.assert_not_called()

    async def test_unknown_balance_does_not_block(
        self, use_case, mock_payout_repo, mock_gateway
    ):
        # Arrange
        mock_payout_repo.get_by_id = AsyncMock(return_value=instant_payout(CastPayoutStatus.PENDING_APPROVAL))
        mock_gateway.get_platform_balance = AsyncMock(side_effect=Exception("timeout"))

        # Act
        result = await use_case.execute(1)

        # Assert
        assert result.is_ok()

    async def test_dispatch_failure_recorded(
        self, use_case, mock_payout_repo, mock_dispatcher, mock_notifier
    ):
        # Arrange
        payout = instant_payout(CastPayoutStatus.PENDING_APPROVAL)
        mock_payout_repo.get_by_id = AsyncMock(return_value=payout)
        mock_dispatcher.dispatch = AsyncMock(
            return_value=DispatchOutcome(
                dispatched=False, error=Error(code="GATEWAY_ERROR", message="Payout processing failed")
            )
        )

        # Act
        result = await use_case.execute(1)

        # Assert
        assert result.error.code == "GATEWAY_ERROR"
        assert payout.meta["approval_failure_reason"] == "Payout processing failed"
        assert mock_notifier.notify.call_args.args[2] == NotificationCategory.PAYOUT_FAILED

    async def test_wrong_state(self, use_case, mock_payout_repo):
        # Arrange
        mock_payout_repo.get_by_id = AsyncMock(return_value=instant_payout(CastPayoutStatus.PROCESSING))

        # Act
        result = await use_case.execute(1)

        # Assert
        assert result.error.code == "INVALID_PAYOUT_STATE"

    async def test_not_found(self, use_case):
        # Act
        result = await use_case.execute(999)

        # Assert
        assert result.error.code == "PAYOUT_NOT_FOUND"


@pytest.mark.asyncio
class TestRejectInstantPayout:

    @pytest.fixture
    def use_case(self, mock_uow, mock_payout_repo, mock_transaction_repo, mock_notifier):
        return RejectInstantPayout(mock_uow, mock_payout_repo, mock_transaction_repo, mock_notifier)

    async def test_reject_releases_rows(
        self, use_case, mock_payout_repo, mock_transaction_repo, mock_notifier
    ):
        # Arrange
        payout = instant_payout(CastPayoutStatus.PENDING_APPROVAL)
        mock_payout_repo.get_by_id = AsyncMock(return_value=payout)

        # Act
        result = await use_case.execute(1, reason="Suspicious activity")

        # Assert
        assert result.is_ok()
        assert payout.status == CastPayoutStatus.REJECTED
        assert payout.meta["rejection_reason"] == "Suspicious activity"
        assert payout.meta["released_transactions"] == 3
        mock_transaction_repo.release.assert_awaited_once_with(1)
        assert "Suspicious activity" in mock_notifier.notify.call_args.args[3]

    async def test_only_pending_approval(self, use_case, mock_payout_repo, mock_transaction_repo):
        # Arrange
        mock_payout_repo.get_by_id = AsyncMock(return_value=make_payout())

        # Act
        result = await use_case.execute(1)

        # Assert
        assert result.error.code == "INVALID_PAYOUT_STATE"
        mock_transaction_repo.release.assert_not_called()


@pytest.mark.asyncio
class TestRetryPayout:

    @pytest.fixture
    def use_case(self, mock_uow, mock_payout_repo, mock_cast_repo, mock_dispatcher):
        return RetryPayout(mock_uow, mock_payout_repo, mock_cast_repo, mock_dispatcher)

    async def test_retry_failed_payout(self, use_case, mock_payout_repo, mock_dispatcher):
        # Arrange
        payout = make_payout(status=CastPayoutStatus.FAILED, meta={"retry_count": 1})
        mock_payout_repo.get_by_id = AsyncMock(return_value=payout)

        # Act
        result = await use_case.execute(1)

        # Assert
        assert result.is_ok()
        assert payout.status == CastPayoutStatus.PROCESSING
        assert payout.retry_count == 2
        assert "retried_at" in payout.meta
        assert mock_dispatcher.dispatch.call_args.kwargs["instant"] is False

    async def test_instant_retry_uses_instant_rail(self, use_case, mock_payout_repo, mock_dispatcher):
        # Arrange
        mock_payout_repo.get_by_id = AsyncMock(return_value=instant_payout(CastPayoutStatus.FAILED))

        # Act
        await use_case.execute(1)

        # Assert
        assert mock_dispatcher.dispatch.call_args.kwargs["instant"] is True

    async def test_only_failed(self, use_case, mock_payout_repo, mock_dispatcher):
        # Arrange
        mock_payout_repo.get_by_id = AsyncMock(return_value=make_payout(status=CastPayoutStatus.PAID))

        # Act
        result = await use_case.execute(1)

        # Assert
        assert result.error.code == "INVALID_PAYOUT_STATE"
        mock_dispatcher.dispatch.assert_not_called()

    async def test_account_missing(self, use_case, mock_payout_repo, sample_cast):
        # Arrange
        sample_cast.payouts_enabled = False
        mock_payout_repo.get_by_id = AsyncMock(return_value=make_payout(status=CastPayoutStatus.FAILED))

        # Act
        result = await use_case.execute(1)

        # Assert
        assert result.error.code == "CONNECT_ACCOUNT_MISSING"


@pytest.mark.asyncio
class TestCancelPayout:

    @pytest.fixture
    def use_case(self, mock_uow, mock_payout_repo, mock_transaction_repo, mock_payment_repo, mock_notifier):
        return CancelPayout(mock_uow, mock_payout_repo, mock_transaction_repo, mock_payment_repo, mock_notifier)

    async def test_cancel_releases_rows(
        self, use_case, mock_payout_repo, mock_transaction_repo, mock_uow
    ):
        """
        Given: A scheduled payout that claimed 3 ledger rows
        When: It is cancelled
        Then: All 3 rows are released and the payout is cancelled
        """
        # Arrange
        payout = make_payout()
        mock_payout_repo.get_by_id = AsyncMock(return_value=payout)

        # Act
        result = await use_case.execute(1, reason="Duplicate")

        # Assert
        assert result.is_ok()
        assert result.value.status == "cancelled"
        assert payout.meta["released_transactions"] == 3
        assert payout.meta["cancel_reason"] == "Duplicate"
        mock_transaction_repo.release.assert_awaited_once_with(1)
        mock_uow.commit.assert_called_once()

    async def test_pending_payment_canceled(self, use_case, mock_payout_repo, mock_payment_repo):
        # Arrange
        mock_payout_repo.get_by_id = AsyncMock(return_value=make_payout(status=CastPayoutStatus.PENDING))
        payment = make_card_payment(id=300)
        mock_payment_repo.get_by_cast_payout_id = AsyncMock(return_value=payment)

        # Act
        await use_case.execute(1)

        # Assert
        assert payment.status == PaymentStatus.CANCELED

    async def test_processing_not_cancellable(self, use_case, mock_payout_repo, mock_transaction_repo):
        # Arrange
        mock_payout_repo.get_by_id = AsyncMock(return_value=make_payout(status=CastPayoutStatus.PROCESSING))

        # Act
        result = await use_case.execute(1)

        # Assert
        assert result.error.code == "INVALID_PAYOUT_STATE"
        mock_transaction_repo.release.assert_not_called()


@pytest.mark.asyncio
class TestFinalizePayout:

    @pytest.fixture
    def use_case(self, mock_uow, mock_payout_repo, mock_cast_repo, mock_payment_repo):
        return FinalizePayout(mock_uow, mock_payout_repo, mock_cast_repo, mock_payment_repo)

    async def test_finalize_processing_payout(
        self, use_case, mock_payout_repo, mock_payment_repo, sample_cast, mock_uow
    ):
        """
        Given: A processing payout of 50000 points and a cast holding 50000
        When: It is marked paid
        Then: Cast points drop to 0, payout and linked payment are paid
        """
        # Arrange
        payout = make_payout(status=CastPayoutStatus.PROCESSING)
        mock_payout_repo.get_by_id = AsyncMock(return_value=payout)
        payment = make_card_payment(id=300)
        mock_payment_repo.get_by_cast_payout_id = AsyncMock(return_value=payment)

        # Act
        result = await use_case.execute(FinalizePayoutCommandDTO(payout_id=1, note="Bank confirmed"))

        # Assert
        assert result.is_ok()
        assert result.value.status == "paid"
        assert result.value.paid_at is not None
        assert payout.meta["paid_note"] == "Bank confirmed"
        assert sample_cast.points == 0
        assert payment.status == PaymentStatus.PAID
        mock_uow.commit.assert_called_once()

    async def test_cast_points_floored_at_zero(self, use_case, mock_payout_repo, sample_cast):
        # Arrange
        sample_cast.points = 1000
        mock_payout_repo.get_by_id = AsyncMock(return_value=make_payout(status=CastPayoutStatus.FAILED))

        # Act
        await use_case.execute(FinalizePayoutCommandDTO(payout_id=1))

        # Assert
        assert sample_cast.points == 0

    async def test_scheduled_not_finalizable(self, use_case, mock_payout_repo, sample_cast):
        # Arrange
        mock_payout_repo.get_by_id = AsyncMock(return_value=make_payout())

        # Act
        result = await use_case.execute(FinalizePayoutCommandDTO(payout_id=1))

        # Assert
        assert result.error.code == "INVALID_PAYOUT_STATE"
        assert sample_cast.points == 50000
