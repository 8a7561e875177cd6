"""Unit tests for the automatic payment use cases

Tests cover:
- Cards tried in listed order, first authorization wins
- Points credited with +N buy and -N exceeded_pending rows, the latter tagged with the reservation's cast
- Missing customer profile: no Payment, card registration requested
- All cards declined: failed Payment kept for audit, guest and cast notified
- Deferred variant writes a single pending row
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from src.app.services.payment_gateway import ChargeResult, PaymentMethodInfo
from src.app.services.notification_service import NotificationCategory
from src.app.use_cases.payments.dtos import AutomaticPaymentCommandDTO, AutomaticPaymentState
from src.app.use_cases.payments.process_automatic_payment import ProcessAutomaticPayment
from src.app.use_cases.payments.process_automatic_payment_with_pending import (
    ProcessAutomaticPaymentWithPending,
)
from src.domain.payment import PaymentStatus
from src.domain.point_transaction import PointTransactionType
from src.domain.reservation import Reservation


@pytest.fixture
def mock_guest_repo(sample_guest):
    repo = MagicMock()
    repo.get_by_id = AsyncMock(return_value=sample_guest)
    repo.save = AsyncMock()
    return repo


@pytest.fixture
def mock_payment_repo():
    repo = MagicMock()

    async def create(payment):
        payment.id = 100
        return payment

    repo.create = AsyncMock(side_effect=create)
    repo.save = AsyncMock()
    return repo


@pytest.fixture
def mock_transaction_repo():
    repo = MagicMock()
    repo.create = AsyncMock(side_effect=lambda transaction: transaction)
    return repo


@pytest.fixture
def mock_reservation_repo():
    repo = MagicMock()
    repo.get_by_id = AsyncMock(return_value=Reservation(id=1001, guest_id=42, cast_id=7))
    return repo


@pytest.fixture
def three_cards():
    return [
        PaymentMethodInfo(id="pm_1", card_last4="1111", brand="visa"),
        PaymentMethodInfo(id="pm_2", card_last4="2222", brand="visa"),
        PaymentMethodInfo(id="pm_3", card_last4="3333", brand="mastercard"),
    ]


@pytest.fixture
def mock_gateway(three_cards):
    gateway = MagicMock()
    gateway.list_payment_methods = AsyncMock(return_value=three_cards)
    gateway.authorize_charge = AsyncMock(
        side_effect=[
            ChargeResult(success=False, error_message="Your card was declined."),
            ChargeResult(success=True, payment_intent_id="pi_456", status="requires_capture"),
        ]
    )
    return gateway


@pytest.fixture
def grade_recalculator():
    return MagicMock(apply=AsyncMock())


@pytest.fixture
def use_case(
    mock_uow, mock_guest_repo, mock_payment_repo, mock_transaction_repo,
    mock_reservation_repo, mock_gateway, policy, mock_notifier, grade_recalculator,
):
    return ProcessAutomaticPayment(
        mock_uow,
        mock_guest_repo,
        mock_payment_repo,
        mock_transaction_repo,
        mock_reservation_repo,
        mock_gateway,
        policy,
        mock_notifier,
        grade_recalculator=grade_recalculator,
    )


@pytest.fixture
def command():
    return AutomaticPaymentCommandDTO(guest_id=42, required_points=1000, reservation_id=1001)


@pytest.mark.asyncio
class TestProcessAutomaticPaymentSuccess:

    async def test_second_card_authorized(
        self, use_case, command, mock_gateway, mock_uow, sample_guest, grade_recalculator
    ):
        """
        Given: A guest with 500 points and three registered cards, the first declined
        When: A 1000 point shortfall is charged
        Then: 1320 yen is authorized on the second card, the third is never tried
        """
        # Act
        result = await use_case.execute(command)

        # Assert
        assert result.is_ok()
        dto = result.value
        assert dto.success is True
        assert dto.state == AutomaticPaymentState.AUTHORIZED
        assert dto.amount_yen == 1320
        assert dto.base_amount_yen == 1200
        assert dto.tax_amount_yen == 120
        assert dto.new_balance == 1500
        assert dto.stripe_payment_intent_id == "pi_456"
        assert dto.errors == ["card ending in 1111: Your card was declined."]
        assert mock_gateway.authorize_charge.await_count == 2
        assert mock_gateway.authorize_charge.call_args.kwargs["payment_method_id"] == "pm_2"
        assert sample_guest.points == 1500
        grade_recalculator.apply.assert_awaited_once_with(sample_guest)
        mock_uow.commit.assert_called_once()

    async def test_payment_stays_pending_with_capture_time(
        self, use_case, command, mock_payment_repo
    ):
        # Act
        result = await use_case.execute(command)

        # Assert
        payment = mock_payment_repo.create.call_args.args[0]
        assert payment.status == PaymentStatus.PENDING
        assert payment.amount == 1320
        assert payment.is_automatic is True
        assert payment.stripe_payment_intent_id == "pi_456"
        assert payment.points_credited is True
        assert payment.meta["required_points"] == 1000
        assert payment.meta["deduction_type"] == "exceeded_time_shortfall"
        assert payment.expires_at == result.value.scheduled_capture_at

    async def test_buy_and_exceeded_pending_rows_written(
        self, use_case, command, mock_transaction_repo
    ):
        # Act
        await use_case.execute(command)

        # Assert
        rows = [c.args[0] for c in mock_transaction_repo.create.call_args_list]
        assert [(r.transaction_type, r.amount) for r in rows] == [
            (PointTransactionType.BUY, 1000),
            (PointTransactionType.EXCEEDED_PENDING, -1000),
        ]
        assert all(r.payment_id == 100 for r in rows)
        assert all("(capture scheduled)" in r.description for r in rows)

    async def test_exceeded_pending_row_carries_reservation_cast(
        self, use_case, command, mock_transaction_repo, mock_reservation_repo
    ):
        """
        Given: Reservation 1001 belongs to cast 7
        When: The shortfall is charged
        Then: The exceeded_pending row records cast 7 and the buy row stays guest-only
        """
        # Act
        await use_case.execute(command)

        # Assert
        buy, exceeded = [c.args[0] for c in mock_transaction_repo.create.call_args_list]
        assert exceeded.cast_id == 7
        assert exceeded.reservation_id == 1001
        assert buy.cast_id is None
        mock_reservation_repo.get_by_id.assert_awaited_with(1001)

    async def test_reservation_lookup_failure_still_credits(
        self, use_case, command, mock_transaction_repo, mock_reservation_repo
    ):
        # Arrange
        mock_reservation_repo.get_by_id = AsyncMock(side_effect=Exception("connection reset"))

        # Act
        result = await use_case.execute(command)

        # Assert
        assert result.value.success is True
        exceeded = mock_transaction_repo.create.call_args_list[1].args[0]
        assert exceeded.cast_id is None

    async def test_grade_failure_does_not_fail_payment(
        self, use_case, command, grade_recalculator
    ):
        # Arrange
        grade_recalculator.apply = AsyncMock(side_effect=Exception("grade table locked"))

        # Act
        result = await use_case.execute(command)

        # Assert
        assert result.is_ok()
        assert result.value.success is True

    async def test_small_shortfall_clamped_to_minimum_charge(
        self, use_case, mock_gateway
    ):
        """
        Given: A 10 point shortfall (12 yen + tax)
        When: The payment is processed
        Then: The charge is raised to the 100 yen minimum
        """
        # Act
        result = await use_case.execute(
            AutomaticPaymentCommandDTO(guest_id=42, required_points=10, reservation_id=1001)
        )

        # Assert
        assert result.value.amount_yen == 100
        assert mock_gateway.authorize_charge.call_args.kwargs["amount"] == 100


@pytest.mark.asyncio
class TestProcessAutomaticPaymentFailure:

    async def test_guest_not_found(self, use_case, command, mock_guest_repo):
        # Arrange
        mock_guest_repo.get_by_id = AsyncMock(return_value=None)

        # Act
        result = await use_case.execute(command)

        # Assert
        assert result.is_err()
        assert result.error.code == "GUEST_NOT_FOUND"

    async def test_no_customer_profile(
        self, use_case, command, sample_guest, mock_payment_repo, mock_notifier
    ):
        """
        Given: A guest without a payment customer profile
        When: An automatic payment is attempted
        Then: No Payment is written and card registration is requested
        """
        # Arrange
        sample_guest.stripe_customer_id = None

        # Act
        result = await use_case.execute(command)

        # Assert
        assert result.is_ok()
        dto = result.value
        assert dto.success is False
        assert dto.state == AutomaticPaymentState.NO_PAYMENT_METHOD
        assert dto.requires_card_registration is True
        assert dto.payment_id is None
        mock_payment_repo.create.assert_not_called()
        categories = [c.args[2] for c in mock_notifier.notify.call_args_list]
        assert NotificationCategory.PAYMENT_FAILED in categories

    async def test_profile_without_cards(
        self, use_case, command, mock_gateway, mock_payment_repo, mock_uow
    ):
        # Arrange
        mock_gateway.list_payment_methods = AsyncMock(return_value=[])

        # Act
        result = await use_case.execute(command)

        # Assert
        assert result.value.success is False
        assert result.value.state == AutomaticPaymentState.NO_PAYMENT_METHOD
        assert result.value.requires_card_registration is True
        payment = mock_payment_repo.create.call_args.args[0]
        assert payment.status == PaymentStatus.FAILED
        mock_uow.commit.assert_called_once()

    async def test_all_cards_declined(
        self, use_case, command, mock_gateway, mock_payment_repo, mock_transaction_repo,
        mock_notifier, mock_uow, sample_guest,
    ):
        """
        Given: Three cards, every one declined (the last by an exception)
        When: The payment is processed
        Then: The Payment is failed with all card errors, no points are credited,
              guest and cast are notified
        """
        # Arrange
        mock_gateway.authorize_charge = AsyncMock(
            side_effect=[
                ChargeResult(success=False, error_message="Your card was declined."),
                ChargeResult(success=False, error_message="Insufficient funds."),
                Exception("network timeout"),
            ]
        )

        # Act
        result = await use_case.execute(command)

        # Assert
        dto = result.value
        assert dto.success is False
        assert dto.state == AutomaticPaymentState.ALL_CARDS_FAILED
        assert dto.all_cards_failed is True
        assert dto.requires_card_registration is False
        assert dto.payment_id == 100
        assert len(dto.errors) == 3
        assert dto.errors[2] == "card ending in 3333: network timeout"

        payment = mock_payment_repo.create.call_args.args[0]
        assert payment.status == PaymentStatus.FAILED
        assert len(payment.meta["card_errors"]) == 3
        assert "Insufficient funds." in payment.error_message
        mock_transaction_repo.create.assert_not_called()
        assert sample_guest.points == 500
        mock_uow.commit.assert_called_once()
        mock_uow.rollback.assert_not_called()

        notified = [(c.args[0], c.args[1], c.args[2]) for c in mock_notifier.notify.call_args_list]
        assert (42, "guest", NotificationCategory.PAYMENT_FAILED) in notified
        assert (7, "cast", NotificationCategory.RESERVATION_PAYMENT_FAILED) in notified
        assert (42, "guest", NotificationCategory.CHAT_SYSTEM) in notified

    async def test_notifier_failure_ignored(
        self, use_case, command, mock_gateway, mock_notifier
    ):
        # Arrange
        mock_gateway.authorize_charge = AsyncMock(
            return_value=ChargeResult(success=False, error_message="declined")
        )
        mock_notifier.notify = AsyncMock(side_effect=Exception("push service down"))

        # Act
        result = await use_case.execute(command)

        # Assert
        assert result.is_ok()
        assert result.value.all_cards_failed is True

    async def test_unexpected_error_rolls_back(
        self, use_case, command, mock_payment_repo, mock_uow
    ):
        # Arrange
        mock_payment_repo.create = AsyncMock(side_effect=Exception("Database error"))

        # Act
        result = await use_case.execute(command)

        # Assert
        assert result.is_err()
        assert result.error.code == "AUTOMATIC_PAYMENT_FAILED"
        mock_uow.rollback.assert_called_once()


@pytest.mark.asyncio
class TestProcessAutomaticPaymentWithPending:

    @pytest.fixture
    def pending_use_case(
        self, mock_uow, mock_guest_repo, mock_payment_repo, mock_transaction_repo,
        mock_reservation_repo, mock_gateway, policy, mock_notifier,
    ):
        return ProcessAutomaticPaymentWithPending(
            mock_uow,
            mock_guest_repo,
            mock_payment_repo,
            mock_transaction_repo,
            mock_reservation_repo,
            mock_gateway,
            policy,
            mock_notifier,
        )

    async def test_single_pending_row(
        self, pending_use_case, command, mock_transaction_repo, mock_payment_repo,
        mock_notifier, sample_guest,
    ):
        """
        Given: A reservation created with a 1000 point shortfall
        When: The deferred variant authorizes a card
        Then: One +1000 pending row is written and the guest is told when capture happens
        """
        # Act
        result = await pending_use_case.execute(command)

        # Assert
        assert result.is_ok()
        assert result.value.success is True
        rows = [c.args[0] for c in mock_transaction_repo.create.call_args_list]
        assert len(rows) == 1
        assert rows[0].transaction_type == PointTransactionType.PENDING
        assert rows[0].amount == 1000
        assert sample_guest.points == 1500

        payment = mock_payment_repo.create.call_args.args[0]
        assert payment.meta["deduction_type"] == "reservation_shortfall"
        assert payment.meta["capture_method"] == "manual"

        categories = [c.args[2] for c in mock_notifier.notify.call_args_list]
        assert NotificationCategory.PAYMENT_SCHEDULED in categories
