"""Unit tests for guest grade recalculation

Tests cover:
- grade_points from buy rows, grade from the ladder
- Multi-step jumps
- grade_updated_at only touched on change
- Batch run: chunked commits, per-guest failures, upgrade notifications
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from src.app.services.notification_service import NotificationCategory
from src.app.use_cases.grades.recalculate_all_guest_grades import RecalculateAllGuestGrades
from src.app.use_cases.grades.recalculate_guest_grade import RecalculateGuestGrade
from src.domain.guest import Guest
from src.domain.point_transaction import PointTransactionType


@pytest.fixture
def mock_guest_repo(sample_guest):
    repo = MagicMock()
    repo.get_by_id = AsyncMock(return_value=sample_guest)
    repo.save = AsyncMock()
    return repo


@pytest.fixture
def mock_transaction_repo():
    repo = MagicMock()
    repo.sum_for_guest = AsyncMock(return_value=0)
    return repo


@pytest.fixture
def use_case(mock_uow, mock_guest_repo, mock_transaction_repo):
    return RecalculateGuestGrade(mock_uow, mock_guest_repo, mock_transaction_repo)


@pytest.mark.asyncio
class TestRecalculateGuestGrade:

    async def test_multi_step_upgrade(
        self, use_case, mock_transaction_repo, sample_guest, mock_uow
    ):
        """
        Given: A green guest whose purchases total 1,200,000 points
        When: The grade is recalculated
        Then: The guest jumps straight to gold, 4,800,000 short of platinum
        """
        # Arrange
        mock_transaction_repo.sum_for_guest = AsyncMock(return_value=1_200_000)

        # Act
        result = await use_case.execute(42)

        # Assert
        assert result.is_ok()
        dto = result.value
        assert dto.previous_grade == "green"
        assert dto.grade == "gold"
        assert dto.changed is True
        assert dto.upgraded is True
        assert dto.next_grade == "platinum"
        assert dto.points_to_next_grade == 4_800_000
        assert sample_guest.grade == "gold"
        assert sample_guest.grade_points == 1_200_000
        assert sample_guest.grade_updated_at is not None
        mock_transaction_repo.sum_for_guest.assert_awaited_once_with(42, [PointTransactionType.BUY])
        mock_uow.commit.assert_called_once()

    async def test_unchanged_grade_keeps_timestamp(
        self, use_case, mock_transaction_repo, sample_guest, mock_guest_repo
    ):
        # Arrange
        mock_transaction_repo.sum_for_guest = AsyncMock(return_value=50_000)
        sample_guest.grade_updated_at = None

        # Act
        result = await use_case.execute(42)

        # Assert
        assert result.value.changed is False
        assert sample_guest.grade_points == 50_000
        assert sample_guest.grade_updated_at is None
        mock_guest_repo.save.assert_awaited_once_with(sample_guest)

    async def test_downgrade_is_not_an_upgrade(self, use_case, mock_transaction_repo, sample_guest):
        # Arrange
        sample_guest.grade = "silver"
        mock_transaction_repo.sum_for_guest = AsyncMock(return_value=150_000)

        # Act
        result = await use_case.execute(42)

        # Assert
        assert result.value.grade == "orange"
        assert result.value.changed is True
        assert result.value.upgraded is False

    async def test_guest_not_found(self, use_case, mock_guest_repo):
        # Arrange
        mock_guest_repo.get_by_id = AsyncMock(return_value=None)

        # Act
        result = await use_case.execute(999)

        # Assert
        assert result.error.code == "GUEST_NOT_FOUND"


@pytest.mark.asyncio
class TestRecalculateAllGuestGrades:

    async def test_batch_in_chunks(
        self, mock_uow, mock_guest_repo, mock_transaction_repo, mock_notifier
    ):
        """
        Given: Three guests read in chunks of two, one crossing into orange
        When: The batch runs
        Then: Each chunk commits, one upgrade is reported and notified
        """
        # Arrange
        guests = [Guest(id=i, nickname=f"g{i}", points=0, grade="green", grade_points=0) for i in (1, 2, 3)]
        mock_guest_repo.list_page = AsyncMock(side_effect=[guests[:2], guests[2:]])
        mock_transaction_repo.sum_for_guest = AsyncMock(side_effect=[0, 120_000, 10])
        recalculate = RecalculateGuestGrade(mock_uow, mock_guest_repo, mock_transaction_repo)
        use_case = RecalculateAllGuestGrades(mock_uow, recalculate, mock_notifier, chunk_size=2)

        # Act
        result = await use_case.execute()

        # Assert
        assert result.is_ok()
        dto = result.value
        assert dto.total_guests == 3
        assert dto.changed == 1
        assert dto.upgraded == 1
        assert dto.failed == 0
        assert dto.upgrades[0].guest_id == 2
        assert mock_uow.commit.call_count == 2
        notify_args = mock_notifier.notify.call_args.args
        assert notify_args[0] == 2
        assert notify_args[2] == NotificationCategory.GRADE_UPGRADED

    async def test_failing_guest_counted(self, mock_uow, mock_guest_repo, mock_transaction_repo):
        # Arrange
        guests = [Guest(id=i, nickname=f"g{i}", points=0, grade="green", grade_points=0) for i in (1, 2)]
        mock_guest_repo.list_page = AsyncMock(return_value=guests)
        mock_transaction_repo.sum_for_guest = AsyncMock(side_effect=[Exception("deadlock"), 0])
        recalculate = RecalculateGuestGrade(mock_uow, mock_guest_repo, mock_transaction_repo)
        use_case = RecalculateAllGuestGrades(mock_uow, recalculate)

        # Act
        result = await use_case.execute()

        # Assert
        assert result.value.total_guests == 2
        assert result.value.failed == 1
