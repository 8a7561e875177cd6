"""RecalculateGuestGrade Use Case

Derives a guest's grade from cumulative purchased points.
"""

import logging
from datetime import datetime
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.guest_repository import GuestRepository
from src.app.repositories.point_transaction_repository import PointTransactionRepository
from src.domain.grade import determine_grade, grade_rank, next_grade
from src.domain.guest import Guest
from src.domain.point_transaction import PointTransactionType
from .dtos import GuestGradeDTO

logger = logging.getLogger(__name__)


class RecalculateGuestGrade:
    """
    Use Case: Recalculate a guest's grade

    Business Rules:
    1. grade_points = sum of the guest's buy rows
    2. grade = highest ladder step whose threshold grade_points reaches
    3. grade_points is always persisted; grade and grade_updated_at only
       when the grade changes
    4. Multi-step jumps are allowed

    apply() works inside the caller's unit of work and does not commit.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        guest_repo: GuestRepository,
        transaction_repo: PointTransactionRepository,
    ):
        self.uow = uow
        self.guest_repo = guest_repo
        self.transaction_repo = transaction_repo

    async def apply(self, guest: Guest) -> GuestGradeDTO:
        grade_points = await self.transaction_repo.sum_for_guest(
            guest.id, [PointTransactionType.BUY]
        )
        previous = guest.grade
        grade = determine_grade(grade_points)
        changed = grade != previous

        guest.grade_points = grade_points
        if changed:
            guest.grade = grade
            guest.grade_updated_at = datetime.utcnow()
            logger.info(f"Guest {guest.id} grade {previous} -> {grade} ({grade_points} points)")
        await self.guest_repo.save(guest)

        upcoming = next_grade(grade_points)
        return GuestGradeDTO(
            guest_id=guest.id,
            previous_grade=previous,
            grade=grade,
            grade_points=grade_points,
            upgraded=changed and grade_rank(grade) > grade_rank(previous),
            changed=changed,
            next_grade=upcoming[0] if upcoming else None,
            points_to_next_grade=upcoming[1] if upcoming else None,
            grade_updated_at=guest.grade_updated_at,
        )

    async def execute(self, guest_id: int) -> Result[GuestGradeDTO]:
        try:
            guest = await self.guest_repo.get_by_id(guest_id, for_update=True)
            if not guest:
                return Return.err(Error(
                    code="GUEST_NOT_FOUND",
                    message=f"Guest {guest_id} not found",
                ))

            result = await self.apply(guest)
            await self.uow.commit()
            return Return.ok(result)

        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="RECALCULATE_GRADE_FAILED",
                    message="Failed to recalculate guest grade",
                    reason=str(e),
                )
            )
