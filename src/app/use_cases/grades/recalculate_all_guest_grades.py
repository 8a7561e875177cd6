"""RecalculateAllGuestGrades Use Case

Batch grade refresh over every guest, in chunks.
"""

import logging
from typing import Optional
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.notification_service import (
    NotificationCategory,
    NotificationService,
    notify_safely,
)
from src.domain.grade import GRADE_NAMES
from .recalculate_guest_grade import RecalculateGuestGrade
from .dtos import GradeBatchResultDTO, GuestGradeDTO

logger = logging.getLogger(__name__)

CHUNK_SIZE = 100


class RecalculateAllGuestGrades:
    """
    Use Case: Recalculate every guest's grade

    Each chunk is committed on its own. A guest whose recalculation raises
    is logged and counted as failed; the batch moves on.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        recalculate: RecalculateGuestGrade,
        notifier: Optional[NotificationService] = None,
        chunk_size: int = CHUNK_SIZE,
    ):
        self.uow = uow
        self.recalculate = recalculate
        self.notifier = notifier
        self.chunk_size = chunk_size

    async def execute(self) -> Result[GradeBatchResultDTO]:
        total = 0
        changed = 0
        failed = 0
        upgrades: list[GuestGradeDTO] = []
        offset = 0

        try:
            while True:
                guests = await self.recalculate.guest_repo.list_page(offset, self.chunk_size)
                if not guests:
                    break
                offset += len(guests)

                chunk_upgrades: list[GuestGradeDTO] = []
                for guest in guests:
                    total += 1
                    try:
                        result = await self.recalculate.apply(guest)
                    except Exception as e:
                        failed += 1
                        logger.error(f"Grade recalculation failed for guest {guest.id}: {e}")
                        continue
                    if result.changed:
                        changed += 1
                    if result.upgraded:
                        chunk_upgrades.append(result)

                await self.uow.commit()
                upgrades.extend(chunk_upgrades)

                for upgrade in chunk_upgrades:
                    await notify_safely(
                        self.notifier,
                        upgrade.guest_id,
                        "guest",
                        NotificationCategory.GRADE_UPGRADED,
                        f"Your grade is now {GRADE_NAMES.get(upgrade.grade, upgrade.grade)}",
                        {"grade": upgrade.grade, "grade_points": upgrade.grade_points},
                    )

                if len(guests) < self.chunk_size:
                    break

            logger.info(
                f"Grade batch complete: {total} guests, {changed} changed, "
                f"{len(upgrades)} upgraded, {failed} failed"
            )

            return Return.ok(
                GradeBatchResultDTO(
                    total_guests=total,
                    changed=changed,
                    upgraded=len(upgrades),
                    failed=failed,
                    upgrades=upgrades,
                )
            )

        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="RECALCULATE_ALL_GRADES_FAILED",
                    message="Failed to recalculate guest grades",
                    reason=str(e),
                )
            )
