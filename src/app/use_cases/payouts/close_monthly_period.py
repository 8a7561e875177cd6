"""CloseMonthlyPeriod Use Case

Sweeps each cast's unsettled earnings for a closed month into one
scheduled payout.
"""

import logging
from datetime import date, datetime
from typing import Optional
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.cast_repository import CastRepository
from src.app.repositories.cast_payout_repository import CastPayoutRepository
from src.app.repositories.point_transaction_repository import PointTransactionRepository
from src.domain.cast_payout import CastPayout, CastPayoutStatus, CastPayoutType
from src.domain.conversion import points_to_payout_yen, split_fee
from src.domain.payout_policy import PayoutPolicy
from src.domain.payout_schedule import (
    closing_month_label,
    period_bounds_utc,
    previous_month_period,
    scheduled_payout_date,
)
from .dtos import ClosePeriodResultDTO

logger = logging.getLogger(__name__)


class CloseMonthlyPeriod:
    """
    Use Case: Close a monthly period

    Business Rules:
    1. Default period is the previous calendar month in the platform timezone
    2. One unit of work per cast
    3. A cast that already has a scheduled payout for the month is skipped,
       whatever that payout's status, so re-runs create nothing
    4. Candidate rows are locked (SELECT FOR UPDATE); sum <= 0 is skipped
    5. gross = floor(points * rate); fee/net from the scheduled grade table
    6. Payout created scheduled with the computed payout date, rows claimed
    """

    def __init__(
        self,
        uow: UnitOfWork,
        transaction_repo: PointTransactionRepository,
        payout_repo: CastPayoutRepository,
        cast_repo: CastRepository,
        policy: PayoutPolicy,
    ):
        self.uow = uow
        self.transaction_repo = transaction_repo
        self.payout_repo = payout_repo
        self.cast_repo = cast_repo
        self.policy = policy

    async def execute(self, period_end: Optional[date] = None) -> Result[ClosePeriodResultDTO]:
        if period_end is None:
            period_start, period_end = previous_month_period(self.policy.timezone)
        else:
            period_start = period_end.replace(day=1)

        closing_month = closing_month_label(period_end)
        start_utc, end_utc = period_bounds_utc(period_start, period_end, self.policy.timezone)
        payout_date = scheduled_payout_date(
            period_end,
            self.policy.scheduled_payout_offset_months,
            self.policy.business_day_adjustment,
        )

        try:
            cast_ids = await self.transaction_repo.find_casts_with_unclaimed(start_utc, end_utc)
        except Exception as e:
            return Return.err(
                Error(
                    code="CLOSE_MONTHLY_PERIOD_FAILED",
                    message=f"Failed to close period {closing_month}",
                    reason=str(e),
                )
            )

        logger.info(f"Closing {closing_month}: {len(cast_ids)} casts with unsettled earnings")

        created_ids: list[int] = []
        skipped = 0
        failed = 0

        for cast_id in cast_ids:
            try:
                payout = await self._close_cast(
                    cast_id, closing_month, period_start, period_end,
                    start_utc, end_utc, payout_date,
                )
            except Exception as e:
                await self.uow.rollback()
                failed += 1
                logger.error(f"Failed to close {closing_month} for cast {cast_id}: {e}")
                continue

            if payout is None:
                skipped += 1
            else:
                created_ids.append(payout.id)

        logger.info(
            f"Closed {closing_month}: {len(created_ids)} payouts created, "
            f"{skipped} skipped, {failed} failed"
        )

        return Return.ok(
            ClosePeriodResultDTO(
                closing_month=closing_month,
                period_start=period_start,
                period_end=period_end,
                created=len(created_ids),
                skipped=skipped,
                failed=failed,
                payout_ids=created_ids,
            )
        )

    async def _close_cast(
        self,
        cast_id: int,
        closing_month: str,
        period_start: date,
        period_end: date,
        start_utc: datetime,
        end_utc: datetime,
        payout_date: date,
    ) -> Optional[CastPayout]:
        if await self.payout_repo.exists_for_month(
            cast_id, closing_month, CastPayoutType.SCHEDULED, for_update=True
        ):
            await self.uow.rollback()
            logger.info(f"Cast {cast_id} already closed for {closing_month}, skipping")
            return None

        rows = await self.transaction_repo.get_unclaimed_for_cast(
            cast_id, start_utc, end_utc, for_update=True
        )
        total_points = sum(row.amount for row in rows)
        if total_points <= 0:
            await self.uow.rollback()
            return None

        cast = await self.cast_repo.get_by_id(cast_id)
        grade = cast.grade if cast else None

        rate = self.policy.yen_per_point
        gross = points_to_payout_yen(total_points, rate)
        fee_rate = self.policy.scheduled_fee_rate(grade)
        fee, net = split_fee(gross, fee_rate)

        payout = await self.payout_repo.create(
            CastPayout(
                cast_id=cast_id,
                type=CastPayoutType.SCHEDULED,
                closing_month=closing_month,
                period_start=period_start,
                period_end=period_end,
                total_points=total_points,
                conversion_rate=rate,
                gross_amount_yen=gross,
                fee_rate=fee_rate,
                fee_amount_yen=fee,
                net_amount_yen=net,
                transaction_count=len(rows),
                scheduled_payout_date=payout_date,
                status=CastPayoutStatus.SCHEDULED,
                meta={
                    "source": "auto-close",
                    "closed_at": datetime.utcnow().isoformat(),
                },
            )
        )

        claimed = await self.transaction_repo.claim([row.id for row in rows], payout.id)
        if claimed != len(rows):
            raise RuntimeError(
                f"Claimed {claimed} of {len(rows)} ledger rows for payout {payout.id}"
            )

        await self.uow.commit()

        logger.info(
            f"Scheduled payout {payout.id} for cast {cast_id} ({closing_month}): "
            f"{total_points} points, gross={gross}, fee={fee}, net={net}, "
            f"payout date {payout_date.isoformat()}"
        )
        return payout
