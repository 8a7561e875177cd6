"""ReconcileCastPoints Use Case

Compares each cast's denormalized points balance against the ledger.
"""

import logging
import time
from datetime import datetime
from libs.result import Result, Return, Error
from src.app.repositories.cast_repository import CastRepository
from src.app.repositories.cast_payout_repository import CastPayoutRepository
from src.app.repositories.point_transaction_repository import PointTransactionRepository
from src.domain.cast_payout import CastPayoutStatus
from .dtos import CastPointsDiscrepancyDTO, CastPointsReconciliationResultDTO

logger = logging.getLogger(__name__)


class ReconcileCastPoints:
    """
    Use Case: Reconcile cast points against the ledger

    Business Rules:
    1. expected = sum(earnable rows) - sum(total_points of paid payouts)
    2. Any cast whose points differ is reported and logged
    3. Does NOT modify any data (read-only reconciliation)
    """

    def __init__(
        self,
        cast_repo: CastRepository,
        transaction_repo: PointTransactionRepository,
        payout_repo: CastPayoutRepository,
    ):
        self.cast_repo = cast_repo
        self.transaction_repo = transaction_repo
        self.payout_repo = payout_repo

    async def execute(self) -> Result[CastPointsReconciliationResultDTO]:
        start_time = time.time()
        reconciliation_time = datetime.utcnow()

        try:
            logger.info("Starting cast points reconciliation")

            casts = await self.cast_repo.get_all()
            discrepancies: list[CastPointsDiscrepancyDTO] = []

            for cast in casts:
                earned = await self.transaction_repo.sum_earnable(cast.id)
                settled = await self.payout_repo.sum_points_by_status(
                    cast.id, [CastPayoutStatus.PAID]
                )
                expected = earned - settled
                actual = cast.points or 0

                if actual != expected:
                    discrepancies.append(
                        CastPointsDiscrepancyDTO(
                            cast_id=cast.id,
                            cast_points=actual,
                            calculated_points=expected,
                            discrepancy=actual - expected,
                        )
                    )
                    logger.warning(
                        f"Discrepancy found for cast {cast.id}: "
                        f"points={actual}, calculated={expected}, "
                        f"discrepancy={actual - expected}"
                    )

            execution_time_ms = int((time.time() - start_time) * 1000)

            if discrepancies:
                logger.warning(
                    f"Reconciliation complete. Found {len(discrepancies)} discrepancies "
                    f"out of {len(casts)} casts in {execution_time_ms}ms"
                )
            else:
                logger.info(
                    f"Reconciliation complete. All {len(casts)} casts balanced "
                    f"in {execution_time_ms}ms"
                )

            return Return.ok(
                CastPointsReconciliationResultDTO(
                    total_casts_checked=len(casts),
                    discrepancies_found=len(discrepancies),
                    discrepancies=discrepancies,
                    reconciliation_time=reconciliation_time,
                    execution_time_ms=execution_time_ms,
                )
            )

        except Exception as e:
            logger.error(f"Cast points reconciliation failed: {e}")
            return Return.err(
                Error(
                    code="RECONCILIATION_FAILED",
                    message="Failed to reconcile cast points",
                    reason=str(e),
                )
            )
