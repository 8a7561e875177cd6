"""Cast Points Reconciliation Background Worker

Compares each cast's stored points with the ledger. Drift is logged for
investigation and never corrected here. Drift that survives consecutive
cycles is reported separately, since a single mismatch can be a payout
finalizing between the two reads.
"""

import asyncio
import logging
import sys
from datetime import datetime
from typing import Optional
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from src.adapter.repositories.cast_payout_repository import SqlAlchemyCastPayoutRepository
from src.adapter.repositories.cast_repository import SqlAlchemyCastRepository
from src.adapter.repositories.point_transaction_repository import SqlAlchemyPointTransactionRepository
from src.app.use_cases.ledger import ReconcileCastPoints, CastPointsReconciliationResultDTO

logger = logging.getLogger(__name__)


class PointsReconcilerWorker:
    """
    Read-only reconciliation of cast.points against earnable rows minus paid payouts.

    worker = PointsReconcilerWorker()
    result = await worker.run_once()
    """

    def __init__(self, db_uri: Optional[str] = None):
        self.db_uri = db_uri or ApplicationConfig.DB_URI
        self.engine = create_async_engine(self.db_uri, echo=False, future=True)
        self.async_session_factory = sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )
        # cast_id -> discrepancy seen on the previous cycle
        self.last_drift: dict[int, int] = {}

        logger.info("PointsReconcilerWorker initialized")

    def persistent_drift(self, result: CastPointsReconciliationResultDTO) -> list[int]:
        """Cast IDs whose discrepancy is unchanged since the previous cycle, then remembers this cycle"""
        current = {d.cast_id: d.discrepancy for d in result.discrepancies}
        persisting = sorted(
            cast_id for cast_id, diff in current.items()
            if self.last_drift.get(cast_id) == diff
        )
        self.last_drift = current
        return persisting

    async def run_once(self) -> CastPointsReconciliationResultDTO:
        if not ApplicationConfig.RECONCILIATION_ENABLED:
            logger.info("Points reconciliation is disabled, skipping")
            return CastPointsReconciliationResultDTO(
                total_casts_checked=0,
                discrepancies_found=0,
                discrepancies=[],
                reconciliation_time=datetime.utcnow(),
                execution_time_ms=0,
            )

        async with self.async_session_factory() as session:
            use_case = ReconcileCastPoints(
                cast_repo=SqlAlchemyCastRepository(session),
                transaction_repo=SqlAlchemyPointTransactionRepository(session),
                payout_repo=SqlAlchemyCastPayoutRepository(session),
            )
            result = await use_case.execute()

        if result.is_err():
            logger.error(f"Reconciliation failed: {result.error.message}")
            raise RuntimeError(f"Reconciliation failed: {result.error.message}")

        response = result.value
        for d in response.discrepancies:
            logger.error(
                f"Cast {d.cast_id} out of balance: stored={d.cast_points}, "
                f"ledger={d.calculated_points}, diff={d.discrepancy}"
            )

        persisting = self.persistent_drift(response)
        if persisting:
            logger.critical(f"Drift unchanged since last cycle for casts {persisting}")

        return response

    async def run_forever(self, interval_seconds: int = 86400):
        logger.info(f"Starting points reconciliation every {interval_seconds}s")

        while True:
            try:
                result = await self.run_once()
                logger.info(
                    f"Checked {result.total_casts_checked} casts, "
                    f"{result.discrepancies_found} out of balance "
                    f"({result.execution_time_ms}ms)"
                )
            except Exception as e:
                logger.error(f"Reconciliation cycle failed: {e}")

            await asyncio.sleep(interval_seconds)

    async def shutdown(self):
        await self.engine.dispose()
        logger.info("PointsReconcilerWorker shutdown complete")


async def main() -> int:
    """
    python -m src.worker.points_reconciler
    python -m src.worker.points_reconciler --continuous --interval 3600

    A single run exits with status 1 when any cast is out of balance.
    """
    import argparse

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="Cast Points Reconciliation Worker")
    parser.add_argument("--continuous", action="store_true", help="Run continuously")
    parser.add_argument(
        "--interval", type=int,
        default=ApplicationConfig.RECONCILIATION_INTERVAL_SECONDS,
        help="Seconds between runs in continuous mode",
    )
    args = parser.parse_args()

    worker = PointsReconcilerWorker()
    exit_code = 0

    try:
        if args.continuous:
            await worker.run_forever(interval_seconds=args.interval)
        else:
            result = await worker.run_once()
            print(f"Checked {result.total_casts_checked} casts in {result.execution_time_ms}ms")
            for d in result.discrepancies:
                print(f"  cast {d.cast_id}: stored={d.cast_points} ledger={d.calculated_points}")
            if result.discrepancies_found:
                exit_code = 1
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    finally:
        await worker.shutdown()

    return exit_code


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
