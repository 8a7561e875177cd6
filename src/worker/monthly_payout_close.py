"""Monthly Payout Close Background Worker

Closes the previous month's earnings into scheduled cast payouts.
Safe to re-run: a cast already closed for the month is skipped.
"""

import asyncio
import logging
from typing import Optional
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from src.adapter.repositories.cast_payout_repository import SqlAlchemyCastPayoutRepository
from src.adapter.repositories.cast_repository import SqlAlchemyCastRepository
from src.adapter.repositories.point_transaction_repository import SqlAlchemyPointTransactionRepository
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.use_cases.payouts import CloseMonthlyPeriod, ClosePeriodResultDTO
from src.domain.payout_policy import PayoutPolicy
from src.domain.payout_schedule import month_end

logger = logging.getLogger(__name__)


class MonthlyPayoutCloseWorker:
    """
    Background worker for the monthly close

    Usage:
        # Close the previous month
        worker = MonthlyPayoutCloseWorker()
        result = await worker.run_once()

        # Close a specific month
        result = await worker.run_once(year=2025, month=1)

        # Run continuously (daily check; re-runs create nothing)
        await worker.run_forever()
    """

    def __init__(
        self,
        db_uri: Optional[str] = None,
        policy: Optional[PayoutPolicy] = None,
    ):
        self.db_uri = db_uri or ApplicationConfig.DB_URI
        self.policy = policy or PayoutPolicy.from_config(ApplicationConfig)

        self.engine = create_async_engine(self.db_uri, echo=False, future=True)
        self.async_session_factory = sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )

        logger.info("MonthlyPayoutCloseWorker initialized")

    async def run_once(
        self,
        year: Optional[int] = None,
        month: Optional[int] = None,
    ) -> Optional[ClosePeriodResultDTO]:
        """
        Close one month

        Args:
            year: Year (optional, defaults to the previous month)
            month: Month (optional, defaults to the previous month)

        Returns:
            ClosePeriodResultDTO, or None when the close is disabled
        """
        if not getattr(ApplicationConfig, "MONTHLY_CLOSE_ENABLED", True):
            logger.info("Monthly payout close is disabled, skipping")
            return None

        period_end = month_end(year, month) if year and month else None

        async with self.async_session_factory() as session:
            use_case = CloseMonthlyPeriod(
                uow=SqlAlchemyUnitOfWork(session),
                transaction_repo=SqlAlchemyPointTransactionRepository(session),
                payout_repo=SqlAlchemyCastPayoutRepository(session),
                cast_repo=SqlAlchemyCastRepository(session),
                policy=self.policy,
            )
            result = await use_case.execute(period_end)

        if result.is_err():
            logger.error(f"Monthly close failed: {result.error.message}")
            raise RuntimeError(f"Monthly close failed: {result.error.message}")

        response = result.value
        if response.failed > 0:
            logger.error(f"ALERT: {response.failed} casts failed to close for {response.closing_month}")
        return response

    async def run_forever(self, interval_seconds: int = 86400):
        logger.info(f"Starting continuous monthly close with {interval_seconds}s interval")

        while True:
            try:
                result = await self.run_once()
                if result:
                    logger.info(
                        f"Close cycle complete for {result.closing_month}: "
                        f"{result.created} created, {result.skipped} skipped, {result.failed} failed"
                    )
            except Exception as e:
                logger.error(f"Close cycle failed: {e}")

            await asyncio.sleep(interval_seconds)

    async def shutdown(self):
        """Cleanup resources"""
        await self.engine.dispose()
        logger.info("MonthlyPayoutCloseWorker shutdown complete")


async def main():
    """
    Entry point for running the worker as a standalone script

    Usage:
        # Close the previous month once
        python -m src.worker.monthly_payout_close

        # Close a specific month
        python -m src.worker.monthly_payout_close --year 2025 --month 1

        # Run continuously
        python -m src.worker.monthly_payout_close --continuous
    """
    import argparse

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="Monthly Payout Close Worker")
    parser.add_argument("--year", type=int, help="Year to close (defaults to previous month)")
    parser.add_argument("--month", type=int, help="Month to close (1-12)")
    parser.add_argument("--continuous", action="store_true", help="Run continuously")
    parser.add_argument(
        "--interval", type=int,
        default=ApplicationConfig.MONTHLY_CLOSE_INTERVAL_SECONDS,
        help="Interval between runs in seconds (default: 86400)"
    )
    args = parser.parse_args()

    worker = MonthlyPayoutCloseWorker()

    try:
        if args.continuous:
            await worker.run_forever(interval_seconds=args.interval)
        else:
            result = await worker.run_once(year=args.year, month=args.month)
            if result:
                print(f"Monthly close complete for {result.closing_month}:")
                print(f"  Payouts created: {result.created}")
                print(f"  Casts skipped: {result.skipped}")
                print(f"  Casts failed: {result.failed}")
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    finally:
        await worker.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
