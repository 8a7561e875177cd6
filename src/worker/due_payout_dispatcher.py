"""Due Payout Dispatcher Background Worker

Dispatches scheduled and pending cast payouts whose payout date has come.
"""

import asyncio
import logging
from datetime import date
from typing import Optional
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from src.adapter.repositories.cast_payout_repository import SqlAlchemyCastPayoutRepository
from src.adapter.repositories.cast_repository import SqlAlchemyCastRepository
from src.adapter.repositories.payment_repository import SqlAlchemyPaymentRepository
from src.adapter.services.notification_service import create_notification_service
from src.adapter.services.stripe_gateway import StripePaymentGateway
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.services.notification_service import NotificationService
from src.app.services.payment_gateway import PaymentGateway
from src.app.use_cases.payouts import PayoutDispatcher, ProcessDuePayouts, ProcessDuePayoutsResultDTO
from src.domain.payout_policy import PayoutPolicy

logger = logging.getLogger(__name__)


class DuePayoutDispatcherWorker:
    """
    Background worker for due payouts

    Features:
    - Picks scheduled/pending payouts dated on or before the run date
    - Leaves payouts pending while the cast's connected account is not ready
    - Can run once or continuously
    """

    def __init__(
        self,
        db_uri: Optional[str] = None,
        gateway: Optional[PaymentGateway] = None,
        notifier: Optional[NotificationService] = None,
        policy: Optional[PayoutPolicy] = None,
    ):
        self.db_uri = db_uri or ApplicationConfig.DB_URI
        self.gateway = gateway or StripePaymentGateway(
            ApplicationConfig.STRIPE_SECRET_KEY, ApplicationConfig.STRIPE_WEBHOOK_SECRET
        )
        self.notifier = notifier or create_notification_service(
            ApplicationConfig.NOTIFICATION_PUSH_WEBHOOK,
            ApplicationConfig.NOTIFICATION_CHAT_WEBHOOK,
            ApplicationConfig.NOTIFICATION_MUTED_CATEGORIES,
        )
        self.policy = policy or PayoutPolicy.from_config(ApplicationConfig)

        self.engine = create_async_engine(self.db_uri, echo=False, future=True)
        self.async_session_factory = sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )

        logger.info("DuePayoutDispatcherWorker initialized")

    async def run_once(self, run_date: Optional[date] = None) -> Optional[ProcessDuePayoutsResultDTO]:
        if not getattr(ApplicationConfig, "PAYOUT_DISPATCH_ENABLED", True):
            logger.info("Payout dispatch is disabled, skipping")
            return None

        async with self.async_session_factory() as session:
            payout_repo = SqlAlchemyCastPayoutRepository(session)
            use_case = ProcessDuePayouts(
                uow=SqlAlchemyUnitOfWork(session),
                payout_repo=payout_repo,
                cast_repo=SqlAlchemyCastRepository(session),
                gateway=self.gateway,
                dispatcher=PayoutDispatcher(payout_repo, SqlAlchemyPaymentRepository(session), self.gateway),
                policy=self.policy,
                notifier=self.notifier,
            )
            result = await use_case.execute(run_date)

        if result.is_err():
            logger.error(f"Payout dispatch failed: {result.error.message}")
            raise RuntimeError(f"Payout dispatch failed: {result.error.message}")

        return result.value

    async def run_forever(self, interval_seconds: int = 3600):
        logger.info(f"Starting continuous payout dispatch with {interval_seconds}s interval")

        while True:
            try:
                result = await self.run_once()
                if result:
                    logger.info(
                        f"Dispatch cycle complete: {result.dispatched} dispatched, "
                        f"{result.waiting} waiting, {result.failed} failed of {result.total}"
                    )
            except Exception as e:
                logger.error(f"Dispatch cycle failed: {e}")

            await asyncio.sleep(interval_seconds)

    async def shutdown(self):
        """Cleanup resources"""
        await self.engine.dispose()
        logger.info("DuePayoutDispatcherWorker shutdown complete")


async def main():
    """
    Usage:
        python -m src.worker.due_payout_dispatcher
        python -m src.worker.due_payout_dispatcher --date 2025-02-28
        python -m src.worker.due_payout_dispatcher --continuous --interval 3600
    """
    import argparse

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="Due Payout Dispatcher Worker")
    parser.add_argument("--date", type=date.fromisoformat, help="Run date (YYYY-MM-DD, defaults to today)")
    parser.add_argument("--continuous", action="store_true", help="Run continuously")
    parser.add_argument(
        "--interval", type=int,
        default=ApplicationConfig.PAYOUT_DISPATCH_INTERVAL_SECONDS,
        help="Interval between runs in seconds (default: 3600)"
    )
    args = parser.parse_args()

    worker = DuePayoutDispatcherWorker()

    try:
        if args.continuous:
            await worker.run_forever(interval_seconds=args.interval)
        else:
            result = await worker.run_once(run_date=args.date)
            if result:
                print(f"Payout dispatch complete for {result.run_date}:")
                print(f"  Dispatched: {result.dispatched}")
                print(f"  Waiting for account: {result.waiting}")
                print(f"  Failed: {result.failed}")
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    finally:
        await worker.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
