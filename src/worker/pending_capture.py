"""Pending Capture Background Worker

Captures delayed-capture automatic payments once their capture time passes.
"""

import asyncio
import logging
from typing import Optional
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from src.adapter.repositories.guest_repository import SqlAlchemyGuestRepository
from src.adapter.repositories.payment_repository import SqlAlchemyPaymentRepository
from src.adapter.repositories.point_transaction_repository import SqlAlchemyPointTransactionRepository
from src.adapter.repositories.reservation_repository import SqlAlchemyReservationRepository
from src.adapter.services.notification_service import create_notification_service
from src.adapter.services.stripe_gateway import StripePaymentGateway
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.services.notification_service import NotificationService
from src.app.services.payment_gateway import PaymentGateway
from src.app.use_cases.payments import CapturePendingPayments, CaptureSweepResultDTO

logger = logging.getLogger(__name__)


class PendingCaptureWorker:
    """Background worker for the capture sweep"""

    def __init__(
        self,
        db_uri: Optional[str] = None,
        gateway: Optional[PaymentGateway] = None,
        notifier: Optional[NotificationService] = None,
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

        self.engine = create_async_engine(self.db_uri, echo=False, future=True)
        self.async_session_factory = sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )

        logger.info("PendingCaptureWorker initialized")

    async def run_once(self) -> Optional[CaptureSweepResultDTO]:
        if not getattr(ApplicationConfig, "PENDING_CAPTURE_ENABLED", True):
            logger.info("Pending capture is disabled, skipping")
            return None

        async with self.async_session_factory() as session:
            use_case = CapturePendingPayments(
                uow=SqlAlchemyUnitOfWork(session),
                payment_repo=SqlAlchemyPaymentRepository(session),
                transaction_repo=SqlAlchemyPointTransactionRepository(session),
                guest_repo=SqlAlchemyGuestRepository(session),
                reservation_repo=SqlAlchemyReservationRepository(session),
                gateway=self.gateway,
                notifier=self.notifier,
            )
            result = await use_case.execute()

        if result.is_err():
            logger.error(f"Capture sweep failed: {result.error.message}")
            raise RuntimeError(f"Capture sweep failed: {result.error.message}")

        return result.value

    async def run_forever(self, interval_seconds: int = 600):
        logger.info(f"Starting continuous capture sweep with {interval_seconds}s interval")

        while True:
            try:
                result = await self.run_once()
                if result:
                    logger.info(
                        f"Capture cycle complete: {result.processed} captured, "
                        f"{result.failed} failed of {result.total}"
                    )
            except Exception as e:
                logger.error(f"Capture cycle failed: {e}")

            await asyncio.sleep(interval_seconds)

    async def shutdown(self):
        """Cleanup resources"""
        await self.engine.dispose()
        logger.info("PendingCaptureWorker shutdown complete")


async def main():
    """
    Usage:
        python -m src.worker.pending_capture
        python -m src.worker.pending_capture --continuous --interval 600
    """
    import argparse

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="Pending Capture Worker")
    parser.add_argument("--continuous", action="store_true", help="Run continuously")
    parser.add_argument(
        "--interval", type=int,
        default=ApplicationConfig.PENDING_CAPTURE_INTERVAL_SECONDS,
        help="Interval between runs in seconds (default: 600)"
    )
    args = parser.parse_args()

    worker = PendingCaptureWorker()

    try:
        if args.continuous:
            await worker.run_forever(interval_seconds=args.interval)
        else:
            result = await worker.run_once()
            if result:
                print("Capture sweep complete:")
                print(f"  Captured: {result.processed}")
                print(f"  Failed: {result.failed}")
                print(f"  Skipped: {result.skipped}")
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    finally:
        await worker.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
