"""Exceeded Pending Transfer Background Worker

Credits settled overtime charges to the reservation's cast once the hold
period has passed.
"""

import asyncio
import logging
from typing import Optional
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from src.adapter.repositories.cast_repository import SqlAlchemyCastRepository
from src.adapter.repositories.payment_repository import SqlAlchemyPaymentRepository
from src.adapter.repositories.point_transaction_repository import SqlAlchemyPointTransactionRepository
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.use_cases.ledger import ExceededPendingTransferResultDTO, TransferExceededPending
from src.domain.payout_policy import PayoutPolicy

logger = logging.getLogger(__name__)


class ExceededPendingTransferWorker:
    """Background worker for exceeded_pending transfers"""

    def __init__(self, db_uri: Optional[str] = None, policy: Optional[PayoutPolicy] = None):
        self.db_uri = db_uri or ApplicationConfig.DB_URI
        self.policy = policy or PayoutPolicy.from_config(ApplicationConfig)

        self.engine = create_async_engine(self.db_uri, echo=False, future=True)
        self.async_session_factory = sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )

        logger.info("ExceededPendingTransferWorker initialized")

    async def run_once(self) -> Optional[ExceededPendingTransferResultDTO]:
        if not getattr(ApplicationConfig, "EXCEEDED_PENDING_TRANSFER_ENABLED", True):
            logger.info("Exceeded pending transfer is disabled, skipping")
            return None

        async with self.async_session_factory() as session:
            use_case = TransferExceededPending(
                uow=SqlAlchemyUnitOfWork(session),
                transaction_repo=SqlAlchemyPointTransactionRepository(session),
                cast_repo=SqlAlchemyCastRepository(session),
                payment_repo=SqlAlchemyPaymentRepository(session),
                policy=self.policy,
            )
            result = await use_case.execute()

        if result.is_err():
            logger.error(f"Exceeded pending transfer failed: {result.error.message}")
            raise RuntimeError(f"Exceeded pending transfer failed: {result.error.message}")

        return result.value

    async def run_forever(self, interval_seconds: int = 3600):
        logger.info(f"Starting continuous exceeded pending transfer with {interval_seconds}s interval")

        while True:
            try:
                result = await self.run_once()
                if result:
                    logger.info(
                        f"Transfer cycle complete: {result.processed} transferred, "
                        f"{result.not_transferred} not transferred of {result.total}"
                    )
            except Exception as e:
                logger.error(f"Transfer cycle failed: {e}")

            await asyncio.sleep(interval_seconds)

    async def shutdown(self):
        """Cleanup resources"""
        await self.engine.dispose()
        logger.info("ExceededPendingTransferWorker shutdown complete")


async def main():
    """
    Usage:
        python -m src.worker.exceeded_pending_transfer
        python -m src.worker.exceeded_pending_transfer --continuous --interval 3600
    """
    import argparse

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="Exceeded Pending Transfer Worker")
    parser.add_argument("--continuous", action="store_true", help="Run continuously")
    parser.add_argument(
        "--interval", type=int,
        default=ApplicationConfig.EXCEEDED_PENDING_TRANSFER_INTERVAL_SECONDS,
        help="Interval between runs in seconds (default: 3600)"
    )
    args = parser.parse_args()

    worker = ExceededPendingTransferWorker()

    try:
        if args.continuous:
            await worker.run_forever(interval_seconds=args.interval)
        else:
            result = await worker.run_once()
            if result:
                print("Exceeded pending transfer complete:")
                print(f"  Transferred: {result.processed} ({result.transferred_points} points)")
                print(f"  Not transferred: {result.not_transferred}")
                print(f"  Skipped: {result.skipped}")
                print(f"  Failed: {result.failed}")
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    finally:
        await worker.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
