"""Guest Grade Update Background Worker

Recalculates every guest's grade from purchase history, in chunks.
"""

import asyncio
import logging
from typing import Optional
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from src.adapter.repositories.guest_repository import SqlAlchemyGuestRepository
from src.adapter.repositories.point_transaction_repository import SqlAlchemyPointTransactionRepository
from src.adapter.services.notification_service import create_notification_service
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.services.notification_service import NotificationService
from src.app.use_cases.grades import GradeBatchResultDTO, RecalculateAllGuestGrades, RecalculateGuestGrade

logger = logging.getLogger(__name__)


class GuestGradeUpdaterWorker:
    def __init__(
        self,
        db_uri: Optional[str] = None,
        notifier: Optional[NotificationService] = None,
        chunk_size: int = 100,
    ):
        self.db_uri = db_uri or ApplicationConfig.DB_URI
        self.notifier = notifier or create_notification_service(
            ApplicationConfig.NOTIFICATION_PUSH_WEBHOOK,
            ApplicationConfig.NOTIFICATION_CHAT_WEBHOOK,
            ApplicationConfig.NOTIFICATION_MUTED_CATEGORIES,
        )
        self.chunk_size = chunk_size

        self.engine = create_async_engine(self.db_uri, echo=False, future=True)
        self.async_session_factory = sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )

        logger.info("GuestGradeUpdaterWorker initialized")

    async def run_once(self) -> GradeBatchResultDTO:
        async with self.async_session_factory() as session:
            uow = SqlAlchemyUnitOfWork(session)
            recalculate = RecalculateGuestGrade(
                uow,
                SqlAlchemyGuestRepository(session),
                SqlAlchemyPointTransactionRepository(session),
            )
            use_case = RecalculateAllGuestGrades(
                uow, recalculate, notifier=self.notifier, chunk_size=self.chunk_size
            )
            result = await use_case.execute()

        if result.is_err():
            logger.error(f"Grade update failed: {result.error.message}")
            raise RuntimeError(f"Grade update failed: {result.error.message}")

        return result.value

    async def shutdown(self):
        await self.engine.dispose()
        logger.info("GuestGradeUpdaterWorker shutdown complete")


async def main():
    """
    Usage:
        python -m src.worker.guest_grade_updater
        python -m src.worker.guest_grade_updater --chunk-size 500
    """
    import argparse

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="Guest Grade Update Worker")
    parser.add_argument("--chunk-size", type=int, default=100, help="Guests per unit of work")
    args = parser.parse_args()

    worker = GuestGradeUpdaterWorker(chunk_size=args.chunk_size)

    try:
        result = await worker.run_once()
        print("Grade update complete:")
        print(f"  Guests checked: {result.total_guests}")
        print(f"  Grades changed: {result.changed}")
        print(f"  Upgrades: {result.upgraded}")
        print(f"  Failed: {result.failed}")
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    finally:
        await worker.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
