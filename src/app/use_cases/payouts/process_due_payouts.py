"""ProcessDuePayouts Use Case

Dispatches scheduled payouts whose payout date has arrived.
"""

import logging
from datetime import date
from typing import Optional
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.payment_gateway import PaymentGateway
from src.app.services.notification_service import NotificationCategory, NotificationService
from src.app.repositories.cast_repository import CastRepository
from src.app.repositories.cast_payout_repository import CastPayoutRepository
from src.domain.cast import Cast
from src.domain.cast_payout import CastPayoutStatus
from src.domain.payout_policy import PayoutPolicy
from src.domain.payout_schedule import local_today
from .dtos import ProcessDuePayoutsResultDTO
from .notifications import notify_cast
from .payout_dispatcher import PayoutDispatcher

logger = logging.getLogger(__name__)


class ProcessDuePayouts:
    """
    Use Case: Dispatch due payouts

    Business Rules:
    1. scheduled/pending payouts with scheduled_payout_date <= run_date,
       oldest first, one unit of work each
    2. A cast whose account id exists but payouts are not enabled is
       re-checked with the gateway first
    3. Casts still not ready: scheduled -> pending once, pending untouched
    4. Everything else is dispatched; failures are recorded on the payout
    """

    def __init__(
        self,
        uow: UnitOfWork,
        payout_repo: CastPayoutRepository,
        cast_repo: CastRepository,
        gateway: PaymentGateway,
        dispatcher: PayoutDispatcher,
        policy: PayoutPolicy,
        notifier: Optional[NotificationService] = None,
    ):
        self.uow = uow
        self.payout_repo = payout_repo
        self.cast_repo = cast_repo
        self.gateway = gateway
        self.dispatcher = dispatcher
        self.policy = policy
        self.notifier = notifier

    async def execute(self, run_date: Optional[date] = None) -> Result[ProcessDuePayoutsResultDTO]:
        run_date = run_date or local_today(self.policy.timezone)

        try:
            due = await self.payout_repo.list_due(run_date)
        except Exception as e:
            return Return.err(
                Error(
                    code="PROCESS_DUE_PAYOUTS_FAILED",
                    message="Failed to load due payouts",
                    reason=str(e),
                )
            )

        payout_ids = [payout.id for payout in due]
        logger.info(f"Found {len(payout_ids)} payouts due on or before {run_date.isoformat()}")

        dispatched = waiting = failed = 0
        for payout_id in payout_ids:
            try:
                outcome = await self._process_one(payout_id)
            except Exception as e:
                await self.uow.rollback()
                failed += 1
                logger.error(f"Failed to process payout {payout_id}: {e}")
                continue

            if outcome == "dispatched":
                dispatched += 1
            elif outcome == "waiting":
                waiting += 1
            elif outcome == "failed":
                failed += 1

        logger.info(
            f"Due payout run {run_date.isoformat()}: {dispatched} dispatched, "
            f"{waiting} waiting, {failed} failed"
        )
        return Return.ok(
            ProcessDuePayoutsResultDTO(
                run_date=run_date,
                dispatched=dispatched,
                waiting=waiting,
                failed=failed,
                total=len(payout_ids),
            )
        )

    async def _process_one(self, payout_id: int) -> str:
        payout = await self.payout_repo.get_by_id(payout_id, for_update=True)
        if not payout or payout.status not in (CastPayoutStatus.SCHEDULED, CastPayoutStatus.PENDING):
            await self.uow.rollback()
            return "skipped"

        cast = await self.cast_repo.get_by_id(payout.cast_id, for_update=True)
        if not cast:
            logger.error(f"Cast {payout.cast_id} for payout {payout_id} not found")
            await self.uow.rollback()
            return "failed"

        await self._refresh_account_status(cast)

        if not cast.can_receive_payouts:
            if payout.status == CastPayoutStatus.SCHEDULED:
                await self.dispatcher.dispatch(cast, payout, instant=False)
                await self.uow.commit()
            else:
                await self.uow.rollback()
            return "waiting"

        outcome = await self.dispatcher.dispatch(cast, payout, instant=False)
        await self.uow.commit()

        if outcome.dispatched:
            await notify_cast(
                self.notifier, payout, NotificationCategory.PAYOUT_PROCESSING,
                f"Your payout of {payout.net_amount_yen} yen is on its way.",
            )
            return "dispatched"

        await notify_cast(
            self.notifier, payout, NotificationCategory.PAYOUT_FAILED,
            f"Your payout of {payout.net_amount_yen} yen could not be processed.",
        )
        return "failed"

    async def _refresh_account_status(self, cast: Cast) -> None:
        if not cast.stripe_connect_account_id or cast.payouts_enabled:
            return
        try:
            status = await self.gateway.get_connected_account_status(cast.stripe_connect_account_id)
        except Exception as e:
            logger.warning(f"Failed to refresh connected account status for cast {cast.id}: {e}")
            return
        if status.payouts_enabled:
            cast.payouts_enabled = True
            await self.cast_repo.save(cast)
            logger.info(f"Cast {cast.id} connected account now has payouts enabled")
