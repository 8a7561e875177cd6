"""CreateInstantPayout Use Case

Pays a cast part of their unsettled earnings ahead of the monthly close,
at the instant fee rate.
"""

import logging
from datetime import datetime
from typing import Optional
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.notification_service import NotificationCategory, NotificationService
from src.app.repositories.cast_repository import CastRepository
from src.app.repositories.cast_payout_repository import CastPayoutRepository
from src.app.repositories.point_transaction_repository import PointTransactionRepository
from src.domain.cast_payout import CastPayout, CastPayoutStatus, CastPayoutType
from src.domain.conversion import max_instant_points, split_fee, yen_to_points
from src.domain.payout_policy import PayoutPolicy
from src.domain.payout_schedule import closing_month_label, local_today, month_end
from src.domain.point_transaction import select_oldest_first
from .dtos import CastPayoutDTO, InstantPayoutCommandDTO, to_payout_dto
from .notifications import notify_cast
from .payout_dispatcher import CONNECT_ACCOUNT_MISSING_REASON, PayoutDispatcher

logger = logging.getLogger(__name__)


class CreateInstantPayout:
    """
    Use Case: Instant payout request

    Business Rules:
    1. Eligibility is checked before any mutation:
       - amount_yen >= instant_min_amount_yen (INSTANT_AMOUNT_TOO_LOW)
       - available = floor(unsettled * instant_max_ratio) >= instant_min_points
         (INSUFFICIENT_POINTS)
       - required = ceil(amount_yen / rate) <= available (INSTANT_LIMIT_EXCEEDED)
       - connected account ready (CONNECT_ACCOUNT_MISSING, no wait state)
    2. Unclaimed rows are locked and consumed oldest-first as whole rows
    3. total_points is the consumed sum, so claimed rows always add up to it
    4. fee = floor(amount_yen * instant rate), net = amount_yen - fee
    5. Created processing and dispatched at once, or pending_approval when
       approval is required
    """

    def __init__(
        self,
        uow: UnitOfWork,
        transaction_repo: PointTransactionRepository,
        payout_repo: CastPayoutRepository,
        cast_repo: CastRepository,
        dispatcher: PayoutDispatcher,
        policy: PayoutPolicy,
        notifier: Optional[NotificationService] = None,
    ):
        self.uow = uow
        self.transaction_repo = transaction_repo
        self.payout_repo = payout_repo
        self.cast_repo = cast_repo
        self.dispatcher = dispatcher
        self.policy = policy
        self.notifier = notifier

    async def execute(self, command: InstantPayoutCommandDTO) -> Result[CastPayoutDTO]:
        try:
            cast = await self.cast_repo.get_by_id(command.cast_id, for_update=True)
            if not cast:
                return Return.err(Error(
                    code="CAST_NOT_FOUND",
                    message=f"Cast {command.cast_id} not found",
                ))

            rate = self.policy.yen_per_point
            if command.amount_yen < self.policy.instant_min_amount_yen:
                await self.uow.rollback()
                return Return.err(Error(
                    code="INSTANT_AMOUNT_TOO_LOW",
                    message=f"Instant payouts start at {self.policy.instant_min_amount_yen} yen",
                ))

            required_points = yen_to_points(command.amount_yen, rate)
            unsettled = await self.transaction_repo.sum_unsettled(cast.id)
            available = max_instant_points(unsettled, self.policy.instant_max_ratio)

            if available < self.policy.instant_min_points:
                await self.uow.rollback()
                return Return.err(Error(
                    code="INSUFFICIENT_POINTS",
                    message="Not enough points for an instant payout",
                    reason=f"available={available}, minimum={self.policy.instant_min_points}",
                ))

            if required_points > available:
                await self.uow.rollback()
                return Return.err(Error(
                    code="INSTANT_LIMIT_EXCEEDED",
                    message="Requested amount exceeds the instant payout limit",
                    reason=f"required={required_points}, available={available}",
                ))

            if not cast.can_receive_payouts:
                await self.uow.rollback()
                return Return.err(Error(
                    code="CONNECT_ACCOUNT_MISSING",
                    message=CONNECT_ACCOUNT_MISSING_REASON,
                ))

            rows = await self.transaction_repo.get_unclaimed_for_cast(cast.id, for_update=True)
            selected, consumed = select_oldest_first(rows, required_points)
            if consumed < required_points:
                await self.uow.rollback()
                return Return.err(Error(
                    code="INSUFFICIENT_POINTS",
                    message="Not enough unsettled points for the requested amount",
                    reason=f"required={required_points}, consumed={consumed}",
                ))

            fee_rate = self.policy.instant_fee_rate(cast.grade)
            fee, net = split_fee(command.amount_yen, fee_rate)

            today = local_today(self.policy.timezone)
            needs_approval = self.policy.instant_requires_approval
            payout = await self.payout_repo.create(
                CastPayout(
                    cast_id=cast.id,
                    type=CastPayoutType.INSTANT,
                    closing_month=closing_month_label(today),
                    period_start=today.replace(day=1),
                    period_end=month_end(today.year, today.month),
                    total_points=consumed,
                    conversion_rate=rate,
                    gross_amount_yen=command.amount_yen,
                    fee_rate=fee_rate,
                    fee_amount_yen=fee,
                    net_amount_yen=net,
                    transaction_count=len(selected),
                    scheduled_payout_date=today,
                    status=CastPayoutStatus.PENDING_APPROVAL if needs_approval else CastPayoutStatus.PROCESSING,
                    meta={
                        "instant_request": True,
                        "memo": command.memo,
                        "requested_at": datetime.utcnow().isoformat(),
                        "required_points": required_points,
                        "consumed_points": consumed,
                    },
                )
            )

            claimed = await self.transaction_repo.claim([row.id for row in selected], payout.id)
            if claimed != len(selected):
                raise RuntimeError(
                    f"Claimed {claimed} of {len(selected)} ledger rows for payout {payout.id}"
                )

            if needs_approval:
                await self.uow.commit()
                logger.info(
                    f"Instant payout request {payout.id} created for cast {cast.id} "
                    f"(pending approval): gross={command.amount_yen}, net={net}"
                )
                await notify_cast(
                    self.notifier, payout, NotificationCategory.PAYOUT_REQUESTED,
                    f"Your instant payout request of {command.amount_yen} yen is awaiting approval.",
                )
                return Return.ok(to_payout_dto(payout))

            outcome = await self.dispatcher.dispatch(cast, payout, instant=True)
            # The failed state is persisted too
            await self.uow.commit()

            if outcome.error:
                await notify_cast(
                    self.notifier, payout, NotificationCategory.PAYOUT_FAILED,
                    f"Your instant payout of {command.amount_yen} yen could not be processed.",
                )
                return Return.err(outcome.error)

            logger.info(
                f"Instant payout {payout.id} for cast {cast.id}: gross={command.amount_yen}, "
                f"fee={fee}, net={net}, points={consumed}"
            )
            await notify_cast(
                self.notifier, payout, NotificationCategory.PAYOUT_PROCESSING,
                f"Your instant payout of {net} yen is on its way.",
            )
            return Return.ok(to_payout_dto(payout))

        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="CREATE_INSTANT_PAYOUT_FAILED",
                    message="Failed to create instant payout",
                    reason=str(e),
                )
            )
