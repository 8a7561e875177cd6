"""GetCastPayoutSummary Use Case"""

from libs.result import Result, Return, Error
from src.app.repositories.cast_repository import CastRepository
from src.app.repositories.cast_payout_repository import CastPayoutRepository
from src.app.repositories.point_transaction_repository import PointTransactionRepository
from src.domain.conversion import max_instant_points, points_to_payout_yen
from src.domain.payout_policy import PayoutPolicy
from .dtos import CastPayoutSummaryDTO, to_payout_dto

HISTORY_LIMIT = 5


class GetCastPayoutSummary:
    """
    Use Case: Cast payout dashboard

    Conversion and fee rates for the cast's grade, unsettled and
    instant-available amounts, the upcoming scheduled payout and the last
    five payouts. Read-only.
    """

    def __init__(
        self,
        cast_repo: CastRepository,
        transaction_repo: PointTransactionRepository,
        payout_repo: CastPayoutRepository,
        policy: PayoutPolicy,
    ):
        self.cast_repo = cast_repo
        self.transaction_repo = transaction_repo
        self.payout_repo = payout_repo
        self.policy = policy

    async def execute(self, cast_id: int) -> Result[CastPayoutSummaryDTO]:
        try:
            cast = await self.cast_repo.get_by_id(cast_id)
            if not cast:
                return Return.err(Error(code="CAST_NOT_FOUND", message=f"Cast {cast_id} not found"))

            rate = self.policy.yen_per_point
            unsettled = await self.transaction_repo.sum_unsettled(cast_id)
            instant_points = max_instant_points(unsettled, self.policy.instant_max_ratio)
            upcoming = await self.payout_repo.get_upcoming_scheduled(cast_id)
            history = await self.payout_repo.list_for_cast(cast_id, limit=HISTORY_LIMIT)

            return Return.ok(
                CastPayoutSummaryDTO(
                    cast_id=cast_id,
                    grade=cast.grade,
                    conversion_rate=rate,
                    scheduled_fee_rate=self.policy.scheduled_fee_rate(cast.grade),
                    instant_fee_rate=self.policy.instant_fee_rate(cast.grade),
                    unsettled_points=unsettled,
                    unsettled_amount_yen=points_to_payout_yen(max(unsettled, 0), rate),
                    instant_available_points=instant_points,
                    instant_available_amount_yen=points_to_payout_yen(instant_points, rate),
                    instant_min_amount_yen=self.policy.instant_min_amount_yen,
                    payouts_enabled=cast.can_receive_payouts,
                    upcoming_payout=to_payout_dto(upcoming) if upcoming else None,
                    recent_history=[to_payout_dto(payout) for payout in history],
                )
            )
        except Exception as e:
            return Return.err(
                Error(
                    code="GET_PAYOUT_SUMMARY_FAILED",
                    message="Failed to build payout summary",
                    reason=str(e),
                )
            )
