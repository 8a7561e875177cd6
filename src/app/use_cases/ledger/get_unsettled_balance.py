"""GetUnsettledBalance Use Case

Read-only view of a cast's earnings not yet claimed by any payout.
"""

from libs.result import Result, Return, Error
from src.app.repositories.point_transaction_repository import PointTransactionRepository
from src.domain.conversion import max_instant_points, points_to_payout_yen
from src.domain.payout_policy import PayoutPolicy
from .dtos import UnsettledBalanceDTO


class GetUnsettledBalance:
    """
    Use Case: Unsettled balance

    unsettled = sum of transfer/gift rows with no cast_payout_id.
    Instant availability is floor(unsettled * instant_max_ratio).
    """

    def __init__(self, transaction_repo: PointTransactionRepository, policy: PayoutPolicy):
        self.transaction_repo = transaction_repo
        self.policy = policy

    async def execute(self, cast_id: int) -> Result[UnsettledBalanceDTO]:
        try:
            unsettled = await self.transaction_repo.sum_unsettled(cast_id)
            instant_points = max_instant_points(unsettled, self.policy.instant_max_ratio)

            return Return.ok(
                UnsettledBalanceDTO(
                    cast_id=cast_id,
                    unsettled_points=unsettled,
                    unsettled_yen=points_to_payout_yen(max(unsettled, 0), self.policy.yen_per_point),
                    instant_available_points=instant_points,
                    instant_available_yen=points_to_payout_yen(instant_points, self.policy.yen_per_point),
                )
            )
        except Exception as e:
            return Return.err(
                Error(
                    code="GET_UNSETTLED_BALANCE_FAILED",
                    message="Failed to compute unsettled balance",
                    reason=str(e),
                )
            )
