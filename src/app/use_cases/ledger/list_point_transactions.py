"""
List Point Transactions Use Case

Retrieves ledger history for a guest or cast with pagination.
"""
from libs.result import Result, Return, Error
from src.app.repositories.point_transaction_repository import PointTransactionRepository
from .dtos import ListPointTransactionsResponseDTO, to_transaction_dto

ACTOR_TYPES = ("guest", "cast")


class ListPointTransactions:
    """
    Use case: View point history

    Rows are ordered by created_at DESC (most recent first).
    """

    def __init__(self, transaction_repo: PointTransactionRepository):
        self.transaction_repo = transaction_repo

    async def execute(
        self, actor_type: str, actor_id: int, limit: int = 50, offset: int = 0
    ) -> Result[ListPointTransactionsResponseDTO]:
        if actor_type not in ACTOR_TYPES:
            return Return.err(Error(
                code="VALIDATION_ERROR",
                message=f"actor_type must be one of {', '.join(ACTOR_TYPES)}",
            ))

        transactions, total = await self.transaction_repo.list_for_actor(
            actor_type=actor_type,
            actor_id=actor_id,
            limit=limit,
            offset=offset,
        )

        return Return.ok(
            ListPointTransactionsResponseDTO(
                transactions=[to_transaction_dto(txn) for txn in transactions],
                total=total,
                limit=limit,
                offset=offset,
            )
        )
