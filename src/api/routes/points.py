"""Points API Routes

Ledger entries, history and unsettled balances.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession

from src.api.schemas.points_request import RecordPointEntryRequestSchema
from src.app.use_cases.ledger.dtos import (
    RecordPointEntryCommandDTO,
    RecordPointEntryResponseDTO,
    ListPointTransactionsResponseDTO,
    UnsettledBalanceDTO,
)
from src.app.use_cases.ledger.record_point_entry import RecordPointEntry
from src.app.use_cases.ledger.list_point_transactions import ListPointTransactions
from src.app.use_cases.ledger.get_unsettled_balance import GetUnsettledBalance
from src.adapter.repositories.point_transaction_repository import SqlAlchemyPointTransactionRepository
from src.adapter.repositories.guest_repository import SqlAlchemyGuestRepository
from src.adapter.repositories.cast_repository import SqlAlchemyCastRepository
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.domain.payout_policy import PayoutPolicy
from src.depends import get_session, get_payout_policy
from src.api.error import ClientError

router = APIRouter(tags=["Points"])


@router.post(
    "/points/transactions",
    response_model=RecordPointEntryResponseDTO,
    status_code=status.HTTP_201_CREATED,
    responses={
        402: {
            "description": "Deduction larger than the guest's balance",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "INSUFFICIENT_POINTS",
                            "message": "Guest 42 has 500 points, cannot deduct 1000"
                        }
                    }
                }
            }
        },
        404: {"description": "Guest or cast not found"},
    }
)
async def record_point_entry(
    request: RecordPointEntryRequestSchema,
    session: AsyncSession = Depends(get_session)
):
    """
    Append one row to the point ledger.

    Transfers and gifts are cast earnings and must be positive; the cast's
    points are incremented. Every other type belongs to the guest and is
    added to the guest's balance, which may not go below zero.

    **Returns:**
    - 201: Row recorded, with the owner's balance after the entry
    - 402: Deduction larger than the guest's balance
    - 404: Guest or cast not found
    """
    uow = SqlAlchemyUnitOfWork(session)
    use_case = RecordPointEntry(
        uow,
        SqlAlchemyPointTransactionRepository(session),
        SqlAlchemyGuestRepository(session),
        SqlAlchemyCastRepository(session),
    )

    command = RecordPointEntryCommandDTO(**request.model_dump())
    result = await use_case.execute(command)

    if result.is_err():
        raise ClientError.from_error(result.error)

    return result.value


@router.get(
    "/points/{actor_type}/{actor_id}/transactions",
    response_model=ListPointTransactionsResponseDTO,
)
async def list_point_transactions(
    actor_type: str,
    actor_id: int,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    session: AsyncSession = Depends(get_session)
):
    """Newest-first ledger history for a guest or a cast."""
    use_case = ListPointTransactions(SqlAlchemyPointTransactionRepository(session))
    result = await use_case.execute(actor_type, actor_id, limit=limit, offset=offset)

    if result.is_err():
        raise ClientError.from_error(result.error)

    return result.value


@router.get("/casts/{cast_id}/points/unsettled", response_model=UnsettledBalanceDTO)
async def get_unsettled_balance(
    cast_id: int,
    session: AsyncSession = Depends(get_session),
    policy: PayoutPolicy = Depends(get_payout_policy),
):
    use_case = GetUnsettledBalance(SqlAlchemyPointTransactionRepository(session), policy)
    result = await use_case.execute(cast_id)

    if result.is_err():
        raise ClientError.from_error(result.error)

    return result.value
