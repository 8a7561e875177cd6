"""Cast Payout API Routes

Cast-facing payout dashboard and instant payout requests.
"""

from fastapi import APIRouter, Depends, status
from sqlmodel.ext.asyncio.session import AsyncSession

from src.api.schemas.payouts_request import InstantPayoutRequestSchema
from src.app.services.notification_service import NotificationService
from src.app.services.payment_gateway import PaymentGateway
from src.app.use_cases.payouts.dtos import CastPayoutDTO, CastPayoutSummaryDTO, InstantPayoutCommandDTO
from src.app.use_cases.payouts.create_instant_payout import CreateInstantPayout
from src.app.use_cases.payouts.get_cast_payout_summary import GetCastPayoutSummary
from src.app.use_cases.payouts.payout_dispatcher import PayoutDispatcher
from src.adapter.repositories.cast_payout_repository import SqlAlchemyCastPayoutRepository
from src.adapter.repositories.cast_repository import SqlAlchemyCastRepository
from src.adapter.repositories.payment_repository import SqlAlchemyPaymentRepository
from src.adapter.repositories.point_transaction_repository import SqlAlchemyPointTransactionRepository
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.domain.payout_policy import PayoutPolicy
from src.depends import get_session, get_payout_policy, get_payment_gateway, get_notification_service
from src.api.error import ClientError

router = APIRouter(prefix="/casts/{cast_id}/payouts", tags=["Payouts"])


@router.get("/summary", response_model=CastPayoutSummaryDTO)
async def get_payout_summary(
    cast_id: int,
    session: AsyncSession = Depends(get_session),
    policy: PayoutPolicy = Depends(get_payout_policy),
):
    """
    Payout dashboard for a cast.

    Rates for the cast's grade, unsettled and instant-available amounts,
    the next scheduled payout and the five most recent payouts.
    """
    use_case = GetCastPayoutSummary(
        SqlAlchemyCastRepository(session),
        SqlAlchemyPointTransactionRepository(session),
        SqlAlchemyCastPayoutRepository(session),
        policy,
    )
    result = await use_case.execute(cast_id)

    if result.is_err():
        raise ClientError.from_error(result.error)

    return result.value


@router.post(
    "/instant",
    response_model=CastPayoutDTO,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {
            "description": "Not eligible for an instant payout",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "INSTANT_AMOUNT_TOO_LOW",
                            "message": "Instant payouts start at 5000 yen"
                        }
                    }
                }
            }
        },
        402: {"description": "Not enough points or platform balance"},
        404: {"description": "Cast not found"},
    }
)
async def request_instant_payout(
    cast_id: int,
    request: InstantPayoutRequestSchema,
    session: AsyncSession = Depends(get_session),
    policy: PayoutPolicy = Depends(get_payout_policy),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    notifier: NotificationService = Depends(get_notification_service),
):
    """
    Request an instant payout of unsettled earnings.

    **Request body:**
    - `amount_yen` (required): Gross amount in yen, at least the instant minimum
    - `memo` (optional): Note for administrators

    **Returns:**
    - 201: Payout created (processing, or pending_approval when approval is required)
    - 400: Amount too low, limit exceeded or connected account missing
    - 402: Not enough points, or the platform balance is short
    - 404: Cast not found
    """
    payout_repo = SqlAlchemyCastPayoutRepository(session)
    use_case = CreateInstantPayout(
        uow=SqlAlchemyUnitOfWork(session),
        transaction_repo=SqlAlchemyPointTransactionRepository(session),
        payout_repo=payout_repo,
        cast_repo=SqlAlchemyCastRepository(session),
        dispatcher=PayoutDispatcher(payout_repo, SqlAlchemyPaymentRepository(session), gateway),
        policy=policy,
        notifier=notifier,
    )

    command = InstantPayoutCommandDTO(cast_id=cast_id, amount_yen=request.amount_yen, memo=request.memo)
    result = await use_case.execute(command)

    if result.is_err():
        raise ClientError.from_error(result.error)

    return result.value
