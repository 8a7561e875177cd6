"""Automatic Payment API Routes"""

from fastapi import APIRouter, Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from src.api.schemas.payouts_request import AutomaticPaymentRequestSchema
from src.app.services.notification_service import NotificationService
from src.app.services.payment_gateway import PaymentGateway
from src.app.use_cases.payments.dtos import AutomaticPaymentCommandDTO, AutomaticPaymentResultDTO
from src.app.use_cases.payments.process_automatic_payment import ProcessAutomaticPayment
from src.app.use_cases.payments.process_automatic_payment_with_pending import (
    ProcessAutomaticPaymentWithPending,
)
from src.adapter.repositories.guest_repository import SqlAlchemyGuestRepository
from src.adapter.repositories.payment_repository import SqlAlchemyPaymentRepository
from src.adapter.repositories.point_transaction_repository import SqlAlchemyPointTransactionRepository
from src.adapter.repositories.reservation_repository import SqlAlchemyReservationRepository
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.domain.payout_policy import PayoutPolicy
from src.depends import get_session, get_payout_policy, get_payment_gateway, get_notification_service
from src.api.error import ClientError

router = APIRouter(prefix="/payments", tags=["Payments"])


def _command(request: AutomaticPaymentRequestSchema) -> AutomaticPaymentCommandDTO:
    values = request.model_dump(exclude_none=True)
    return AutomaticPaymentCommandDTO(**values)


def _dependencies(session: AsyncSession) -> dict:
    return {
        "uow": SqlAlchemyUnitOfWork(session),
        "guest_repo": SqlAlchemyGuestRepository(session),
        "payment_repo": SqlAlchemyPaymentRepository(session),
        "transaction_repo": SqlAlchemyPointTransactionRepository(session),
        "reservation_repo": SqlAlchemyReservationRepository(session),
    }


@router.post("/automatic", response_model=AutomaticPaymentResultDTO)
async def automatic_payment(
    request: AutomaticPaymentRequestSchema,
    session: AsyncSession = Depends(get_session),
    policy: PayoutPolicy = Depends(get_payout_policy),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    notifier: NotificationService = Depends(get_notification_service),
):
    """
    Charge a guest's saved cards for a points shortfall.

    A declined run (no card, or every card failed) is still a 200 with
    `success: false`; the body tells the client whether a card must be
    registered.
    """
    use_case = ProcessAutomaticPayment(
        **_dependencies(session), gateway=gateway, policy=policy, notifier=notifier
    )
    result = await use_case.execute(_command(request))

    if result.is_err():
        raise ClientError.from_error(result.error)

    return result.value


@router.post("/automatic/pending", response_model=AutomaticPaymentResultDTO)
async def automatic_payment_with_pending(
    request: AutomaticPaymentRequestSchema,
    session: AsyncSession = Depends(get_session),
    policy: PayoutPolicy = Depends(get_payout_policy),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    notifier: NotificationService = Depends(get_notification_service),
):
    """Authorize now, capture after the configured delay."""
    use_case = ProcessAutomaticPaymentWithPending(
        **_dependencies(session), gateway=gateway, policy=policy, notifier=notifier
    )
    result = await use_case.execute(_command(request))

    if result.is_err():
        raise ClientError.from_error(result.error)

    return result.value
