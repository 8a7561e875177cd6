"""Payment gateway webhook route"""

import logging
from fastapi import APIRouter, Depends, Header, Request, status
from sqlmodel.ext.asyncio.session import AsyncSession

from libs.result import Error
from src.app.services.notification_service import NotificationService
from src.app.services.payment_gateway import PaymentGateway, PaymentGatewayError
from src.app.use_cases.payments.dtos import GatewayEventResultDTO
from src.app.use_cases.payments.handle_gateway_event import HandleGatewayEvent
from src.app.use_cases.payouts.finalize_payout import FinalizePayout
from src.adapter.repositories.cast_payout_repository import SqlAlchemyCastPayoutRepository
from src.adapter.repositories.cast_repository import SqlAlchemyCastRepository
from src.adapter.repositories.guest_repository import SqlAlchemyGuestRepository
from src.adapter.repositories.payment_repository import SqlAlchemyPaymentRepository
from src.adapter.repositories.point_transaction_repository import SqlAlchemyPointTransactionRepository
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.domain.payout_policy import PayoutPolicy
from src.depends import get_session, get_payout_policy, get_payment_gateway, get_notification_service
from src.api.error import ClientError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


@router.post("/stripe", response_model=GatewayEventResultDTO)
async def stripe_webhook(
    request: Request,
    stripe_signature: str = Header(default="", alias="Stripe-Signature"),
    session: AsyncSession = Depends(get_session),
    policy: PayoutPolicy = Depends(get_payout_policy),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    notifier: NotificationService = Depends(get_notification_service),
):
    """
    Receive Stripe events.

    The signature is verified before anything is read. Unknown event types
    are acknowledged with `handled: false`.
    """
    payload = await request.body()
    try:
        event = gateway.construct_event(payload, stripe_signature)
    except PaymentGatewayError as e:
        logger.warning(f"Rejected webhook: {e}")
        raise ClientError(
            Error(code="INVALID_SIGNATURE", message="Webhook signature verification failed"),
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    uow = SqlAlchemyUnitOfWork(session)
    payment_repo = SqlAlchemyPaymentRepository(session)
    payout_repo = SqlAlchemyCastPayoutRepository(session)
    cast_repo = SqlAlchemyCastRepository(session)

    use_case = HandleGatewayEvent(
        uow=uow,
        payment_repo=payment_repo,
        payout_repo=payout_repo,
        guest_repo=SqlAlchemyGuestRepository(session),
        cast_repo=cast_repo,
        transaction_repo=SqlAlchemyPointTransactionRepository(session),
        finalize=FinalizePayout(uow, payout_repo, cast_repo, payment_repo),
        policy=policy,
        notifier=notifier,
    )
    result = await use_case.execute(event)

    if result.is_err():
        raise ClientError(result.error, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    return result.value
