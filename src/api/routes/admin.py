"""Admin Payout API Routes

Operator actions on cast payouts and manual batch triggers.
"""

from datetime import date
from typing import Optional
from fastapi import APIRouter, Body, Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from src.api.schemas.payouts_request import ClosePeriodRequestSchema, PayoutActionRequestSchema
from src.app.services.notification_service import NotificationService
from src.app.services.payment_gateway import PaymentGateway
from src.app.use_cases.grades.dtos import GuestGradeDTO
from src.app.use_cases.grades.recalculate_guest_grade import RecalculateGuestGrade
from src.app.use_cases.ledger.dtos import (
    CastPointsReconciliationResultDTO,
    ExceededPendingTransferResultDTO,
)
from src.app.use_cases.ledger.reconcile_cast_points import ReconcileCastPoints
from src.app.use_cases.ledger.transfer_exceeded_pending import TransferExceededPending
from src.app.use_cases.payouts.dtos import (
    CastPayoutDTO,
    ClosePeriodResultDTO,
    FinalizePayoutCommandDTO,
    ProcessDuePayoutsResultDTO,
)
from src.app.use_cases.payouts.approve_instant_payout import ApproveInstantPayout
from src.app.use_cases.payouts.cancel_payout import CancelPayout
from src.app.use_cases.payouts.close_monthly_period import CloseMonthlyPeriod
from src.app.use_cases.payouts.finalize_payout import FinalizePayout
from src.app.use_cases.payouts.payout_dispatcher import PayoutDispatcher
from src.app.use_cases.payouts.process_due_payouts import ProcessDuePayouts
from src.app.use_cases.payouts.reject_instant_payout import RejectInstantPayout
from src.app.use_cases.payouts.retry_payout import RetryPayout
from src.adapter.repositories.cast_payout_repository import SqlAlchemyCastPayoutRepository
from src.adapter.repositories.cast_repository import SqlAlchemyCastRepository
from src.adapter.repositories.guest_repository import SqlAlchemyGuestRepository
from src.adapter.repositories.payment_repository import SqlAlchemyPaymentRepository
from src.adapter.repositories.point_transaction_repository import SqlAlchemyPointTransactionRepository
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.domain.payout_policy import PayoutPolicy
from src.domain.payout_schedule import month_end
from src.depends import get_session, get_payout_policy, get_payment_gateway, get_notification_service
from src.api.error import ClientError

router = APIRouter(prefix="/admin", tags=["Admin"])


def _dispatcher(session: AsyncSession, gateway: PaymentGateway) -> PayoutDispatcher:
    return PayoutDispatcher(
        SqlAlchemyCastPayoutRepository(session),
        SqlAlchemyPaymentRepository(session),
        gateway,
    )


def _unwrap(result):
    if result.is_err():
        raise ClientError.from_error(result.error)
    return result.value


@router.post("/payouts/{payout_id}/retry", response_model=CastPayoutDTO)
async def retry_payout(
    payout_id: int,
    session: AsyncSession = Depends(get_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """
    Re-dispatch a failed payout.

    **Returns:**
    - 200: Payout dispatched again
    - 404: Payout not found
    - 409: Payout is not failed
    """
    use_case = RetryPayout(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemyCastPayoutRepository(session),
        SqlAlchemyCastRepository(session),
        _dispatcher(session, gateway),
    )
    return _unwrap(await use_case.execute(payout_id))


@router.post("/payouts/{payout_id}/cancel", response_model=CastPayoutDTO)
async def cancel_payout(
    payout_id: int,
    request: Optional[PayoutActionRequestSchema] = Body(default=None),
    session: AsyncSession = Depends(get_session),
    notifier: NotificationService = Depends(get_notification_service),
):
    """Cancel a scheduled or pending payout and release its ledger rows."""
    use_case = CancelPayout(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemyCastPayoutRepository(session),
        SqlAlchemyPointTransactionRepository(session),
        SqlAlchemyPaymentRepository(session),
        notifier,
    )
    return _unwrap(await use_case.execute(payout_id, reason=request.reason if request else None))


@router.post("/payouts/{payout_id}/mark-paid", response_model=CastPayoutDTO)
async def mark_payout_paid(
    payout_id: int,
    request: Optional[PayoutActionRequestSchema] = Body(default=None),
    session: AsyncSession = Depends(get_session),
):
    use_case = FinalizePayout(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemyCastPayoutRepository(session),
        SqlAlchemyCastRepository(session),
        SqlAlchemyPaymentRepository(session),
    )
    command = FinalizePayoutCommandDTO(payout_id=payout_id, note=request.note if request else None)
    return _unwrap(await use_case.execute(command))


@router.post("/payouts/{payout_id}/approve", response_model=CastPayoutDTO)
async def approve_instant_payout(
    payout_id: int,
    session: AsyncSession = Depends(get_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    notifier: NotificationService = Depends(get_notification_service),
):
    use_case = ApproveInstantPayout(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemyCastPayoutRepository(session),
        SqlAlchemyCastRepository(session),
        gateway,
        _dispatcher(session, gateway),
        notifier,
    )
    return _unwrap(await use_case.execute(payout_id))


@router.post("/payouts/{payout_id}/reject", response_model=CastPayoutDTO)
async def reject_instant_payout(
    payout_id: int,
    request: Optional[PayoutActionRequestSchema] = Body(default=None),
    session: AsyncSession = Depends(get_session),
    notifier: NotificationService = Depends(get_notification_service),
):
    use_case = RejectInstantPayout(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemyCastPayoutRepository(session),
        SqlAlchemyPointTransactionRepository(session),
        notifier,
    )
    return _unwrap(await use_case.execute(payout_id, reason=request.reason if request else None))


@router.post("/payouts/close", response_model=ClosePeriodResultDTO)
async def close_month(
    request: ClosePeriodRequestSchema,
    session: AsyncSession = Depends(get_session),
    policy: PayoutPolicy = Depends(get_payout_policy),
):
    """Run the monthly close for a given month; re-running creates nothing new."""
    use_case = CloseMonthlyPeriod(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemyPointTransactionRepository(session),
        SqlAlchemyCastPayoutRepository(session),
        SqlAlchemyCastRepository(session),
        policy,
    )
    return _unwrap(await use_case.execute(month_end(request.year, request.month)))


@router.post("/payouts/process-due", response_model=ProcessDuePayoutsResultDTO)
async def process_due_payouts(
    run_date: Optional[date] = None,
    session: AsyncSession = Depends(get_session),
    policy: PayoutPolicy = Depends(get_payout_policy),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    notifier: NotificationService = Depends(get_notification_service),
):
    use_case = ProcessDuePayouts(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemyCastPayoutRepository(session),
        SqlAlchemyCastRepository(session),
        gateway,
        _dispatcher(session, gateway),
        policy,
        notifier,
    )
    return _unwrap(await use_case.execute(run_date))


@router.post("/guests/{guest_id}/grade", response_model=GuestGradeDTO)
async def recalculate_guest_grade(
    guest_id: int,
    session: AsyncSession = Depends(get_session),
):
    use_case = RecalculateGuestGrade(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemyGuestRepository(session),
        SqlAlchemyPointTransactionRepository(session),
    )
    return _unwrap(await use_case.execute(guest_id))


@router.get("/points/reconciliation", response_model=CastPointsReconciliationResultDTO)
async def reconcile_cast_points(session: AsyncSession = Depends(get_session)):
    """Compare each cast's stored points with the ledger. Read-only."""
    use_case = ReconcileCastPoints(
        SqlAlchemyCastRepository(session),
        SqlAlchemyPointTransactionRepository(session),
        SqlAlchemyCastPayoutRepository(session),
    )
    return _unwrap(await use_case.execute())


@router.post("/points/exceeded-pending/transfer", response_model=ExceededPendingTransferResultDTO)
async def transfer_exceeded_pending(
    session: AsyncSession = Depends(get_session),
    policy: PayoutPolicy = Depends(get_payout_policy),
):
    """Credit settled exceeded_pending charges past the hold period to their casts."""
    use_case = TransferExceededPending(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemyPointTransactionRepository(session),
        SqlAlchemyCastRepository(session),
        SqlAlchemyPaymentRepository(session),
        policy,
    )
    return _unwrap(await use_case.execute())
