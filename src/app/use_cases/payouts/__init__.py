"""Cast payout use cases"""
from .payout_dispatcher import PayoutDispatcher, DispatchOutcome, classify_gateway_error
from .close_monthly_period import CloseMonthlyPeriod
from .process_due_payouts import ProcessDuePayouts
from .create_instant_payout import CreateInstantPayout
from .approve_instant_payout import ApproveInstantPayout
from .reject_instant_payout import RejectInstantPayout
from .retry_payout import RetryPayout
from .cancel_payout import CancelPayout
from .finalize_payout import FinalizePayout
from .get_cast_payout_summary import GetCastPayoutSummary
from .dtos import (
    InstantPayoutCommandDTO,
    FinalizePayoutCommandDTO,
    CastPayoutDTO,
    ClosePeriodResultDTO,
    ProcessDuePayoutsResultDTO,
    CastPayoutSummaryDTO,
)

__all__ = [
    "PayoutDispatcher",
    "DispatchOutcome",
    "classify_gateway_error",
    "CloseMonthlyPeriod",
    "ProcessDuePayouts",
    "CreateInstantPayout",
    "ApproveInstantPayout",
    "RejectInstantPayout",
    "RetryPayout",
    "CancelPayout",
    "FinalizePayout",
    "GetCastPayoutSummary",
    "InstantPayoutCommandDTO",
    "FinalizePayoutCommandDTO",
    "CastPayoutDTO",
    "ClosePeriodResultDTO",
    "ProcessDuePayoutsResultDTO",
    "CastPayoutSummaryDTO",
]
