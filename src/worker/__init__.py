"""Background workers for the cast payout service"""
from .monthly_payout_close import MonthlyPayoutCloseWorker
from .due_payout_dispatcher import DuePayoutDispatcherWorker
from .pending_capture import PendingCaptureWorker
from .points_reconciler import PointsReconcilerWorker
from .guest_grade_updater import GuestGradeUpdaterWorker

__all__ = [
    "MonthlyPayoutCloseWorker",
    "DuePayoutDispatcherWorker",
    "PendingCaptureWorker",
    "PointsReconcilerWorker",
    "GuestGradeUpdaterWorker",
]
