"""Points ledger use cases"""
from .record_point_entry import RecordPointEntry
from .list_point_transactions import ListPointTransactions
from .get_unsettled_balance import GetUnsettledBalance
from .reconcile_cast_points import ReconcileCastPoints
from .transfer_exceeded_pending import TransferExceededPending
from .dtos import (
    RecordPointEntryCommandDTO,
    RecordPointEntryResponseDTO,
    PointTransactionDTO,
    ListPointTransactionsResponseDTO,
    UnsettledBalanceDTO,
    CastPointsDiscrepancyDTO,
    CastPointsReconciliationResultDTO,
    ExceededPendingTransferResultDTO,
)

__all__ = [
    "RecordPointEntry",
    "ListPointTransactions",
    "GetUnsettledBalance",
    "ReconcileCastPoints",
    "TransferExceededPending",
    "RecordPointEntryCommandDTO",
    "RecordPointEntryResponseDTO",
    "PointTransactionDTO",
    "ListPointTransactionsResponseDTO",
    "UnsettledBalanceDTO",
    "CastPointsDiscrepancyDTO",
    "CastPointsReconciliationResultDTO",
    "ExceededPendingTransferResultDTO",
]
