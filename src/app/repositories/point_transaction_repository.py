"""Point Transaction Repository Interface

Defines the contract for ledger persistence, including the claim/release
operations the payout engine relies on.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, Sequence
from src.domain.point_transaction import PointTransaction, PointTransactionType


class PointTransactionRepository(ABC):
    """
    Repository interface for PointTransaction persistence

    Unclaimed rows are read with SELECT FOR UPDATE inside the same unit of
    work that claims them, so two payouts can never claim the same row.
    """

    @abstractmethod
    async def create(self, transaction: PointTransaction) -> PointTransaction:
        """
        Append a ledger row

        Args:
            transaction: PointTransaction entity to persist

        Returns:
            Created PointTransaction with generated ID
        """
        pass

    @abstractmethod
    async def get_by_id(
        self, transaction_id: int, for_update: bool = False
    ) -> Optional[PointTransaction]:
        pass

    @abstractmethod
    async def save(self, transaction: PointTransaction) -> PointTransaction:
        """Persist a description relabel"""
        pass

    @abstractmethod
    async def list_by_payment(self, payment_id: int) -> list[PointTransaction]:
        pass

    @abstractmethod
    async def list_for_actor(
        self, actor_type: str, actor_id: int, limit: int = 50, offset: int = 0
    ) -> tuple[list[PointTransaction], int]:
        """
        Transaction history, newest first

        Args:
            actor_type: "guest" or "cast"
            actor_id: Guest or cast ID
            limit: Page size
            offset: Rows to skip

        Returns:
            Tuple of (rows, total count)
        """
        pass

    @abstractmethod
    async def sum_unsettled(self, cast_id: int) -> int:
        """Sum of earnable rows with no cast_payout_id"""
        pass

    @abstractmethod
    async def sum_earnable(self, cast_id: int) -> int:
        """Sum of every earnable row, claimed or not"""
        pass

    @abstractmethod
    async def find_casts_with_unclaimed(self, start: datetime, end: datetime) -> list[int]:
        """Cast IDs owning unclaimed earnable rows created in [start, end)"""
        pass

    @abstractmethod
    async def get_unclaimed_for_cast(
        self,
        cast_id: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        for_update: bool = False,
    ) -> list[PointTransaction]:
        """
        Unclaimed earnable rows, oldest first

        Args:
            cast_id: Cast ID
            start: Inclusive lower bound on created_at (None = unbounded)
            end: Exclusive upper bound on created_at (None = unbounded)
            for_update: If True, lock the rows with SELECT FOR UPDATE

        Returns:
            Candidate rows ordered by (created_at, id)
        """
        pass

    @abstractmethod
    async def claim(self, transaction_ids: Sequence[int], payout_id: int) -> int:
        """
        Assign rows to a payout

        Only rows still unclaimed are updated.

        Returns:
            Number of rows claimed
        """
        pass

    @abstractmethod
    async def release(self, payout_id: int) -> int:
        """
        Clear cast_payout_id on every row claimed by the payout

        Returns:
            Number of rows released
        """
        pass

    @abstractmethod
    async def sum_for_guest(self, guest_id: int, types: Sequence[PointTransactionType]) -> int:
        pass

    @abstractmethod
    async def list_exceeded_pending_due(
        self, cutoff: datetime, exclude_markers: Sequence[str]
    ) -> list[PointTransaction]:
        """
        exceeded_pending rows created at or before cutoff, oldest first

        Rows whose description already carries any of exclude_markers are
        left out.
        """
        pass
