"""Cast Payout Repository Interface"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional, Sequence
from src.domain.cast_payout import CastPayout, CastPayoutStatus, CastPayoutType


class CastPayoutRepository(ABC):
    """
    Repository interface for CastPayout persistence

    Status changes are always made on rows read with for_update=True.
    """

    @abstractmethod
    async def create(self, payout: CastPayout) -> CastPayout:
        pass

    @abstractmethod
    async def get_by_id(self, payout_id: int, for_update: bool = False) -> Optional[CastPayout]:
        pass

    @abstractmethod
    async def exists_for_month(
        self,
        cast_id: int,
        closing_month: str,
        payout_type: CastPayoutType = CastPayoutType.SCHEDULED,
        for_update: bool = False,
    ) -> bool:
        """
        Whether a payout of this type already exists for the closing month

        Any status counts, so a cancelled month is not re-closed automatically.
        """
        pass

    @abstractmethod
    async def list_due(self, run_date: date, limit: int = 500) -> list[CastPayout]:
        """Scheduled or pending payouts with scheduled_payout_date <= run_date, oldest first"""
        pass

    @abstractmethod
    async def list_for_cast(self, cast_id: int, limit: int = 5) -> list[CastPayout]:
        """Most recent payouts first"""
        pass

    @abstractmethod
    async def get_upcoming_scheduled(self, cast_id: int) -> Optional[CastPayout]:
        """Earliest scheduled/pending payout still waiting for its date"""
        pass

    @abstractmethod
    async def sum_points_by_status(self, cast_id: int, statuses: Sequence[CastPayoutStatus]) -> int:
        pass

    @abstractmethod
    async def save(self, payout: CastPayout) -> CastPayout:
        pass
