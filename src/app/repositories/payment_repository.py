"""Payment Repository Interface"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from src.domain.payment import Payment


class PaymentRepository(ABC):

    @abstractmethod
    async def create(self, payment: Payment) -> Payment:
        pass

    @abstractmethod
    async def get_by_id(self, payment_id: int, for_update: bool = False) -> Optional[Payment]:
        """
        Retrieve payment by ID

        Args:
            payment_id: Payment ID
            for_update: If True, lock the row with SELECT FOR UPDATE

        Returns:
            Payment if found, None otherwise
        """
        pass

    @abstractmethod
    async def get_by_payment_intent_id(self, intent_id: str, for_update: bool = False) -> Optional[Payment]:
        pass

    @abstractmethod
    async def get_by_stripe_payout_id(self, payout_id: str, for_update: bool = False) -> Optional[Payment]:
        pass

    @abstractmethod
    async def get_by_cast_payout_id(self, cast_payout_id: int, for_update: bool = False) -> Optional[Payment]:
        """Most recent Payment recorded for a cast payout"""
        pass

    @abstractmethod
    async def list_capturable(self, now: datetime, limit: int = 500) -> list[Payment]:
        """
        Automatic payments whose delayed capture is due

        Pending, is_automatic, with a provider intent id and
        expires_at <= now.
        """
        pass

    @abstractmethod
    async def save(self, payment: Payment) -> Payment:
        pass
