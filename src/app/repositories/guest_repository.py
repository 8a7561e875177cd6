"""Guest Repository Interface"""

from abc import ABC, abstractmethod
from typing import Optional
from src.domain.guest import Guest


class GuestRepository(ABC):

    @abstractmethod
    async def get_by_id(self, guest_id: int, for_update: bool = False) -> Optional[Guest]:
        """
        Retrieve guest by ID

        Args:
            guest_id: Guest ID
            for_update: If True, lock the row with SELECT FOR UPDATE

        Returns:
            Guest if found, None otherwise
        """
        pass

    @abstractmethod
    async def list_page(self, offset: int, limit: int) -> list[Guest]:
        """Guests ordered by ID, for batch jobs"""
        pass

    @abstractmethod
    async def save(self, guest: Guest) -> Guest:
        pass
