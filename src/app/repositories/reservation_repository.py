"""Reservation Repository Interface"""

from abc import ABC, abstractmethod
from typing import Optional
from src.domain.reservation import Reservation


class ReservationRepository(ABC):

    @abstractmethod
    async def get_by_id(self, reservation_id: int) -> Optional[Reservation]:
        pass
