"""Cast Repository Interface"""

from abc import ABC, abstractmethod
from typing import Optional
from src.domain.cast import Cast


class CastRepository(ABC):

    @abstractmethod
    async def get_by_id(self, cast_id: int, for_update: bool = False) -> Optional[Cast]:
        pass

    @abstractmethod
    async def get_by_connect_account_id(self, account_id: str) -> Optional[Cast]:
        pass

    @abstractmethod
    async def get_all(self) -> list[Cast]:
        pass

    @abstractmethod
    async def save(self, cast: Cast) -> Cast:
        pass
