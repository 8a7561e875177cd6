"""Cast Domain Entity

Service-provider account that earns points and receives payouts.
"""

from datetime import datetime
from typing import Optional
from sqlmodel import Field, Column
from sqlalchemy import BigInteger, String
from src.domain.base import BaseModel, BigIntegerPK


class Cast(BaseModel, table=True):
    """
    Cast - earns points, receives payouts

    - points is the denormalized balance: raised when earnings are recorded,
      lowered only when a payout is finalized
    - grade selects the payout fee tier
    - payouts need a connected account with payouts enabled
    """

    __tablename__ = "casts"

    id: int = Field(
        sa_column=Column(BigIntegerPK, primary_key=True, autoincrement=True),
    )

    nickname: Optional[str] = Field(default=None, sa_column=Column(String(100), nullable=True))

    points: int = Field(default=0, sa_column=Column(BigInteger, nullable=False, default=0))

    grade: Optional[str] = Field(default=None, sa_column=Column(String(20), nullable=True))

    stripe_connect_account_id: Optional[str] = Field(default=None, sa_column=Column(String(255), nullable=True))

    payouts_enabled: bool = Field(default=False)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def can_receive_payouts(self) -> bool:
        return bool(self.stripe_connect_account_id) and bool(self.payouts_enabled)
