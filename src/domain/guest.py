"""Guest Domain Entity

Customer-side account. Only the columns the points and payment engines
read or write are modelled here.
"""

from datetime import datetime
from typing import Optional
from sqlmodel import Field, Column
from sqlalchemy import BigInteger, String
from src.domain.base import BaseModel, BigIntegerPK


class Guest(BaseModel, table=True):
    """
    Guest - spends points

    - points is the running balance, adjusted as ledger rows are written
    - grade / grade_points are derived by the grade engine from buy rows
    - stripe_customer_id is None until the guest registers a card
    """

    __tablename__ = "guests"

    id: int = Field(
        sa_column=Column(BigIntegerPK, primary_key=True, autoincrement=True),
    )

    nickname: Optional[str] = Field(default=None, sa_column=Column(String(100), nullable=True))

    points: int = Field(default=0, sa_column=Column(BigInteger, nullable=False, default=0))

    grade: str = Field(default="green", sa_column=Column(String(20), nullable=False, default="green"))

    grade_points: int = Field(default=0, sa_column=Column(BigInteger, nullable=False, default=0))

    grade_updated_at: Optional[datetime] = Field(default=None)

    stripe_customer_id: Optional[str] = Field(default=None, sa_column=Column(String(255), nullable=True))

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def has_payment_profile(self) -> bool:
        return bool(self.stripe_customer_id)
