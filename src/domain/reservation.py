"""Reservation reference

Reservations are owned elsewhere; the payment engine only needs to know
which cast to notify when a guest's automatic payment fails.
"""

from datetime import datetime
from typing import Optional
from sqlmodel import Field, Column
from src.domain.base import BaseModel, BigIntegerPK


class Reservation(BaseModel, table=True):
    __tablename__ = "reservations"

    id: int = Field(
        sa_column=Column(BigIntegerPK, primary_key=True, autoincrement=True),
    )

    guest_id: int = Field(index=True)

    cast_id: Optional[int] = Field(default=None, index=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)
