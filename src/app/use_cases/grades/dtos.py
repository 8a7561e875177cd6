"""Data Transfer Objects for Grade Use Cases"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class GuestGradeDTO(BaseModel):
    """Result of one grade recalculation"""

    guest_id: int
    previous_grade: Optional[str] = None
    grade: str
    grade_points: int = Field(..., description="Cumulative purchased points")
    upgraded: bool = False
    changed: bool = False
    next_grade: Optional[str] = None
    points_to_next_grade: Optional[int] = None
    grade_updated_at: Optional[datetime] = None


class GradeBatchResultDTO(BaseModel):
    total_guests: int
    changed: int
    upgraded: int
    failed: int
    upgrades: list[GuestGradeDTO]
