"""Guest grade use cases"""
from .recalculate_guest_grade import RecalculateGuestGrade
from .recalculate_all_guest_grades import RecalculateAllGuestGrades
from .dtos import GuestGradeDTO, GradeBatchResultDTO

__all__ = [
    "RecalculateGuestGrade",
    "RecalculateAllGuestGrades",
    "GuestGradeDTO",
    "GradeBatchResultDTO",
]
