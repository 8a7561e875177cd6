"""Guest Grade Ladder

Grades are derived from cumulative purchased points. Thresholds are
ascending; a guest holds the highest grade whose threshold they reach.
"""

from typing import Optional

GRADE_THRESHOLDS: list[tuple[str, int]] = [
    ("green", 0),
    ("orange", 100_000),
    ("bronze", 300_000),
    ("silver", 500_000),
    ("gold", 1_000_000),
    ("platinum", 6_000_000),
    ("centurion", 30_000_000),
]

GRADE_NAMES = {
    "green": "Green",
    "orange": "Orange",
    "bronze": "Bronze",
    "silver": "Silver",
    "gold": "Gold",
    "platinum": "Platinum",
    "centurion": "Centurion",
}

DEFAULT_GRADE = GRADE_THRESHOLDS[0][0]


def determine_grade(grade_points: int) -> str:
    grade = DEFAULT_GRADE
    for name, threshold in GRADE_THRESHOLDS:
        if grade_points >= threshold:
            grade = name
    return grade


def grade_rank(grade: Optional[str]) -> int:
    """Position on the ladder; unknown grades rank below green"""
    for index, (name, _) in enumerate(GRADE_THRESHOLDS):
        if name == grade:
            return index
    return -1


def next_grade(grade_points: int) -> Optional[tuple[str, int]]:
    """
    Next grade above the current one

    Returns:
        (grade, points still needed), or None at the top of the ladder
    """
    for name, threshold in GRADE_THRESHOLDS:
        if grade_points < threshold:
            return name, threshold - grade_points
    return None
