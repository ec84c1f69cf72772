"""
Mapping suggestions from class naming. Labels like "1a" or "10c" are read as
<grade number><letters>; the next grade keeps the letters ("1a" -> "2a").
Advisory only: nothing here touches the database.
"""

import re
from typing import Dict, List

from .schemas import SuggestedMapping

CLASS_LABEL_PATTERN = re.compile(r"^([0-9]+)([a-zA-Z]+)$")

# Grades at or above this are assumed to be the final grade of the school.
GRADUATING_GRADE = 4


def suggest_for_class(class_name: str, student_count: int, graduating_grade: int = GRADUATING_GRADE) -> SuggestedMapping:
    match = CLASS_LABEL_PATTERN.match(class_name)
    if not match:
        return SuggestedMapping(from_class=class_name, to_class=None, student_count=student_count, is_graduating=True)

    grade = int(match.group(1))
    letters = match.group(2)
    if grade >= graduating_grade:
        return SuggestedMapping(from_class=class_name, to_class=None, student_count=student_count, is_graduating=True)
    return SuggestedMapping(
        from_class=class_name,
        to_class=f"{grade + 1}{letters}",
        student_count=student_count,
        is_graduating=False,
    )


def build_suggestions(class_counts: Dict[str, int], graduating_grade: int = GRADUATING_GRADE) -> List[SuggestedMapping]:
    """One suggestion per class with students, sorted by from_class."""
    suggestions = [
        suggest_for_class(class_name, count, graduating_grade)
        for class_name, count in class_counts.items()
        if count > 0
    ]
    suggestions.sort(key=lambda s: s.from_class)
    return suggestions
