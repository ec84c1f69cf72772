from app.core.models.student import Student
from app.core.models.grade_transition import (
    GradeTransition,
    GradeTransitionHistory,
    GradeTransitionMapping,
)

__all__ = [
    "GradeTransition",
    "GradeTransitionHistory",
    "GradeTransitionMapping",
    "Student",
]
