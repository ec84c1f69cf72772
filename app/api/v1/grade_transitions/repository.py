"""
Data access for grade transitions and the student roster.

Roster mutations go through Core statements on the students table so the affected
row counts are exact; callers own the transaction (nothing here commits).
"""

from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.models import GradeTransition, GradeTransitionHistory, GradeTransitionMapping, Student

students_table = Student.__table__
transitions_table = GradeTransition.__table__


async def find_transition(
    db: AsyncSession,
    transition_id: UUID,
    *,
    for_update: bool = False,
) -> Optional[GradeTransition]:
    """Load a transition with its mappings. for_update locks the header row until commit."""
    stmt = (
        select(GradeTransition)
        .options(selectinload(GradeTransition.mappings))
        .where(GradeTransition.id == transition_id)
        .execution_options(populate_existing=True)
    )
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def list_transitions(
    db: AsyncSession,
    *,
    status_filter: Optional[str] = None,
    academic_year: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> Tuple[List[GradeTransition], int]:
    conditions = []
    if status_filter:
        conditions.append(GradeTransition.status == status_filter)
    if academic_year:
        conditions.append(GradeTransition.academic_year == academic_year)

    total_result = await db.execute(select(func.count()).select_from(GradeTransition).where(*conditions))
    total = total_result.scalar_one()

    stmt = (
        select(GradeTransition)
        .options(selectinload(GradeTransition.mappings))
        .where(*conditions)
        .order_by(GradeTransition.created_at.desc(), GradeTransition.id)
        .limit(limit)
        .offset(offset)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all()), total


async def replace_mappings(
    db: AsyncSession,
    transition: GradeTransition,
    rules: Sequence[Tuple[str, Optional[str]]],
) -> None:
    """Delete existing mappings, then create the new set. Old rows are flushed out first
    so a rule for the same from_class does not collide with the unique constraint."""
    if transition.mappings:
        transition.mappings.clear()
        await db.flush()
    for from_class, to_class in rules:
        transition.mappings.append(GradeTransitionMapping(from_class=from_class, to_class=to_class))


async def create_history_batch(db: AsyncSession, records: Iterable[GradeTransitionHistory]) -> None:
    db.add_all(list(records))
    await db.flush()


async def get_history(db: AsyncSession, transition_id: UUID) -> List[GradeTransitionHistory]:
    result = await db.execute(
        select(GradeTransitionHistory)
        .where(GradeTransitionHistory.transition_id == transition_id)
        .order_by(GradeTransitionHistory.from_class, GradeTransitionHistory.person_name)
    )
    return list(result.scalars().all())


async def get_class_counts(db: AsyncSession) -> Dict[str, int]:
    """Student count per class label, for every label that has students."""
    result = await db.execute(
        select(Student.school_class, func.count(Student.id))
        .where(Student.school_class.is_not(None), Student.school_class != "")
        .group_by(Student.school_class)
    )
    return {class_name: count for class_name, count in result.all() if count > 0}


async def get_student_count_by_class(db: AsyncSession, class_name: str) -> int:
    result = await db.execute(select(func.count(Student.id)).where(Student.school_class == class_name))
    return result.scalar_one()


async def get_distinct_classes(db: AsyncSession) -> List[str]:
    result = await db.execute(
        select(Student.school_class)
        .where(Student.school_class.is_not(None), Student.school_class != "")
        .distinct()
        .order_by(Student.school_class)
    )
    return [row[0] for row in result.all()]


async def get_students_by_classes(
    db: AsyncSession,
    class_names: Sequence[str],
    *,
    for_update: bool = False,
) -> List[Tuple[UUID, str, str]]:
    """(student_id, full_name, school_class) for every student in the given classes."""
    if not class_names:
        return []
    stmt = (
        select(students_table.c.id, students_table.c.full_name, students_table.c.school_class)
        .where(students_table.c.school_class.in_(list(class_names)))
        .order_by(students_table.c.school_class, students_table.c.full_name)
    )
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return [(row.id, row.full_name, row.school_class) for row in result.all()]


async def promote_students(
    db: AsyncSession,
    student_ids: Sequence[UUID],
    class_lookup: Dict[str, str],
) -> int:
    """Move each student to class_lookup[current class] in one statement.
    A single UPDATE means chained rules (1a->2a, 2a->3a) move a student exactly once."""
    if not student_ids or not class_lookup:
        return 0
    stmt = (
        update(students_table)
        .where(
            students_table.c.id.in_(list(student_ids)),
            students_table.c.school_class.in_(list(class_lookup)),
        )
        .values(
            school_class=case(class_lookup, value=students_table.c.school_class),
            updated_at=datetime.now(timezone.utc),
        )
    )
    result = await db.execute(stmt)
    return result.rowcount


async def delete_students(db: AsyncSession, student_ids: Sequence[UUID]) -> int:
    """Delete students by id. Dependent rows are removed by the database's ON DELETE CASCADE."""
    if not student_ids:
        return 0
    result = await db.execute(delete(students_table).where(students_table.c.id.in_(list(student_ids))))
    return result.rowcount


async def restore_student_class(db: AsyncSession, student_id: UUID, school_class: str) -> int:
    """Set one student's class. Returns 0 when the student no longer exists."""
    result = await db.execute(
        update(students_table)
        .where(students_table.c.id == student_id)
        .values(school_class=school_class, updated_at=datetime.now(timezone.utc))
    )
    return result.rowcount


async def set_transition_status(
    db: AsyncSession,
    transition_id: UUID,
    *,
    expected_status: str,
    values: Dict,
) -> int:
    """Conditional status write: only succeeds while the row still has expected_status."""
    result = await db.execute(
        update(transitions_table)
        .where(
            transitions_table.c.id == transition_id,
            transitions_table.c.status == expected_status,
        )
        .values(updated_at=datetime.now(timezone.utc), **values)
    )
    return result.rowcount
