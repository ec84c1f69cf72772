import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.grade_transitions import repository

from conftest import seed_students, student_classes


@pytest.mark.asyncio
async def test_class_counts_and_distinct_classes(db_session: AsyncSession) -> None:
    await seed_students(db_session, [("Anna", "1a"), ("Ben", "1a"), ("Cem", "2b"), ("Dora", "")])

    assert await repository.get_class_counts(db_session) == {"1a": 2, "2b": 1}
    assert await repository.get_distinct_classes(db_session) == ["1a", "2b"]
    assert await repository.get_student_count_by_class(db_session, "1a") == 2
    assert await repository.get_student_count_by_class(db_session, "9z") == 0


@pytest.mark.asyncio
async def test_students_by_classes(db_session: AsyncSession) -> None:
    ids = await seed_students(db_session, [("Anna", "1a"), ("Cem", "2b"), ("Emil", "3c")])

    rows = await repository.get_students_by_classes(db_session, ["1a", "2b"])
    assert rows == [(ids["Anna"], "Anna", "1a"), (ids["Cem"], "Cem", "2b")]
    assert await repository.get_students_by_classes(db_session, []) == []
    assert await repository.get_students_by_classes(db_session, ["9z"]) == []


@pytest.mark.asyncio
async def test_promote_and_delete_by_id(db_session: AsyncSession) -> None:
    ids = await seed_students(db_session, [("Anna", "1a"), ("Ben", "2a"), ("Cem", "4a"), ("Dora", "1a")])

    promoted = await repository.promote_students(
        db_session, [ids["Anna"], ids["Ben"]], {"1a": "2a", "2a": "3a"}
    )
    deleted = await repository.delete_students(db_session, [ids["Cem"]])
    await db_session.commit()

    assert promoted == 2
    assert deleted == 1
    # Dora was not in the id list, so she stays put.
    assert await student_classes(db_session) == {"Anna": "2a", "Ben": "3a", "Dora": "1a"}


@pytest.mark.asyncio
async def test_restore_missing_student_affects_no_rows(db_session: AsyncSession) -> None:
    ids = await seed_students(db_session, [("Anna", "2a")])
    await repository.delete_students(db_session, [ids["Anna"]])

    assert await repository.restore_student_class(db_session, ids["Anna"], "1a") == 0
