import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

import uuid
from typing import AsyncGenerator, Dict, Iterable, Optional, Tuple

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.auth.security import create_access_token
from app.core.models import Student
from app.db.session import Base, get_db
from app.main import app


TEST_DATABASE_URL = "sqlite+aiosqlite://"

# SQLite has no schemas; put school.* and education.* tables in the main database.
SCHEMA_TRANSLATE_MAP = {"school": None, "education": None}


@pytest.fixture()
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory database per test. StaticPool keeps one shared connection."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        execution_options={"schema_translate_map": SCHEMA_TRANSLATE_MAP},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session for a test and override FastAPI dependency."""
    async_session = async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:

        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            yield session

        app.dependency_overrides[get_db] = override_get_db
        yield session

    app.dependency_overrides.clear()


@pytest.fixture()
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def actor_id() -> uuid.UUID:
    return uuid.uuid4()


def make_auth_headers(
    user_id: uuid.UUID,
    role: str = "ADMIN",
    permissions: Optional[Dict[str, Dict[str, bool]]] = None,
) -> Dict[str, str]:
    token = create_access_token(
        subject={
            "sub": str(user_id),
            "user_id": str(user_id),
            "role": role,
            "permissions": permissions or {},
        }
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def auth_headers(actor_id: uuid.UUID) -> Dict[str, str]:
    return make_auth_headers(actor_id)


async def seed_students(db: AsyncSession, rows: Iterable[Tuple[str, str]]) -> Dict[str, uuid.UUID]:
    """Insert (full_name, school_class) rows; returns full_name -> student id."""
    students = [Student(full_name=name, school_class=school_class) for name, school_class in rows]
    db.add_all(students)
    await db.commit()
    return {s.full_name: s.id for s in students}


async def student_classes(db: AsyncSession) -> Dict[str, str]:
    """Current full_name -> school_class, read straight from the table."""
    result = await db.execute(select(Student.full_name, Student.school_class))
    return {name: school_class for name, school_class in result.all()}
