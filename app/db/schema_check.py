"""
Create the school/education schemas and grade transition tables if missing.

    python -m app.db.schema_check
"""

import asyncio
import logging
from typing import Dict, List, Tuple

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

import app.core.models  # noqa: F401  (registers tables on Base.metadata)
from app.db.session import Base, engine

logger = logging.getLogger(__name__)


REQUIRED_TABLES: List[Tuple[str, str]] = [
    ("school", "students"),
    ("education", "grade_transitions"),
    ("education", "grade_transition_mappings"),
    ("education", "grade_transition_history"),
]


CREATE_SCHEMA_SQL: Dict[str, str] = {
    "school": "CREATE SCHEMA IF NOT EXISTS school;",
    "education": "CREATE SCHEMA IF NOT EXISTS education;",
}


async def ensure_tables(db_engine: AsyncEngine) -> List[str]:
    """
    Ensure that all required schemas/tables exist in the connected database.
    Missing tables are created from the ORM metadata. Returns the names that were created.
    """
    async with db_engine.begin() as conn:
        for ddl in CREATE_SCHEMA_SQL.values():
            await conn.execute(text(ddl))

        missing: List[str] = []
        for schema, table in REQUIRED_TABLES:
            full_name = f"{schema}.{table}"
            result = await conn.execute(text("SELECT to_regclass(:relname)"), {"relname": full_name})
            if result.scalar() is None:
                missing.append(full_name)

        await conn.run_sync(Base.metadata.create_all)

    if missing:
        logger.info("Created missing tables: %s", ", ".join(missing))
    else:
        logger.info("All grade transition tables already exist in the database.")
    return missing


async def main() -> None:
    logging.basicConfig(level=logging.INFO)
    await ensure_tables(engine)


if __name__ == "__main__":
    asyncio.run(main())
