"""Dialect-aware INSERT ... ON CONFLICT helpers."""
from typing import Any, Iterable, Optional

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession


def dialect_insert(db: AsyncSession, model):
    dialect = db.bind.dialect.name
    if dialect == "postgresql":
        return postgresql.insert(model)
    if dialect == "sqlite":
        return sqlite.insert(model)
    raise NotImplementedError(f"ON CONFLICT is not supported for dialect {dialect!r}")


async def insert_if_absent(db: AsyncSession, model, values: dict[str, Any]) -> None:
    """Insert a row unless any unique constraint already holds a matching row."""
    stmt = dialect_insert(db, model).values(**values).on_conflict_do_nothing()
    await db.execute(stmt)


async def upsert(
    db: AsyncSession,
    model,
    values: dict[str, Any],
    conflict_columns: Iterable[str],
    update_values: Optional[dict[str, Any]] = None,
) -> None:
    stmt = dialect_insert(db, model).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=list(conflict_columns),
        set_=update_values if update_values is not None else values,
    )
    await db.execute(stmt)
