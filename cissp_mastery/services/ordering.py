"""Gap-free ``position_index`` maintenance for ordered siblings.

Classes are ordered globally, decks within a class, flashcards within a deck
and quiz questions within a flashcard. After every create, move or delete the
siblings are renumbered ``0..n-1``.
"""
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession


async def load_siblings(
    db: AsyncSession,
    model,
    parent_column=None,
    parent_id: Any = None,
    exclude_id: Optional[str] = None,
) -> list:
    stmt = select(model).order_by(model.position_index, model.created_at, model.id)
    if parent_column is not None:
        stmt = stmt.where(parent_column == parent_id)
    if exclude_id is not None:
        stmt = stmt.where(model.id != exclude_id)
    result = await db.scalars(stmt)
    return list(result)


def renumber(items: list) -> None:
    for index, item in enumerate(items):
        if item.position_index != index:
            item.position_index = index


def place(items: list, item, position: Optional[int]) -> None:
    """Insert ``item`` at ``position`` (clamped; None appends) and renumber."""
    if position is None or position > len(items):
        position = len(items)
    items.insert(max(position, 0), item)
    renumber(items)


async def insert_ordered(db: AsyncSession, item, parent_column=None, parent_id: Any = None, position=None) -> None:
    siblings = await load_siblings(db, type(item), parent_column, parent_id)
    place(siblings, item, position)
    db.add(item)


async def move_ordered(db: AsyncSession, item, position: int, parent_column=None, parent_id: Any = None) -> None:
    siblings = await load_siblings(db, type(item), parent_column, parent_id, exclude_id=item.id)
    place(siblings, item, position)


async def compact(db: AsyncSession, model, parent_column=None, parent_id: Any = None) -> None:
    renumber(await load_siblings(db, model, parent_column, parent_id))
