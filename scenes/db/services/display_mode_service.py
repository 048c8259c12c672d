"""Display-mode assignment shared by collections, relationships and groups.

Every family stores its vocabulary in a lookup table and binds a mode to an
owner through a configuration row. ``assign_mode`` is the only writer of those
rows: it deletes whatever row the owner had and inserts the new one, so an
owner never has more than one active mode.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from scenes.db.models import (
    AssetGroupDisplayMode,
    AssetGroupDisplayModeConfiguration,
    CollectionDisplayMode,
    CollectionDisplayModeConfiguration,
    RelationshipDisplayMode,
    RelationshipDisplayModeConfiguration,
)
from scenes.db.transaction import atomic
from scenes.lib.errors import UnknownDisplayModeError


@dataclass(frozen=True)
class ModeTable:
    """One display-mode family: its lookup table and configuration table."""

    family: str
    lookup: type
    configuration: type
    owner_column: str
    defaults: tuple[str, ...]

    @property
    def owner(self):
        return getattr(self.configuration, self.owner_column)


COLLECTION_MODES = ModeTable(
    family="collection",
    lookup=CollectionDisplayMode,
    configuration=CollectionDisplayModeConfiguration,
    owner_column="collection_id",
    defaults=("grid", "linear", "tabular"),
)

RELATIONSHIP_MODES = ModeTable(
    family="relationship",
    lookup=RelationshipDisplayMode,
    configuration=RelationshipDisplayModeConfiguration,
    owner_column="relationship_id",
    defaults=("linked", "hidden"),
)

GROUP_MODES = ModeTable(
    family="asset group",
    lookup=AssetGroupDisplayMode,
    configuration=AssetGroupDisplayModeConfiguration,
    owner_column="group_id",
    defaults=("linear", "grid", "side-by-side"),
)

MODE_TABLES = (COLLECTION_MODES, RELATIONSHIP_MODES, GROUP_MODES)


async def resolve_mode_id(db_session: AsyncSession, table: ModeTable, mode_name: str) -> int:
    """Look up the id of a named mode, raising if the vocabulary lacks it."""
    result = await db_session.execute(
        select(table.lookup.id).where(table.lookup.name == mode_name)
    )
    mode_id = result.scalar_one_or_none()
    if mode_id is None:
        raise UnknownDisplayModeError(table.family, mode_name)
    return mode_id


async def assign_mode(
    db_session: AsyncSession,
    table: ModeTable,
    owner_id: int,
    mode_name: str,
    **options: Any,
) -> None:
    """Replace the owner's configuration row with one for ``mode_name``.

    Extra keyword options are stored on the configuration row (the asset
    group family uses this for its ``composite`` flag).
    """
    async with atomic(db_session):
        mode_id = await resolve_mode_id(db_session, table, mode_name)
        await db_session.execute(delete(table.configuration).where(table.owner == owner_id))
        db_session.add(
            table.configuration(
                **{table.owner_column: owner_id, "display_mode_id": mode_id},
                **options,
            )
        )
        await db_session.flush()


async def get_mode(db_session: AsyncSession, table: ModeTable, owner_id: int) -> str | None:
    """Return the name of the owner's mode, or None when none is assigned."""
    result = await db_session.execute(
        select(table.lookup.name)
        .join(table.configuration, table.configuration.display_mode_id == table.lookup.id)
        .where(table.owner == owner_id)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_configuration(db_session: AsyncSession, table: ModeTable, owner_id: int):
    """Return the owner's configuration row, or None."""
    result = await db_session.execute(
        select(table.configuration).where(table.owner == owner_id).limit(1)
    )
    return result.scalar_one_or_none()


async def count_configurations(db_session: AsyncSession, table: ModeTable, owner_id: int) -> int:
    result = await db_session.execute(
        select(table.configuration.id).where(table.owner == owner_id)
    )
    return len(result.scalars().all())


async def clear_modes(db_session: AsyncSession, table: ModeTable, owner_ids: Iterable[int]) -> None:
    """Delete the configuration rows of the given owners."""
    owner_ids = list(owner_ids)
    if owner_ids:
        await db_session.execute(delete(table.configuration).where(table.owner.in_(owner_ids)))


async def list_modes(db_session: AsyncSession, table: ModeTable) -> list:
    """Return every mode in a family's vocabulary, in insertion order."""
    result = await db_session.execute(select(table.lookup).order_by(table.lookup.id))
    return list(result.scalars().all())


async def add_mode(
    db_session: AsyncSession,
    table: ModeTable,
    name: str,
    description: str | None = None,
) -> int:
    """Extend a family's vocabulary with a new named mode."""
    async with atomic(db_session):
        mode = table.lookup(name=name, description=description)
        db_session.add(mode)
        await db_session.flush()
        mode_id = mode.id
    return mode_id


async def seed_display_modes(db_session: AsyncSession) -> int:
    """Insert any default mode missing from the lookup tables.

    Returns:
        Number of rows inserted
    """
    inserted = 0
    async with atomic(db_session):
        for table in MODE_TABLES:
            result = await db_session.execute(select(table.lookup.name))
            existing = set(result.scalars().all())
            for name in table.defaults:
                if name not in existing:
                    db_session.add(table.lookup(name=name))
                    inserted += 1
        await db_session.flush()
    return inserted
