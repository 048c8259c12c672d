"""Asset group service.

Groups partition the placements of one collection. This module is the only
implementation of group membership; the collection and asset services both
delegate here.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from scenes.db.fields import AssetGroupFields
from scenes.db.models import (
    Asset,
    AssetCollectionMembership,
    AssetGroup,
    AssetGroupMembership,
    Collection,
)
from scenes.db.queries import asset_columns, rows_as_dicts
from scenes.db.services import display_mode_service
from scenes.db.services.display_mode_service import GROUP_MODES
from scenes.db.transaction import atomic
from scenes.lib.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_GROUP_MODE = "linear"


async def create_asset_group(
    db_session: AsyncSession,
    collection_id: int,
    name: str | None = None,
    description: str | None = None,
    display_mode: str = DEFAULT_GROUP_MODE,
    composite: bool = False,
) -> int:
    """Create a group inside a collection and assign its display mode.

    Returns:
        The new group's id

    Raises:
        NotFoundError: The collection does not exist
    """
    async with atomic(db_session):
        if await db_session.scalar(select(Collection.id).where(Collection.id == collection_id)) is None:
            raise NotFoundError("Collection", collection_id)
        group = AssetGroup(collection_id=collection_id, name=name, description=description)
        db_session.add(group)
        await db_session.flush()
        group_id = group.id
        await display_mode_service.assign_mode(
            db_session, GROUP_MODES, group_id, display_mode, composite=composite
        )
    return group_id


async def get_asset_group(db_session: AsyncSession, group_id: int) -> AssetGroup | None:
    result = await db_session.execute(select(AssetGroup).where(AssetGroup.id == group_id))
    return result.scalar_one_or_none()


async def list_asset_groups(db_session: AsyncSession, collection_id: int) -> list[AssetGroup]:
    result = await db_session.execute(
        select(AssetGroup)
        .where(AssetGroup.collection_id == collection_id)
        .order_by(AssetGroup.id)
    )
    return list(result.scalars().all())


async def update_asset_group(
    db_session: AsyncSession,
    group_id: int,
    fields: AssetGroupFields | Mapping[str, Any] | None,
) -> bool:
    """Rename a group or change its description.

    Only supplied keys are written, so an explicit ``None`` clears the value.
    """
    values = AssetGroupFields.coerce(fields).changes()
    async with atomic(db_session):
        if await get_asset_group(db_session, group_id) is None:
            raise NotFoundError("AssetGroup", group_id)
        if values:
            await db_session.execute(
                update(AssetGroup).where(AssetGroup.id == group_id).values(**values)
            )
    return True


async def delete_asset_group(db_session: AsyncSession, group_id: int) -> bool:
    """Delete a group. Its placements stay in the collection, ungrouped."""
    async with atomic(db_session):
        if await get_asset_group(db_session, group_id) is None:
            return False
        await delete_groups(db_session, [group_id])
    return True


async def delete_groups(db_session: AsyncSession, group_ids: list[int]) -> None:
    """Remove groups together with their memberships and mode rows."""
    if not group_ids:
        return
    await db_session.execute(
        delete(AssetGroupMembership).where(AssetGroupMembership.group_id.in_(group_ids))
    )
    await display_mode_service.clear_modes(db_session, GROUP_MODES, group_ids)
    await db_session.execute(delete(AssetGroup).where(AssetGroup.id.in_(group_ids)))


async def add_asset_to_group(
    db_session: AsyncSession,
    group_id: int,
    membership_id: int,
    sort_order: int = 0,
) -> bool:
    """Put a placement into a group.

    The placement and the group must belong to the same collection, and the
    placement must not already be grouped; use ``move_asset_to_group`` to
    change a placement's group.
    """
    async with atomic(db_session):
        await _check_same_collection(db_session, group_id, membership_id)
        existing = await get_group_membership(db_session, membership_id)
        if existing is not None:
            raise ValidationError(
                f"Membership {membership_id} already belongs to group {existing['id']}"
            )
        db_session.add(
            AssetGroupMembership(group_id=group_id, membership_id=membership_id, sort_order=sort_order)
        )
        await db_session.flush()
    return True


async def move_asset_to_group(
    db_session: AsyncSession,
    group_id: int,
    membership_id: int,
    sort_order: int = 0,
) -> bool:
    """Move a placement into ``group_id``, leaving any previous group."""
    async with atomic(db_session):
        await _check_same_collection(db_session, group_id, membership_id)
        await db_session.execute(
            delete(AssetGroupMembership).where(AssetGroupMembership.membership_id == membership_id)
        )
        db_session.add(
            AssetGroupMembership(group_id=group_id, membership_id=membership_id, sort_order=sort_order)
        )
        await db_session.flush()
    return True


async def remove_asset_from_group(db_session: AsyncSession, membership_id: int) -> bool:
    """Ungroup a placement. Returns True if it was in a group."""
    async with atomic(db_session):
        result = await db_session.execute(
            delete(AssetGroupMembership).where(AssetGroupMembership.membership_id == membership_id)
        )
    return result.rowcount > 0


async def get_group_assets(db_session: AsyncSession, group_id: int) -> list[dict]:
    """Assets in a group with their placement metadata, in group order."""
    result = await db_session.execute(
        select(
            *asset_columns(),
            AssetCollectionMembership.id.label("membership_id"),
            AssetCollectionMembership.display_name,
            AssetCollectionMembership.description,
            AssetGroupMembership.sort_order.label("group_sort_order"),
        )
        .join(AssetCollectionMembership, AssetCollectionMembership.asset_id == Asset.id)
        .join(AssetGroupMembership, AssetGroupMembership.membership_id == AssetCollectionMembership.id)
        .where(AssetGroupMembership.group_id == group_id)
        .order_by(AssetGroupMembership.sort_order, AssetGroupMembership.id)
    )
    return rows_as_dicts(result)


async def get_group_membership(db_session: AsyncSession, membership_id: int) -> dict | None:
    """The group a placement belongs to, with its sort order in that group."""
    result = await db_session.execute(
        select(
            AssetGroup.id,
            AssetGroup.collection_id,
            AssetGroup.name,
            AssetGroup.description,
            AssetGroupMembership.sort_order,
        )
        .join(AssetGroupMembership, AssetGroupMembership.group_id == AssetGroup.id)
        .where(AssetGroupMembership.membership_id == membership_id)
        .limit(1)
    )
    row = result.mappings().first()
    return dict(row) if row is not None else None


async def get_groups_for_asset(db_session: AsyncSession, asset_id: int) -> list[dict]:
    """Every group an asset sits in, across all collections."""
    result = await db_session.execute(
        select(
            AssetGroup.id,
            AssetGroup.name,
            AssetGroup.description,
            Collection.id.label("collection_id"),
            Collection.name.label("collection_name"),
            AssetGroupMembership.sort_order,
            AssetCollectionMembership.id.label("membership_id"),
        )
        .join(AssetGroupMembership, AssetGroupMembership.group_id == AssetGroup.id)
        .join(AssetCollectionMembership, AssetCollectionMembership.id == AssetGroupMembership.membership_id)
        .join(Collection, Collection.id == AssetGroup.collection_id)
        .where(AssetCollectionMembership.asset_id == asset_id)
        .order_by(Collection.name, AssetGroup.name, AssetGroup.id)
    )
    return rows_as_dicts(result)


async def update_group_sort_order(db_session: AsyncSession, membership_id: int, sort_order: int) -> bool:
    """Change a placement's position within its group."""
    async with atomic(db_session):
        result = await db_session.execute(
            update(AssetGroupMembership)
            .where(AssetGroupMembership.membership_id == membership_id)
            .values(sort_order=sort_order)
        )
        if result.rowcount == 0:
            raise NotFoundError("AssetGroupMembership", membership_id)
    return True


async def set_group_display_mode(
    db_session: AsyncSession,
    group_id: int,
    display_mode: str,
    composite: bool = False,
) -> bool:
    async with atomic(db_session):
        if await get_asset_group(db_session, group_id) is None:
            raise NotFoundError("AssetGroup", group_id)
        await display_mode_service.assign_mode(
            db_session, GROUP_MODES, group_id, display_mode, composite=composite
        )
    return True


async def get_group_display_mode(db_session: AsyncSession, group_id: int) -> str | None:
    return await display_mode_service.get_mode(db_session, GROUP_MODES, group_id)


async def get_group_display_settings(db_session: AsyncSession, group_id: int) -> dict | None:
    """Display mode name and composite flag of a group, or None if unset."""
    configuration = await display_mode_service.get_configuration(db_session, GROUP_MODES, group_id)
    if configuration is None:
        return None
    mode = await display_mode_service.get_mode(db_session, GROUP_MODES, group_id)
    return {"display_mode": mode, "composite": configuration.composite}


async def _check_same_collection(db_session: AsyncSession, group_id: int, membership_id: int) -> None:
    group = await get_asset_group(db_session, group_id)
    if group is None:
        raise NotFoundError("AssetGroup", group_id)
    result = await db_session.execute(
        select(AssetCollectionMembership.collection_id).where(
            AssetCollectionMembership.id == membership_id
        )
    )
    collection_id = result.scalar_one_or_none()
    if collection_id is None:
        raise NotFoundError("AssetCollectionMembership", membership_id)
    if collection_id != group.collection_id:
        raise ValidationError(
            f"Membership {membership_id} is not in the collection of group {group_id}"
        )
