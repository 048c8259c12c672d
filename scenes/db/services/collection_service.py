"""Collection service: CRUD, the parent/child graph, memberships and clones."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from scenes.db.fields import CollectionFields, MembershipMetadata, RelationshipFields
from scenes.db.models import (
    ASSETS_SLUG,
    ROOT_SLUG,
    Asset,
    AssetCollectionMembership,
    AssetGroup,
    AssetGroupMembership,
    Collection,
    CollectionRelationship,
    RelationshipDisplayMode,
    RelationshipDisplayModeConfiguration,
)
from scenes.db.queries import asset_columns, collection_columns, rows_as_dicts
from scenes.db.services import display_mode_service, group_service
from scenes.db.services.display_mode_service import (
    COLLECTION_MODES,
    GROUP_MODES,
    RELATIONSHIP_MODES,
)
from scenes.db.transaction import atomic
from scenes.lib.errors import NotFoundError, ReservedCollectionError

logger = logging.getLogger(__name__)

DEFAULT_RELATIONSHIP_MODE = "linked"

CollectionInput = CollectionFields | Mapping[str, Any] | None
MetadataInput = MembershipMetadata | Mapping[str, Any] | None

# Re-exported so callers work with one module per aggregate
create_asset_group = group_service.create_asset_group
add_asset_to_group = group_service.add_asset_to_group
move_asset_to_group = group_service.move_asset_to_group
remove_asset_from_group = group_service.remove_asset_from_group
list_asset_groups = group_service.list_asset_groups


# -- collections --


async def create_collection(db_session: AsyncSession, fields: CollectionInput) -> int:
    """Insert a collection from its writable fields.

    Args:
        db_session: Database session
        fields: ``CollectionFields`` or a mapping; unknown keys are ignored

    Returns:
        The new collection's id

    Raises:
        StorageError: On constraint violation (duplicate slug, missing name)
    """
    values = CollectionFields.coerce(fields).changes()
    async with atomic(db_session):
        collection = Collection(**values)
        db_session.add(collection)
        await db_session.flush()
        collection_id = collection.id
    logger.info("Created collection %s (%s)", collection_id, values.get("slug"))
    return collection_id


async def get_collection(db_session: AsyncSession, collection_id: int) -> Collection | None:
    result = await db_session.execute(select(Collection).where(Collection.id == collection_id))
    return result.scalar_one_or_none()


async def _require_collection(db_session: AsyncSession, collection_id: int) -> Collection:
    collection = await get_collection(db_session, collection_id)
    if collection is None:
        raise NotFoundError("Collection", collection_id)
    return collection


async def get_collection_by_slug(db_session: AsyncSession, slug: str) -> Collection | None:
    result = await db_session.execute(select(Collection).where(Collection.slug == slug))
    return result.scalar_one_or_none()


async def list_collections(db_session: AsyncSession) -> list[Collection]:
    result = await db_session.execute(select(Collection).order_by(Collection.name, Collection.id))
    return list(result.scalars().all())


async def get_root(db_session: AsyncSession) -> Collection | None:
    """Return the entry point of the hierarchy."""
    return await get_collection_by_slug(db_session, ROOT_SLUG)


async def ensure_system_collections(db_session: AsyncSession) -> list[str]:
    """Create the reserved ``root`` and ``assets`` collections if missing.

    Returns:
        Slugs of the collections that were created
    """
    created = []
    async with atomic(db_session):
        for slug, name in ((ROOT_SLUG, "Root"), (ASSETS_SLUG, "Assets")):
            if await get_collection_by_slug(db_session, slug) is None:
                await create_collection(db_session, {"slug": slug, "name": name})
                created.append(slug)
    return created


async def update_collection(db_session: AsyncSession, collection_id: int, fields: CollectionInput) -> bool:
    """Update only the fields the caller supplied."""
    values = CollectionFields.coerce(fields).changes()
    async with atomic(db_session):
        collection = await get_collection(db_session, collection_id)
        if collection is None:
            raise NotFoundError("Collection", collection_id)
        for key, value in values.items():
            setattr(collection, key, value)
        await db_session.flush()
    return True


async def delete_collection(db_session: AsyncSession, collection_id: int) -> bool:
    """Delete a collection and every row that depends on it.

    The reserved ``root`` and ``assets`` collections are always refused.

    Returns:
        False if the collection does not exist
    """
    async with atomic(db_session):
        collection = await get_collection(db_session, collection_id)
        if collection is None:
            return False
        if collection.is_reserved:
            raise ReservedCollectionError(collection.slug)

        relationship_ids = (
            await db_session.execute(
                select(CollectionRelationship.id).where(
                    (CollectionRelationship.parent_id == collection_id)
                    | (CollectionRelationship.child_id == collection_id)
                )
            )
        ).scalars().all()
        await display_mode_service.clear_modes(db_session, RELATIONSHIP_MODES, relationship_ids)
        if relationship_ids:
            await db_session.execute(
                delete(CollectionRelationship).where(CollectionRelationship.id.in_(relationship_ids))
            )

        group_ids = (
            await db_session.execute(
                select(AssetGroup.id).where(AssetGroup.collection_id == collection_id)
            )
        ).scalars().all()
        await group_service.delete_groups(db_session, list(group_ids))

        await _delete_memberships(
            db_session, AssetCollectionMembership.collection_id == collection_id
        )
        await display_mode_service.clear_modes(db_session, COLLECTION_MODES, [collection_id])
        await db_session.delete(collection)
    logger.info("Deleted collection %s", collection_id)
    return True


# -- graph --


async def add_child(
    db_session: AsyncSession,
    parent_id: int,
    child_id: int,
    show_metadata: bool = True,
    sort_order: int = 0,
    display_mode: str = DEFAULT_RELATIONSHIP_MODE,
) -> int:
    """Link ``child_id`` under ``parent_id`` and assign the relationship's mode.

    Both rows are written in one transaction.

    Returns:
        The new relationship's id

    Raises:
        NotFoundError: Either collection does not exist
    """
    async with atomic(db_session):
        await _require_collection(db_session, parent_id)
        await _require_collection(db_session, child_id)
        relationship = CollectionRelationship(
            parent_id=parent_id,
            child_id=child_id,
            show_metadata=show_metadata,
            sort_order=sort_order,
        )
        db_session.add(relationship)
        await db_session.flush()
        relationship_id = relationship.id
        await display_mode_service.assign_mode(
            db_session, RELATIONSHIP_MODES, relationship_id, display_mode
        )
    return relationship_id


async def remove_child(db_session: AsyncSession, parent_id: int, child_id: int) -> bool:
    """Unlink a child and drop the relationship's mode rows.

    Returns:
        True if a relationship existed
    """
    async with atomic(db_session):
        result = await db_session.execute(
            select(CollectionRelationship.id).where(
                CollectionRelationship.parent_id == parent_id,
                CollectionRelationship.child_id == child_id,
            )
        )
        relationship_ids = list(result.scalars().all())
        if not relationship_ids:
            return False
        await display_mode_service.clear_modes(db_session, RELATIONSHIP_MODES, relationship_ids)
        await db_session.execute(
            delete(CollectionRelationship).where(CollectionRelationship.id.in_(relationship_ids))
        )
    return True


async def get_relationship(db_session: AsyncSession, relationship_id: int) -> CollectionRelationship | None:
    result = await db_session.execute(
        select(CollectionRelationship).where(CollectionRelationship.id == relationship_id)
    )
    return result.scalar_one_or_none()


async def update_relationship(
    db_session: AsyncSession,
    relationship_id: int,
    fields: RelationshipFields | Mapping[str, Any] | None = None,
    **changes: Any,
) -> bool:
    """Change a relationship's ``show_metadata``, ``sort_order`` or mode."""
    values = RelationshipFields.coerce({**dict(fields or {}), **changes}).changes()
    display_mode = values.pop("display_mode", None)
    async with atomic(db_session):
        relationship = await get_relationship(db_session, relationship_id)
        if relationship is None:
            raise NotFoundError("CollectionRelationship", relationship_id)
        for key, value in values.items():
            setattr(relationship, key, value)
        await db_session.flush()
        if display_mode is not None:
            await display_mode_service.assign_mode(
                db_session, RELATIONSHIP_MODES, relationship_id, display_mode
            )
    return True


async def get_parents(db_session: AsyncSession, collection_id: int) -> list[dict]:
    """Parents of a collection with the linking relationship's columns."""
    result = await db_session.execute(
        select(
            *collection_columns(),
            CollectionRelationship.id.label("relationship_id"),
            CollectionRelationship.show_metadata,
            CollectionRelationship.sort_order,
        )
        .join(CollectionRelationship, CollectionRelationship.parent_id == Collection.id)
        .where(CollectionRelationship.child_id == collection_id)
        .order_by(CollectionRelationship.sort_order, CollectionRelationship.id)
    )
    return rows_as_dicts(result)


async def get_children(db_session: AsyncSession, collection_id: int) -> list[dict]:
    """Children of a collection, in sibling order.

    Each row carries the relationship's ``display_mode`` (None when unset);
    a ``hidden`` mode is left for the renderer to interpret.
    """
    result = await db_session.execute(
        select(
            *collection_columns(),
            CollectionRelationship.id.label("relationship_id"),
            CollectionRelationship.show_metadata,
            CollectionRelationship.sort_order,
            RelationshipDisplayMode.name.label("display_mode"),
        )
        .join(CollectionRelationship, CollectionRelationship.child_id == Collection.id)
        .outerjoin(
            RelationshipDisplayModeConfiguration,
            RelationshipDisplayModeConfiguration.relationship_id == CollectionRelationship.id,
        )
        .outerjoin(
            RelationshipDisplayMode,
            RelationshipDisplayMode.id == RelationshipDisplayModeConfiguration.display_mode_id,
        )
        .where(CollectionRelationship.parent_id == collection_id)
        .order_by(CollectionRelationship.sort_order, CollectionRelationship.id)
    )
    return rows_as_dicts(result)


# -- display modes --


async def set_display_mode(db_session: AsyncSession, collection_id: int, display_mode: str) -> bool:
    async with atomic(db_session):
        if await get_collection(db_session, collection_id) is None:
            raise NotFoundError("Collection", collection_id)
        await display_mode_service.assign_mode(
            db_session, COLLECTION_MODES, collection_id, display_mode
        )
    return True


async def get_display_mode(db_session: AsyncSession, collection_id: int) -> str | None:
    return await display_mode_service.get_mode(db_session, COLLECTION_MODES, collection_id)


async def list_display_modes(db_session: AsyncSession) -> list:
    return await display_mode_service.list_modes(db_session, COLLECTION_MODES)


async def list_relationship_display_modes(db_session: AsyncSession) -> list:
    return await display_mode_service.list_modes(db_session, RELATIONSHIP_MODES)


async def list_group_display_modes(db_session: AsyncSession) -> list:
    return await display_mode_service.list_modes(db_session, GROUP_MODES)


# -- assets --


async def get_assets(db_session: AsyncSession, collection_id: int) -> list[dict]:
    """Every asset placed in a collection, flattened with its group.

    Ungrouped placements come first (group id coalesced to 0), then each
    group's placements; within a bucket by membership ``sort_order``.
    """
    result = await db_session.execute(
        select(
            *asset_columns(),
            AssetCollectionMembership.id.label("membership_id"),
            AssetCollectionMembership.display_name,
            AssetCollectionMembership.description,
            AssetCollectionMembership.sort_order,
            AssetGroup.id.label("group_id"),
            AssetGroup.name.label("group_name"),
            AssetGroup.description.label("group_description"),
        )
        .join(AssetCollectionMembership, AssetCollectionMembership.asset_id == Asset.id)
        .outerjoin(
            AssetGroupMembership,
            AssetGroupMembership.membership_id == AssetCollectionMembership.id,
        )
        .outerjoin(AssetGroup, AssetGroup.id == AssetGroupMembership.group_id)
        .where(AssetCollectionMembership.collection_id == collection_id)
        .order_by(
            func.coalesce(AssetGroup.id, 0),
            AssetCollectionMembership.sort_order,
            AssetCollectionMembership.id,
        )
    )
    return rows_as_dicts(result)


async def add_asset(
    db_session: AsyncSession,
    collection_id: int,
    asset_id: int,
    metadata: MetadataInput = None,
) -> int:
    """Place an asset in a collection.

    Returns:
        The new membership's id

    Raises:
        NotFoundError: The collection or the asset does not exist
    """
    values = MembershipMetadata.coerce(metadata).changes()
    values.setdefault("sort_order", 0)
    async with atomic(db_session):
        await _require_collection(db_session, collection_id)
        if await db_session.scalar(select(Asset.id).where(Asset.id == asset_id)) is None:
            raise NotFoundError("Asset", asset_id)
        membership = AssetCollectionMembership(
            asset_id=asset_id, collection_id=collection_id, **values
        )
        db_session.add(membership)
        await db_session.flush()
        membership_id = membership.id
    return membership_id


async def remove_asset(db_session: AsyncSession, collection_id: int, asset_id: int) -> bool:
    """Remove an asset's placements (and their group rows) from a collection."""
    async with atomic(db_session):
        removed = await _delete_memberships(
            db_session,
            (AssetCollectionMembership.collection_id == collection_id)
            & (AssetCollectionMembership.asset_id == asset_id),
        )
    return removed > 0


async def get_membership(db_session: AsyncSession, membership_id: int) -> AssetCollectionMembership | None:
    result = await db_session.execute(
        select(AssetCollectionMembership).where(AssetCollectionMembership.id == membership_id)
    )
    return result.scalar_one_or_none()


async def update_asset_metadata(
    db_session: AsyncSession,
    membership_id: int,
    metadata: MetadataInput,
) -> bool:
    """Partially update a placement's ``display_name``, ``description`` or ``sort_order``.

    Nothing supplied is a successful no-op.
    """
    values = MembershipMetadata.coerce(metadata).changes()
    if not values:
        return True
    async with atomic(db_session):
        result = await db_session.execute(
            update(AssetCollectionMembership)
            .where(AssetCollectionMembership.id == membership_id)
            .values(**values)
        )
        if result.rowcount == 0:
            raise NotFoundError("AssetCollectionMembership", membership_id)
    return True


# -- clones --


async def clone_collection(
    db_session: AsyncSession,
    source_id: int,
    overrides: CollectionInput = None,
) -> int | None:
    """Copy a collection's fields and display mode into a new collection.

    Relationships and assets are not copied. Without overrides the clone is
    slugged ``<slug>-clone`` and named ``<name> (Clone)``.

    Returns:
        The clone's id, or None if the source does not exist
    """
    async with atomic(db_session):
        source = await get_collection(db_session, source_id)
        if source is None:
            return None
        values = {
            "slug": f"{source.slug}-clone",
            "name": f"{source.name} (Clone)",
            "title": source.title,
            "description": source.description,
            "protected": source.protected,
        }
        values.update(CollectionFields.coerce(overrides).changes())
        clone_id = await create_collection(db_session, values)

        display_mode = await get_display_mode(db_session, source_id)
        if display_mode is not None:
            await display_mode_service.assign_mode(
                db_session, COLLECTION_MODES, clone_id, display_mode
            )
    logger.info("Cloned collection %s as %s", source_id, clone_id)
    return clone_id


async def clone_collection_with_assets(
    db_session: AsyncSession,
    source_id: int,
    overrides: CollectionInput = None,
) -> int | None:
    """Clone a collection together with its groups and asset placements.

    Every group is recreated with its name, description and display settings;
    every placement is recreated with the same metadata and, if grouped, put
    into the matching clone group. The whole clone is one transaction.
    """
    async with atomic(db_session):
        clone_id = await clone_collection(db_session, source_id, overrides)
        if clone_id is None:
            return None

        group_map: dict[int, int] = {}
        for group in await group_service.list_asset_groups(db_session, source_id):
            settings = await group_service.get_group_display_settings(db_session, group.id)
            clone_group = AssetGroup(
                collection_id=clone_id, name=group.name, description=group.description
            )
            db_session.add(clone_group)
            await db_session.flush()
            group_map[group.id] = clone_group.id
            if settings is not None and settings["display_mode"] is not None:
                await display_mode_service.assign_mode(
                    db_session,
                    GROUP_MODES,
                    clone_group.id,
                    settings["display_mode"],
                    composite=settings["composite"],
                )

        result = await db_session.execute(
            select(AssetCollectionMembership, AssetGroupMembership)
            .outerjoin(
                AssetGroupMembership,
                AssetGroupMembership.membership_id == AssetCollectionMembership.id,
            )
            .where(AssetCollectionMembership.collection_id == source_id)
            .order_by(AssetCollectionMembership.id)
        )
        for membership, group_membership in result.all():
            clone_membership = AssetCollectionMembership(
                asset_id=membership.asset_id,
                collection_id=clone_id,
                display_name=membership.display_name,
                description=membership.description,
                sort_order=membership.sort_order,
            )
            db_session.add(clone_membership)
            await db_session.flush()
            if group_membership is not None:
                db_session.add(
                    AssetGroupMembership(
                        group_id=group_map[group_membership.group_id],
                        membership_id=clone_membership.id,
                        sort_order=group_membership.sort_order,
                    )
                )
        await db_session.flush()
    logger.info("Cloned collection %s with assets as %s", source_id, clone_id)
    return clone_id


async def _delete_memberships(db_session: AsyncSession, criterion) -> int:
    """Delete placements matching ``criterion`` along with their group rows."""
    result = await db_session.execute(select(AssetCollectionMembership.id).where(criterion))
    membership_ids = list(result.scalars().all())
    if not membership_ids:
        return 0
    await db_session.execute(
        delete(AssetGroupMembership).where(AssetGroupMembership.membership_id.in_(membership_ids))
    )
    await db_session.execute(
        delete(AssetCollectionMembership).where(AssetCollectionMembership.id.in_(membership_ids))
    )
    return len(membership_ids)
