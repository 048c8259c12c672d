"""Asset service: file ingestion, integrity checks and single-asset placement."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from scenes.db.fields import MembershipMetadata
from scenes.db.models import (
    ASSETS_SLUG,
    Asset,
    AssetCollectionMembership,
    AssetGroupMembership,
    Collection,
)
from scenes.db.queries import collection_columns, rows_as_dicts
from scenes.db.services import collection_service, group_service
from scenes.db.services.collection_service import MetadataInput
from scenes.db.transaction import atomic
from scenes.lib.errors import NotFoundError, UploadError
from scenes.lib.storage import AssetStore, LocalAssetStore

logger = logging.getLogger(__name__)

UPLOAD_OK = 0

# Transport-level upload status codes and what they mean
UPLOAD_ERROR_MESSAGES = {
    1: "The uploaded file exceeds the server's maximum upload size",
    2: "The uploaded file exceeds the maximum size allowed by the form",
    3: "The uploaded file was only partially uploaded",
    4: "No file was uploaded",
    6: "Missing a temporary folder",
    7: "Failed to write file to disk",
    8: "An extension stopped the file upload",
}


@dataclass
class UploadedFile:
    """What the transport layer hands over for one uploaded file."""

    filename: str
    tmp_path: Path
    error: int = UPLOAD_OK


# Group operations are implemented once, in group_service
add_to_group = group_service.add_asset_to_group
remove_from_group = group_service.remove_asset_from_group
get_group_assets = group_service.get_group_assets
get_group_membership = group_service.get_group_membership
get_groups = group_service.get_groups_for_asset
update_group_sort_order = group_service.update_group_sort_order
get_group_display_mode = group_service.get_group_display_mode
set_group_display_mode = group_service.set_group_display_mode


async def get_asset(db_session: AsyncSession, asset_id: int) -> Asset | None:
    result = await db_session.execute(select(Asset).where(Asset.id == asset_id))
    return result.scalar_one_or_none()


async def list_assets(
    db_session: AsyncSession,
    limit: int | None = None,
    offset: int = 0,
) -> list[Asset]:
    """List assets, newest first.

    Args:
        db_session: Database session
        limit: Maximum number of results
        offset: Number of results to skip

    Returns:
        List of Asset objects
    """
    query = select(Asset).order_by(Asset.created_at.desc(), Asset.id.desc())
    if offset:
        query = query.offset(offset)
    if limit:
        query = query.limit(limit)
    result = await db_session.execute(query)
    return list(result.scalars().all())


async def count_assets(db_session: AsyncSession) -> int:
    result = await db_session.execute(select(func.count()).select_from(Asset))
    return result.scalar() or 0


async def find_by_filename(db_session: AsyncSession, filename: str, exact: bool = True) -> list[Asset]:
    """Find assets by logical filename, exactly or as a substring."""
    if exact:
        criterion = Asset.filename == filename
    else:
        criterion = Asset.filename.icontains(filename, autoescape=True)
    result = await db_session.execute(select(Asset).where(criterion).order_by(Asset.id))
    return list(result.scalars().all())


async def find_by_filetype(db_session: AsyncSession, filetype: str) -> list[Asset]:
    result = await db_session.execute(
        select(Asset).where(Asset.filetype == filetype).order_by(Asset.id)
    )
    return list(result.scalars().all())


async def find_by_checksum(db_session: AsyncSession, checksum: str) -> Asset | None:
    result = await db_session.execute(
        select(Asset).where(Asset.checksum == checksum).order_by(Asset.id).limit(1)
    )
    return result.scalar_one_or_none()


async def create_from_file(
    db_session: AsyncSession,
    store: AssetStore,
    source_path: Path,
    filename: str | None = None,
) -> int:
    """Copy a file into the store and record it as an asset.

    Size, type and checksum come from the source file. The new asset is also
    placed in the ``assets`` pool collection when that collection exists.

    Raises:
        AssetIOError: The file could not be copied into the store
        StorageError: The row could not be inserted; the copied file stays
    """
    source_path = Path(source_path)
    filename = filename or source_path.name
    stored = await store.ingest(source_path, filename)

    try:
        async with atomic(db_session):
            asset = Asset(
                filename=filename,
                filepath=str(stored.path),
                filetype=stored.content_type,
                filesize=stored.size,
                checksum=stored.checksum,
            )
            db_session.add(asset)
            await db_session.flush()
            asset_id = asset.id

            pool = await collection_service.get_collection_by_slug(db_session, ASSETS_SLUG)
            if pool is not None:
                await collection_service.add_asset(db_session, pool.id, asset_id)
    except Exception:
        logger.warning("Asset row for %s was not saved; orphaned file left at %s", filename, stored.path)
        raise

    logger.info("Created asset %s from %s", asset_id, filename)
    return asset_id


async def upload_file(
    db_session: AsyncSession,
    store: AssetStore,
    upload: UploadedFile,
    destination: Path | None = None,
) -> int:
    """Validate an upload's status code, then ingest its temporary file.

    When ``destination`` is given the file is stored there instead of in
    ``store``.

    Raises:
        UploadError: The transport reported a failed upload
    """
    if upload.error != UPLOAD_OK:
        message = UPLOAD_ERROR_MESSAGES.get(upload.error, "Unknown upload error")
        raise UploadError(upload.error, message)
    if destination is not None:
        store = LocalAssetStore(destination)
    return await create_from_file(db_session, store, upload.tmp_path, upload.filename)


async def delete_asset(
    db_session: AsyncSession,
    store: AssetStore,
    asset_id: int,
    delete_file: bool = True,
) -> bool:
    """Delete an asset row, its placements and, optionally, its file.

    The file is removed only after the rows are committed. A failed unlink is
    logged and leaves the file behind; the row deletion stands.

    Returns:
        False if the asset does not exist
    """
    async with atomic(db_session):
        asset = await get_asset(db_session, asset_id)
        if asset is None:
            return False
        filepath = Path(asset.filepath)

        membership_ids = select(AssetCollectionMembership.id).where(
            AssetCollectionMembership.asset_id == asset_id
        )
        await db_session.execute(
            delete(AssetGroupMembership).where(AssetGroupMembership.membership_id.in_(membership_ids))
        )
        await db_session.execute(
            delete(AssetCollectionMembership).where(AssetCollectionMembership.asset_id == asset_id)
        )
        await db_session.delete(asset)

    if delete_file:
        try:
            await store.delete(filepath)
        except OSError as exc:
            logger.error("Failed to delete file %s of asset %s: %s", filepath, asset_id, exc)
    logger.info("Deleted asset %s", asset_id)
    return True


async def verify_integrity(db_session: AsyncSession, store: AssetStore, asset_id: int) -> bool:
    """Recompute the file checksum and compare it with the stored one.

    A missing asset or file is reported as False, not raised.
    """
    asset = await get_asset(db_session, asset_id)
    if asset is None:
        return False
    current = await store.checksum(Path(asset.filepath))
    return current is not None and current == asset.checksum


async def update_checksum(db_session: AsyncSession, store: AssetStore, asset_id: int) -> bool:
    """Store the current checksum of an asset's file. False if the file is gone."""
    async with atomic(db_session):
        asset = await get_asset(db_session, asset_id)
        if asset is None:
            return False
        current = await store.checksum(Path(asset.filepath))
        if current is None:
            return False
        asset.checksum = current
        await db_session.flush()
    return True


async def get_collections(db_session: AsyncSession, asset_id: int) -> list[dict]:
    """Collections an asset is placed in, by collection name.

    ``description`` is the placement's; the collection's own is returned as
    ``collection_description``.
    """
    result = await db_session.execute(
        select(
            *collection_columns(description_label="collection_description"),
            AssetCollectionMembership.id.label("membership_id"),
            AssetCollectionMembership.display_name,
            AssetCollectionMembership.description,
            AssetCollectionMembership.sort_order,
        )
        .join(AssetCollectionMembership, AssetCollectionMembership.collection_id == Collection.id)
        .where(AssetCollectionMembership.asset_id == asset_id)
        .order_by(Collection.name, AssetCollectionMembership.id)
    )
    return rows_as_dicts(result)


async def add_to_collection(
    db_session: AsyncSession,
    asset_id: int,
    collection_id: int,
    metadata: MetadataInput = None,
) -> int:
    return await collection_service.add_asset(db_session, collection_id, asset_id, metadata)


async def remove_from_collection(db_session: AsyncSession, asset_id: int, collection_id: int) -> bool:
    return await collection_service.remove_asset(db_session, collection_id, asset_id)


async def update_collection_metadata(
    db_session: AsyncSession,
    membership_id: int,
    metadata: MetadataInput,
) -> bool:
    return await collection_service.update_asset_metadata(db_session, membership_id, metadata)


async def copy_metadata_between_collections(
    db_session: AsyncSession,
    asset_id: int,
    source_collection_id: int,
    target_collection_id: int,
) -> bool:
    """Copy an asset's display name and description from one placement to another."""
    async with atomic(db_session):
        result = await db_session.execute(
            select(AssetCollectionMembership)
            .where(
                AssetCollectionMembership.asset_id == asset_id,
                AssetCollectionMembership.collection_id == source_collection_id,
            )
            .order_by(AssetCollectionMembership.id)
            .limit(1)
        )
        source = result.scalar_one_or_none()
        if source is None:
            raise NotFoundError("AssetCollectionMembership", (asset_id, source_collection_id))
        metadata = MembershipMetadata(display_name=source.display_name, description=source.description)
        updated = await db_session.execute(
            update(AssetCollectionMembership)
            .where(
                AssetCollectionMembership.asset_id == asset_id,
                AssetCollectionMembership.collection_id == target_collection_id,
            )
            .values(**metadata.model_dump(include={"display_name", "description"}))
        )
        if updated.rowcount == 0:
            raise NotFoundError("AssetCollectionMembership", (asset_id, target_collection_id))
    return True
