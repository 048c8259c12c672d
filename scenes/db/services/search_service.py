"""Substring search over collections and asset placements."""

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from scenes.db.models import Asset, AssetCollectionMembership, Collection
from scenes.db.services.hierarchy_service import asset_url, collection_url


async def search(db_session: AsyncSession, query: str, authenticated: bool = False) -> dict:
    """Find collections and assets whose text contains ``query``.

    Collections match on name, title or description. Assets match on their
    filename or on a placement's display name or description; each asset is
    reported once, with the metadata of its first matching placement.
    Protected collections and their placements are skipped unless the caller
    is authenticated.
    """
    collection_query = select(
        Collection.id,
        Collection.slug,
        Collection.name,
        Collection.title,
        Collection.description,
    ).where(
        or_(
            Collection.name.icontains(query, autoescape=True),
            Collection.title.icontains(query, autoescape=True),
            Collection.description.icontains(query, autoescape=True),
        )
    )
    if not authenticated:
        collection_query = collection_query.where(Collection.protected.is_(False))
    collection_query = collection_query.order_by(Collection.name, Collection.id)

    asset_query = (
        select(
            Asset.id,
            Asset.filename,
            Asset.filetype,
            Asset.filesize,
            AssetCollectionMembership.display_name,
            AssetCollectionMembership.description,
        )
        .join(AssetCollectionMembership, AssetCollectionMembership.asset_id == Asset.id)
        .join(Collection, Collection.id == AssetCollectionMembership.collection_id)
        .where(
            or_(
                Asset.filename.icontains(query, autoescape=True),
                AssetCollectionMembership.display_name.icontains(query, autoescape=True),
                AssetCollectionMembership.description.icontains(query, autoescape=True),
            )
        )
    )
    if not authenticated:
        asset_query = asset_query.where(Collection.protected.is_(False))
    asset_query = asset_query.order_by(Asset.id, AssetCollectionMembership.id)

    collections = [
        {**row, "url": collection_url(row["slug"])}
        for row in (await db_session.execute(collection_query)).mappings().all()
    ]

    assets: dict[int, dict] = {}
    for row in (await db_session.execute(asset_query)).mappings().all():
        if row["id"] not in assets:
            assets[row["id"]] = {**row, "url": asset_url(row["id"])}

    return {"query": query, "collections": collections, "assets": list(assets.values())}
