"""Assembly of collection views and recursive hierarchies.

These functions turn the flat rows returned by the collection and asset
services into the nested structures the API serves. Protected collections are
never expanded for unauthenticated callers: they appear as stubs so the caller
can see the branch exists without seeing its contents.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from scenes.config import get_settings
from scenes.db.models import Collection
from scenes.db.services import collection_service, group_service

logger = logging.getLogger(__name__)

UrlFor = Callable[[str], str]


def collection_url(slug: str) -> str:
    return f"/api/collections/{slug}"


def asset_url(asset_id: int) -> str:
    return f"/api/assets/{asset_id}"


def asset_stream_url(asset_id: int) -> str:
    return f"/api/assets/{asset_id}/stream"


def _value(source: Mapping[str, Any] | Collection, key: str) -> Any:
    if isinstance(source, Mapping):
        return source.get(key)
    return getattr(source, key)


def collection_stub(collection: Mapping[str, Any] | Collection, url_for: UrlFor = collection_url) -> dict:
    """Leaf node for a collection whose contents the caller may not see."""
    slug = _value(collection, "slug")
    return {
        "id": _value(collection, "id"),
        "slug": slug,
        "name": _value(collection, "name"),
        "protected": True,
        "url": url_for(slug),
    }


async def build_collection_hierarchy(
    db_session: AsyncSession,
    collection_id: int,
    authenticated: bool,
    max_depth: int | None = None,
    url_for: UrlFor = collection_url,
) -> dict | None:
    """Walk the child graph depth-first from ``collection_id``.

    A collection that is already on the current path is emitted as a stub
    marked ``cycle`` instead of being expanded again. Nodes deeper than
    ``max_depth`` are emitted as stubs marked ``truncated``.

    Returns:
        The nested tree, or None if the collection does not exist
    """
    collection = await collection_service.get_collection(db_session, collection_id)
    if collection is None:
        return None
    if max_depth is None:
        max_depth = get_settings().hierarchy.max_depth
    row = {
        "id": collection.id,
        "slug": collection.slug,
        "name": collection.name,
        "title": collection.title,
        "protected": collection.protected,
    }
    return await _build_node(db_session, row, authenticated, max_depth, url_for, path=frozenset(), depth=0)


async def _build_node(
    db_session: AsyncSession,
    row: Mapping[str, Any],
    authenticated: bool,
    max_depth: int,
    url_for: UrlFor,
    path: frozenset[int],
    depth: int,
) -> dict:
    if row["protected"] and not authenticated:
        return collection_stub(row, url_for)

    node_id = row["id"]
    if node_id in path:
        logger.warning("Collection %s is its own ancestor; not expanding it again", node_id)
        return {**_node_fields(row, url_for), "cycle": True}
    if depth >= max_depth:
        return {**_node_fields(row, url_for), "truncated": True}

    path = path | {node_id}
    children = []
    for child in await collection_service.get_children(db_session, node_id):
        children.append(
            await _build_node(db_session, child, authenticated, max_depth, url_for, path, depth + 1)
        )
    return {**_node_fields(row, url_for), "children": children}


def _node_fields(row: Mapping[str, Any], url_for: UrlFor) -> dict:
    return {
        "id": row["id"],
        "slug": row["slug"],
        "name": row["name"],
        "title": row["title"],
        "protected": bool(row["protected"]),
        "url": url_for(row["slug"]),
    }


def group_assets(rows: Iterable[Mapping[str, Any]]) -> tuple[list[dict], list[Mapping[str, Any]]]:
    """Split ``get_assets`` rows into groups and ungrouped placements.

    Groups are returned in first-seen order, each with its rows in query
    order. Every input row lands in exactly one bucket.
    """
    groups: dict[int, dict] = {}
    ungrouped = []
    for row in rows:
        group_id = row.get("group_id")
        if group_id is None:
            ungrouped.append(row)
            continue
        if group_id not in groups:
            groups[group_id] = {
                "id": group_id,
                "name": row.get("group_name"),
                "description": row.get("group_description"),
                "assets": [],
            }
        groups[group_id]["assets"].append(row)
    return list(groups.values()), ungrouped


def prepare_asset_data(asset: Mapping[str, Any] | Any) -> dict:
    """Public view of an asset, with placement metadata when present."""
    asset_id = _value(asset, "id")
    data = {
        "id": asset_id,
        "filename": _value(asset, "filename"),
        "filetype": _value(asset, "filetype"),
        "filesize": _value(asset, "filesize"),
    }
    if isinstance(asset, Mapping):
        for key in ("membership_id", "display_name", "description", "sort_order"):
            if asset.get(key) is not None:
                data[key] = asset[key]
    data["url"] = asset_url(asset_id)
    data["stream_url"] = asset_stream_url(asset_id)
    return data


def prepare_collection_data(collection: Mapping[str, Any] | Collection) -> dict:
    slug = _value(collection, "slug")
    return {
        "id": _value(collection, "id"),
        "slug": slug,
        "name": _value(collection, "name"),
        "title": _value(collection, "title"),
        "description": _value(collection, "description"),
        "protected": bool(_value(collection, "protected")),
        "created_at": _value(collection, "created_at"),
        "updated_at": _value(collection, "updated_at"),
        "url": collection_url(slug),
    }


def prepare_child_collections(children: Iterable[Mapping[str, Any]]) -> list[dict]:
    return [
        {
            "id": child["id"],
            "slug": child["slug"],
            "name": child["name"],
            "title": child["title"],
            "description": child["description"],
            "protected": bool(child["protected"]),
            "relationship_id": child["relationship_id"],
            "show_metadata": bool(child["show_metadata"]),
            "sort_order": child["sort_order"],
            "display_mode": child["display_mode"],
            "url": collection_url(child["slug"]),
        }
        for child in children
    ]


def prepare_asset_collections(collections: Iterable[Mapping[str, Any]]) -> list[dict]:
    """Placements of one asset, as returned by ``asset_service.get_collections``."""
    return [
        {
            "id": collection["id"],
            "slug": collection["slug"],
            "name": collection["name"],
            "title": collection["title"],
            "membership_id": collection["membership_id"],
            "display_name": collection["display_name"],
            "description": collection["description"],
            "sort_order": collection["sort_order"],
            "url": collection_url(collection["slug"]),
        }
        for collection in collections
    ]


def requires_authentication(collections: Iterable[Mapping[str, Any]]) -> bool:
    """True if any placement of an asset is in a protected collection."""
    return any(collection["protected"] for collection in collections)


async def assemble_collection(
    db_session: AsyncSession,
    collection: Collection,
    authenticated: bool,
) -> dict:
    """Everything needed to render one collection.

    Children are listed with their relationship settings; a protected child
    is reduced to a stub for unauthenticated callers.
    """
    children = []
    for child in prepare_child_collections(
        await collection_service.get_children(db_session, collection.id)
    ):
        if child["protected"] and not authenticated:
            children.append(collection_stub(child))
        else:
            children.append(child)

    parents = [
        {
            "id": parent["id"],
            "slug": parent["slug"],
            "name": parent["name"],
            "url": collection_url(parent["slug"]),
        }
        for parent in await collection_service.get_parents(db_session, collection.id)
        if authenticated or not parent["protected"]
    ]

    groups, ungrouped = group_assets(await collection_service.get_assets(db_session, collection.id))
    asset_groups = []
    for group in groups:
        settings = await group_service.get_group_display_settings(db_session, group["id"]) or {}
        asset_groups.append(
            {
                "id": group["id"],
                "name": group["name"],
                "description": group["description"],
                "display_mode": settings.get("display_mode"),
                "composite": settings.get("composite", False),
                "assets": [prepare_asset_data(row) for row in group["assets"]],
            }
        )

    return {
        "collection": prepare_collection_data(collection),
        "display_mode": await collection_service.get_display_mode(db_session, collection.id),
        "parents": parents,
        "children": children,
        "assets": [prepare_asset_data(row) for row in ungrouped],
        "asset_groups": asset_groups,
    }
