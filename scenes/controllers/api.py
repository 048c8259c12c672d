"""Read-only JSON API over collections and assets."""

from pathlib import Path

from litestar import Controller, Request, get
from litestar.exceptions import HTTPException, NotAuthorizedException, NotFoundException
from litestar.response import File
from sqlalchemy.ext.asyncio import AsyncSession

from scenes.auth.guards import is_authenticated
from scenes.db.services import (
    asset_service,
    collection_service,
    hierarchy_service,
    search_service,
)
from scenes.lib.storage import AssetStore


class ApiController(Controller):
    path = "/api"

    @get("/collections")
    async def list_collections(self, request: Request, db_session: AsyncSession) -> dict:
        """All collections the caller may see."""
        authenticated = is_authenticated(request)
        collections = [
            hierarchy_service.prepare_collection_data(collection)
            for collection in await collection_service.list_collections(db_session)
            if authenticated or not collection.protected
        ]
        return {"collections": collections}

    @get("/collections/hierarchy")
    async def collection_hierarchy(self, request: Request, db_session: AsyncSession) -> dict:
        root = await collection_service.get_root(db_session)
        if root is None:
            raise NotFoundException("Root collection not found")
        return await hierarchy_service.build_collection_hierarchy(
            db_session, root.id, is_authenticated(request)
        )

    @get("/collections/{slug:str}")
    async def get_collection(self, request: Request, db_session: AsyncSession, slug: str) -> dict:
        authenticated = is_authenticated(request)
        collection = await collection_service.get_collection_by_slug(db_session, slug)
        if collection is None:
            raise NotFoundException("Collection not found")
        if collection.protected and not authenticated:
            raise NotAuthorizedException("Authentication required")
        return await hierarchy_service.assemble_collection(db_session, collection, authenticated)

    @get("/assets/{asset_id:int}")
    async def get_asset(self, request: Request, db_session: AsyncSession, asset_id: int) -> dict:
        asset = await asset_service.get_asset(db_session, asset_id)
        if asset is None:
            raise NotFoundException("Asset not found")
        collections = await asset_service.get_collections(db_session, asset_id)
        if hierarchy_service.requires_authentication(collections) and not is_authenticated(request):
            raise NotAuthorizedException("Authentication required")
        return {
            "asset": hierarchy_service.prepare_asset_data(asset),
            "collections": hierarchy_service.prepare_asset_collections(collections),
        }

    @get("/assets/{asset_id:int}/stream")
    async def stream_asset(self, request: Request, db_session: AsyncSession, asset_id: int) -> File:
        """Send an asset's file inline."""
        asset = await asset_service.get_asset(db_session, asset_id)
        if asset is None:
            raise NotFoundException("Asset not found")
        collections = await asset_service.get_collections(db_session, asset_id)
        if hierarchy_service.requires_authentication(collections) and not is_authenticated(request):
            raise NotAuthorizedException("Authentication required")

        store: AssetStore = request.app.state.asset_store
        if not await store.exists(Path(asset.filepath)):
            raise NotFoundException("Asset file not found")
        return File(
            path=asset.filepath,
            filename=asset.filename,
            media_type=asset.filetype,
            content_disposition_type="inline",
        )

    @get("/search")
    async def search(self, request: Request, db_session: AsyncSession, q: str = "") -> dict:
        query = q.strip()
        if not query:
            raise HTTPException(status_code=400, detail="Search query is required")
        return await search_service.search(db_session, query, is_authenticated(request))
