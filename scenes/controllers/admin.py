"""Authenticated JSON endpoints for curating collections and assets."""

from __future__ import annotations

import asyncio
import tempfile
from pathlib import Path
from typing import Annotated

from litestar import Controller, Request, delete, get, patch, post
from litestar.datastructures import UploadFile
from litestar.enums import RequestEncodingType
from litestar.exceptions import NotFoundException
from litestar.params import Body
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from scenes.auth.guards import auth_guard
from scenes.db.fields import (
    AssetGroupFields,
    CollectionFields,
    MembershipMetadata,
    RelationshipFields,
    is_valid_slug,
)
from scenes.db.services import asset_service, collection_service, group_service
from scenes.db.services.asset_service import UploadedFile
from scenes.lib.errors import ValidationError
from scenes.lib.storage import AssetStore

# Status codes understood by asset_service.upload_file
UPLOAD_ERR_INI_SIZE = 1
UPLOAD_ERR_NO_FILE = 4


class ModeChoice(BaseModel):
    display_mode: str
    composite: bool = False


class ChildLink(BaseModel):
    child_id: int
    show_metadata: bool = True
    sort_order: int = 0
    display_mode: str = collection_service.DEFAULT_RELATIONSHIP_MODE


class Placement(MembershipMetadata):
    asset_id: int


class NewGroup(AssetGroupFields):
    display_mode: str = group_service.DEFAULT_GROUP_MODE
    composite: bool = False


class GroupMember(BaseModel):
    membership_id: int
    sort_order: int = 0
    move: bool = False


class CloneRequest(CollectionFields):
    with_assets: bool = False


def _check_slug(fields: CollectionFields) -> None:
    if "slug" in fields.model_fields_set and not is_valid_slug(fields.slug or ""):
        raise ValidationError(f"Invalid slug: {fields.slug!r}")


class AdminController(Controller):
    """Write operations. Every handler requires a logged-in session."""

    path = "/admin"
    guards = [auth_guard]

    # -- collections --

    @post("/collections")
    async def create_collection(self, db_session: AsyncSession, data: CollectionFields) -> dict:
        _check_slug(data)
        collection_id = await collection_service.create_collection(db_session, data)
        return {"id": collection_id}

    @patch("/collections/{collection_id:int}")
    async def update_collection(
        self, db_session: AsyncSession, collection_id: int, data: CollectionFields
    ) -> dict:
        _check_slug(data)
        await collection_service.update_collection(db_session, collection_id, data)
        return {"id": collection_id}

    @delete("/collections/{collection_id:int}")
    async def delete_collection(self, db_session: AsyncSession, collection_id: int) -> None:
        if not await collection_service.delete_collection(db_session, collection_id):
            raise NotFoundException("Collection not found")

    @post("/collections/{collection_id:int}/display-mode")
    async def set_display_mode(self, db_session: AsyncSession, collection_id: int, data: ModeChoice) -> dict:
        await collection_service.set_display_mode(db_session, collection_id, data.display_mode)
        return {"id": collection_id, "display_mode": data.display_mode}

    @get("/display-modes")
    async def display_modes(self, db_session: AsyncSession) -> dict:
        """Vocabularies of every display-mode family."""
        return {
            "collection": [mode.name for mode in await collection_service.list_display_modes(db_session)],
            "relationship": [
                mode.name for mode in await collection_service.list_relationship_display_modes(db_session)
            ],
            "group": [mode.name for mode in await collection_service.list_group_display_modes(db_session)],
        }

    @post("/collections/{collection_id:int}/clone")
    async def clone_collection(self, db_session: AsyncSession, collection_id: int, data: CloneRequest) -> dict:
        _check_slug(data)
        overrides = data.model_dump(exclude_unset=True, exclude={"with_assets"})
        if data.with_assets:
            clone_id = await collection_service.clone_collection_with_assets(db_session, collection_id, overrides)
        else:
            clone_id = await collection_service.clone_collection(db_session, collection_id, overrides)
        if clone_id is None:
            raise NotFoundException("Collection not found")
        return {"id": clone_id}

    # -- relationships --

    @post("/collections/{collection_id:int}/children")
    async def add_child(self, db_session: AsyncSession, collection_id: int, data: ChildLink) -> dict:
        relationship_id = await collection_service.add_child(
            db_session,
            collection_id,
            data.child_id,
            show_metadata=data.show_metadata,
            sort_order=data.sort_order,
            display_mode=data.display_mode,
        )
        return {"id": relationship_id}

    @delete("/collections/{collection_id:int}/children/{child_id:int}")
    async def remove_child(self, db_session: AsyncSession, collection_id: int, child_id: int) -> None:
        if not await collection_service.remove_child(db_session, collection_id, child_id):
            raise NotFoundException("Relationship not found")

    @patch("/relationships/{relationship_id:int}")
    async def update_relationship(
        self, db_session: AsyncSession, relationship_id: int, data: RelationshipFields
    ) -> dict:
        await collection_service.update_relationship(db_session, relationship_id, data)
        return {"id": relationship_id}

    # -- placements --

    @post("/collections/{collection_id:int}/assets")
    async def add_asset(self, db_session: AsyncSession, collection_id: int, data: Placement) -> dict:
        metadata = MembershipMetadata.model_validate(data.model_dump(exclude_unset=True, exclude={"asset_id"}))
        membership_id = await collection_service.add_asset(db_session, collection_id, data.asset_id, metadata)
        return {"id": membership_id}

    @delete("/collections/{collection_id:int}/assets/{asset_id:int}")
    async def remove_asset(self, db_session: AsyncSession, collection_id: int, asset_id: int) -> None:
        if not await collection_service.remove_asset(db_session, collection_id, asset_id):
            raise NotFoundException("Asset is not in this collection")

    @patch("/memberships/{membership_id:int}")
    async def update_membership(
        self, db_session: AsyncSession, membership_id: int, data: MembershipMetadata
    ) -> dict:
        await collection_service.update_asset_metadata(db_session, membership_id, data)
        return {"id": membership_id}

    # -- groups --

    @post("/collections/{collection_id:int}/groups")
    async def create_group(self, db_session: AsyncSession, collection_id: int, data: NewGroup) -> dict:
        group_id = await group_service.create_asset_group(
            db_session,
            collection_id,
            name=data.name,
            description=data.description,
            display_mode=data.display_mode,
            composite=data.composite,
        )
        return {"id": group_id}

    @patch("/groups/{group_id:int}")
    async def update_group(self, db_session: AsyncSession, group_id: int, data: AssetGroupFields) -> dict:
        await group_service.update_asset_group(db_session, group_id, data)
        return {"id": group_id}

    @delete("/groups/{group_id:int}")
    async def delete_group(self, db_session: AsyncSession, group_id: int) -> None:
        if not await group_service.delete_asset_group(db_session, group_id):
            raise NotFoundException("Group not found")

    @post("/groups/{group_id:int}/display-mode")
    async def set_group_display_mode(self, db_session: AsyncSession, group_id: int, data: ModeChoice) -> dict:
        await group_service.set_group_display_mode(db_session, group_id, data.display_mode, data.composite)
        return {"id": group_id, "display_mode": data.display_mode, "composite": data.composite}

    @post("/groups/{group_id:int}/members")
    async def add_group_member(self, db_session: AsyncSession, group_id: int, data: GroupMember) -> dict:
        if data.move:
            await group_service.move_asset_to_group(db_session, group_id, data.membership_id, data.sort_order)
        else:
            await group_service.add_asset_to_group(db_session, group_id, data.membership_id, data.sort_order)
        return {"group_id": group_id, "membership_id": data.membership_id}

    @delete("/memberships/{membership_id:int}/group")
    async def remove_group_member(self, db_session: AsyncSession, membership_id: int) -> None:
        if not await group_service.remove_asset_from_group(db_session, membership_id):
            raise NotFoundException("Membership is not in a group")

    # -- assets --

    @post("/assets/upload")
    async def upload_asset(
        self,
        request: Request,
        db_session: AsyncSession,
        data: Annotated[UploadFile, Body(media_type=RequestEncodingType.MULTI_PART)],
    ) -> dict:
        """Store an uploaded file as a new asset."""
        store: AssetStore = request.app.state.asset_store
        content = await data.read()
        filename = data.filename or ""

        error = asset_service.UPLOAD_OK
        if not filename or not content:
            error = UPLOAD_ERR_NO_FILE
        elif len(content) > request.app.state.max_upload_size:
            error = UPLOAD_ERR_INI_SIZE

        tmp_path = await asyncio.to_thread(_write_temp_file, content)
        try:
            asset_id = await asset_service.upload_file(
                db_session, store, UploadedFile(filename=filename, tmp_path=tmp_path, error=error)
            )
        finally:
            await asyncio.to_thread(tmp_path.unlink, missing_ok=True)
        return {"id": asset_id, "filename": filename}

    @delete("/assets/{asset_id:int}")
    async def delete_asset(
        self, request: Request, db_session: AsyncSession, asset_id: int, delete_file: bool = True
    ) -> None:
        store: AssetStore = request.app.state.asset_store
        if not await asset_service.delete_asset(db_session, store, asset_id, delete_file=delete_file):
            raise NotFoundException("Asset not found")

    @get("/assets/{asset_id:int}/verify")
    async def verify_asset(self, request: Request, db_session: AsyncSession, asset_id: int) -> dict:
        if await asset_service.get_asset(db_session, asset_id) is None:
            raise NotFoundException("Asset not found")
        store: AssetStore = request.app.state.asset_store
        return {"id": asset_id, "valid": await asset_service.verify_integrity(db_session, store, asset_id)}

    @post("/assets/{asset_id:int}/checksum")
    async def refresh_checksum(self, request: Request, db_session: AsyncSession, asset_id: int) -> dict:
        store: AssetStore = request.app.state.asset_store
        if not await asset_service.update_checksum(db_session, store, asset_id):
            raise NotFoundException("Asset or its file not found")
        asset = await asset_service.get_asset(db_session, asset_id)
        return {"id": asset_id, "checksum": asset.checksum}


def _write_temp_file(content: bytes) -> Path:
    with tempfile.NamedTemporaryFile(prefix="scenes-upload-", delete=False) as f:
        f.write(content)
        return Path(f.name)
