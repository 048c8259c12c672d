"""End-to-end tests of the HTTP surface using Litestar's TestClient."""

import asyncio
import hashlib

import pytest
from litestar.testing import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from scenes.app_factory import build_session_config, create_app
from scenes.auth.guards import SESSION_USER_ID
from scenes.config import DatabaseConfig, Settings, StorageConfig
from scenes.db.base import Base
from scenes.db.services import asset_service, collection_service
from scenes.db.services.display_mode_service import seed_display_modes
from scenes.lib.storage import LocalAssetStore


@pytest.fixture
def site(tmp_path):
    """A database with a small album: root -> (public, private), one asset in each.

    Returns (settings, ids).
    """
    db_url = f"sqlite+aiosqlite:///{tmp_path / 'api.db'}"
    asset_dir = tmp_path / "assets"
    source = tmp_path / "sunset.jpg"
    source.write_bytes(b"jpeg bytes")

    async def _setup():
        engine = create_async_engine(db_url)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        async with session_maker() as session:
            await seed_display_modes(session)
            await collection_service.ensure_system_collections(session)
            root = await collection_service.get_root(session)
            public_id = await collection_service.create_collection(
                session, {"slug": "public", "name": "Public", "description": "Sunsets"}
            )
            private_id = await collection_service.create_collection(
                session, {"slug": "private", "name": "Private", "protected": True}
            )
            await collection_service.add_child(session, root.id, public_id, sort_order=0)
            await collection_service.add_child(session, root.id, private_id, sort_order=1)

            store = LocalAssetStore(asset_dir)
            public_asset = await asset_service.create_from_file(session, store, source)
            private_asset = await asset_service.create_from_file(session, store, source, "secret.jpg")
            public_membership = await collection_service.add_asset(session, public_id, public_asset)
            await collection_service.add_asset(session, private_id, private_asset)
            root_id = root.id
        await engine.dispose()
        return {
            "root": root_id,
            "public": public_id,
            "private": private_id,
            "public_asset": public_asset,
            "private_asset": private_asset,
            "public_membership": public_membership,
        }

    ids = asyncio.run(_setup())
    settings = Settings(
        secret_key="test-secret-key",
        debug=True,
        db=DatabaseConfig(url=db_url),
        storage=StorageConfig(asset_dir=str(asset_dir)),
    )
    return settings, ids


@pytest.fixture
def client(site):
    settings, _ = site
    with TestClient(create_app(settings)) as client:
        yield client


@pytest.fixture
def admin_client(site):
    """A client whose session carries a logged-in user."""
    settings, _ = site
    app = create_app(settings)
    with TestClient(app, session_config=build_session_config(settings)) as client:
        client.set_session_data({SESSION_USER_ID: 1})
        yield client


class TestPublicApi:
    def test_list_hides_protected_collections(self, client):
        resp = client.get("/api/collections")

        assert resp.status_code == 200
        slugs = {collection["slug"] for collection in resp.json()["collections"]}
        assert "public" in slugs
        assert "private" not in slugs

    def test_hierarchy_stubs_protected_branch(self, client):
        resp = client.get("/api/collections/hierarchy")

        assert resp.status_code == 200
        public, private = resp.json()["children"]
        assert public["slug"] == "public"
        assert public["children"] == []
        assert private["protected"] is True
        assert "children" not in private

    def test_collection_view(self, client, site):
        _, ids = site
        resp = client.get("/api/collections/public")

        assert resp.status_code == 200
        body = resp.json()
        assert body["collection"]["slug"] == "public"
        assert [asset["id"] for asset in body["assets"]] == [ids["public_asset"]]
        assert body["parents"][0]["slug"] == "root"

    def test_missing_collection_is_404(self, client):
        resp = client.get("/api/collections/nope")

        assert resp.status_code == 404
        assert resp.json()["detail"] == "Collection not found"

    def test_protected_collection_needs_login(self, client):
        assert client.get("/api/collections/private").status_code == 401

    def test_asset_and_stream(self, client, site):
        _, ids = site
        resp = client.get(f"/api/assets/{ids['public_asset']}")
        assert resp.status_code == 200
        assert resp.json()["asset"]["filename"] == "sunset.jpg"

        stream = client.get(f"/api/assets/{ids['public_asset']}/stream")
        assert stream.status_code == 200
        assert stream.content == b"jpeg bytes"

    def test_asset_in_protected_collection_needs_login(self, client, site):
        _, ids = site

        assert client.get(f"/api/assets/{ids['private_asset']}").status_code == 401
        assert client.get(f"/api/assets/{ids['private_asset']}/stream").status_code == 401

    def test_search(self, client):
        resp = client.get("/api/search", params={"q": "sunset"})

        assert resp.status_code == 200
        body = resp.json()
        assert [row["slug"] for row in body["collections"]] == ["public"]
        assert [row["filename"] for row in body["assets"]] == ["sunset.jpg"]

    def test_empty_search_is_400(self, client):
        assert client.get("/api/search", params={"q": "  "}).status_code == 400


class TestAdminApi:
    def test_writes_need_login(self, client):
        resp = client.post("/admin/collections", json={"slug": "new", "name": "New"})

        assert resp.status_code == 401

    def test_display_modes_need_login(self, client):
        assert client.get("/admin/display-modes").status_code == 401

    def test_logged_in_user_reaches_admin(self, admin_client):
        resp = admin_client.get("/admin/display-modes")

        assert resp.status_code == 200
        body = resp.json()
        assert body["collection"] == ["grid", "linear", "tabular"]
        assert body["relationship"] == ["linked", "hidden"]
        assert body["group"] == ["linear", "grid", "side-by-side"]


class TestAdminCollections:
    def test_create_update_delete(self, admin_client):
        created = admin_client.post("/admin/collections", json={"slug": "beach", "name": "Beach"})
        assert created.status_code == 201
        collection_id = created.json()["id"]

        patched = admin_client.patch(f"/admin/collections/{collection_id}", json={"title": "At the beach"})
        assert patched.status_code == 200
        assert admin_client.get("/api/collections/beach").json()["collection"]["title"] == "At the beach"

        assert admin_client.delete(f"/admin/collections/{collection_id}").status_code == 204
        assert admin_client.get("/api/collections/beach").status_code == 404
        assert admin_client.delete(f"/admin/collections/{collection_id}").status_code == 404

    def test_invalid_slug_is_400(self, admin_client):
        resp = admin_client.post("/admin/collections", json={"slug": "no spaces", "name": "Bad"})

        assert resp.status_code == 400

    def test_update_missing_collection_is_404(self, admin_client):
        assert admin_client.patch("/admin/collections/999", json={"name": "x"}).status_code == 404

    def test_reserved_collection_cannot_be_deleted(self, admin_client, site):
        _, ids = site
        resp = admin_client.delete(f"/admin/collections/{ids['root']}")

        assert resp.status_code == 400
        assert "reserved" in resp.json()["detail"]

    def test_set_display_mode(self, admin_client, site):
        _, ids = site
        resp = admin_client.post(
            f"/admin/collections/{ids['public']}/display-mode", json={"display_mode": "tabular"}
        )

        assert resp.status_code == 201
        assert admin_client.get("/api/collections/public").json()["display_mode"] == "tabular"

    def test_unknown_display_mode_is_400(self, admin_client, site):
        _, ids = site
        resp = admin_client.post(
            f"/admin/collections/{ids['public']}/display-mode", json={"display_mode": "spiral"}
        )

        assert resp.status_code == 400

    def test_clone_with_assets(self, admin_client, site):
        _, ids = site
        resp = admin_client.post(
            f"/admin/collections/{ids['public']}/clone",
            json={"slug": "public-copy", "name": "Public copy", "with_assets": True},
        )

        assert resp.status_code == 201
        copy = admin_client.get("/api/collections/public-copy").json()
        assert [asset["id"] for asset in copy["assets"]] == [ids["public_asset"]]

    def test_clone_missing_source_is_404(self, admin_client):
        assert admin_client.post("/admin/collections/999/clone", json={}).status_code == 404


class TestAdminRelationships:
    def test_add_update_remove_child(self, admin_client, site):
        _, ids = site
        child_id = admin_client.post("/admin/collections", json={"slug": "extra", "name": "Extra"}).json()["id"]

        added = admin_client.post(
            f"/admin/collections/{ids['root']}/children", json={"child_id": child_id, "sort_order": 2}
        )
        assert added.status_code == 201
        relationship_id = added.json()["id"]

        patched = admin_client.patch(f"/admin/relationships/{relationship_id}", json={"display_mode": "hidden"})
        assert patched.status_code == 200
        children = admin_client.get("/api/collections/root").json()["children"]
        assert [child["slug"] for child in children] == ["public", "private", "extra"]
        assert children[-1]["display_mode"] == "hidden"

        assert admin_client.delete(f"/admin/collections/{ids['root']}/children/{child_id}").status_code == 204
        assert admin_client.delete(f"/admin/collections/{ids['root']}/children/{child_id}").status_code == 404

    def test_missing_child_is_404(self, admin_client, site):
        _, ids = site
        resp = admin_client.post(f"/admin/collections/{ids['root']}/children", json={"child_id": 999})

        assert resp.status_code == 404
        assert resp.json()["detail"] == "Collection not found: 999"

    def test_missing_relationship_is_404(self, admin_client):
        assert admin_client.patch("/admin/relationships/999", json={"sort_order": 1}).status_code == 404


class TestAdminPlacements:
    def test_place_update_and_remove(self, admin_client, site):
        _, ids = site
        placed = admin_client.post(
            f"/admin/collections/{ids['public']}/assets",
            json={"asset_id": ids["private_asset"], "display_name": "Second", "sort_order": 1},
        )
        assert placed.status_code == 201
        membership_id = placed.json()["id"]

        patched = admin_client.patch(f"/admin/memberships/{membership_id}", json={"display_name": "Renamed"})
        assert patched.status_code == 200
        assets = admin_client.get("/api/collections/public").json()["assets"]
        assert [asset.get("display_name") for asset in assets] == [None, "Renamed"]

        removed = admin_client.delete(f"/admin/collections/{ids['public']}/assets/{ids['private_asset']}")
        assert removed.status_code == 204
        again = admin_client.delete(f"/admin/collections/{ids['public']}/assets/{ids['private_asset']}")
        assert again.status_code == 404

    def test_missing_asset_is_404(self, admin_client, site):
        _, ids = site
        resp = admin_client.post(f"/admin/collections/{ids['public']}/assets", json={"asset_id": 999})

        assert resp.status_code == 404
        assert resp.json()["detail"] == "Asset not found: 999"

    def test_placement_in_missing_collection_is_404(self, admin_client, site):
        _, ids = site
        resp = admin_client.post("/admin/collections/999/assets", json={"asset_id": ids["public_asset"]})

        assert resp.status_code == 404

    def test_missing_membership_is_404(self, admin_client):
        assert admin_client.patch("/admin/memberships/999", json={"display_name": "x"}).status_code == 404


class TestAdminGroups:
    def _groups(self, client):
        return client.get("/api/collections/public").json()["asset_groups"]

    def test_group_lifecycle(self, admin_client, site):
        _, ids = site
        membership_id = ids["public_membership"]
        first = admin_client.post(
            f"/admin/collections/{ids['public']}/groups",
            json={"name": "Pair", "description": "Two shots", "display_mode": "grid", "composite": True},
        )
        assert first.status_code == 201
        first_id = first.json()["id"]

        joined = admin_client.post(f"/admin/groups/{first_id}/members", json={"membership_id": membership_id})
        assert joined.status_code == 201
        [group] = self._groups(admin_client)
        assert group["id"] == first_id
        assert group["display_mode"] == "grid"
        assert group["composite"] is True

        cleared = admin_client.patch(f"/admin/groups/{first_id}", json={"description": None})
        assert cleared.status_code == 200
        [group] = self._groups(admin_client)
        assert group["name"] == "Pair"
        assert group["description"] is None

        second = admin_client.post(f"/admin/collections/{ids['public']}/groups", json={"name": "Other"})
        second_id = second.json()["id"]
        duplicate = admin_client.post(f"/admin/groups/{second_id}/members", json={"membership_id": membership_id})
        assert duplicate.status_code == 400
        moved = admin_client.post(
            f"/admin/groups/{second_id}/members", json={"membership_id": membership_id, "move": True}
        )
        assert moved.status_code == 201
        assert [group["id"] for group in self._groups(admin_client)] == [second_id]

        assert admin_client.delete(f"/admin/memberships/{membership_id}/group").status_code == 204
        assert admin_client.delete(f"/admin/memberships/{membership_id}/group").status_code == 404
        assert self._groups(admin_client) == []

        assert admin_client.delete(f"/admin/groups/{first_id}").status_code == 204
        assert admin_client.delete(f"/admin/groups/{first_id}").status_code == 404

    def test_group_in_missing_collection_is_404(self, admin_client):
        assert admin_client.post("/admin/collections/999/groups", json={"name": "x"}).status_code == 404

    def test_update_missing_group_is_404(self, admin_client):
        assert admin_client.patch("/admin/groups/999", json={"name": "x"}).status_code == 404


class TestAdminAssets:
    def test_upload_above_default_body_limit(self, admin_client):
        content = b"x" * (12 * 1024 * 1024)

        resp = admin_client.post("/admin/assets/upload", files={"data": ("big.jpg", content, "image/jpeg")})

        assert resp.status_code == 201
        asset_id = resp.json()["id"]
        assert admin_client.get(f"/admin/assets/{asset_id}/verify").json() == {"id": asset_id, "valid": True}

        checksum = admin_client.post(f"/admin/assets/{asset_id}/checksum")
        assert checksum.status_code == 201
        assert checksum.json()["checksum"] == hashlib.md5(content).hexdigest()

    def test_upload_over_configured_limit_is_400(self, site):
        settings, _ = site
        settings.storage.max_upload_size = 1024
        app = create_app(settings)
        with TestClient(app, session_config=build_session_config(settings)) as client:
            client.set_session_data({SESSION_USER_ID: 1})
            resp = client.post("/admin/assets/upload", files={"data": ("big.jpg", b"x" * 2048, "image/jpeg")})

        assert resp.status_code == 400
        assert resp.json()["detail"].startswith("File upload error")

    def test_delete_asset(self, admin_client, site):
        _, ids = site

        assert admin_client.delete(f"/admin/assets/{ids['public_asset']}").status_code == 204
        assert admin_client.get(f"/api/assets/{ids['public_asset']}").status_code == 404
        assert admin_client.delete(f"/admin/assets/{ids['public_asset']}").status_code == 404

    def test_verify_and_checksum_of_missing_asset_are_404(self, admin_client):
        assert admin_client.get("/admin/assets/999/verify").status_code == 404
        assert admin_client.post("/admin/assets/999/checksum").status_code == 404
