"""Tests for the local asset store."""

import hashlib
from unittest.mock import patch

import pytest

from scenes.lib.errors import AssetIOError
from scenes.lib.storage import LocalAssetStore
from scenes.lib.storage.local import guess_filetype, stored_name


class TestStoredName:
    def test_name_is_time_and_filename_hash(self):
        digest = hashlib.md5(b"photo.jpg").hexdigest()

        assert stored_name("photo.jpg", 1700000000) == f"1700000000_{digest}.jpg"

    def test_attempt_adds_suffix_before_extension(self):
        digest = hashlib.md5(b"photo.jpg").hexdigest()

        assert stored_name("photo.jpg", 1700000000, 2) == f"1700000000_{digest}_2.jpg"

    def test_no_extension(self):
        assert stored_name("README", 1).endswith(hashlib.md5(b"README").hexdigest())


class TestGuessFiletype:
    def test_known_extension(self):
        assert guess_filetype("photo.png") == "image/png"

    def test_unknown_extension_falls_back_to_extension(self):
        assert guess_filetype("scene.zzq") == "zzq"

    def test_no_extension(self):
        assert guess_filetype("README") == "application/octet-stream"


class TestLocalAssetStore:
    async def test_ingest_copies_file(self, store, make_file):
        source = make_file("photo.jpg", b"pixels")

        stored = await store.ingest(source, "photo.jpg")

        assert stored.path.parent == store.base_path
        assert stored.path.read_bytes() == b"pixels"
        assert stored.size == 6
        assert stored.checksum == hashlib.md5(b"pixels").hexdigest()
        assert stored.content_type == "image/jpeg"
        assert source.exists()

    async def test_same_name_in_same_second_gets_suffix(self, store, make_file):
        source = make_file("photo.jpg", b"pixels")

        with patch("scenes.lib.storage.local.time.time", return_value=1700000000):
            first = await store.ingest(source, "photo.jpg")
            second = await store.ingest(source, "photo.jpg")

        assert first.path != second.path
        assert second.path.stem.endswith("_1")

    async def test_missing_source_raises_asset_io_error(self, store, tmp_path):
        with pytest.raises(AssetIOError):
            await store.ingest(tmp_path / "missing.jpg", "missing.jpg")

    async def test_checksum_of_missing_file_is_none(self, store, tmp_path):
        assert await store.checksum(tmp_path / "missing.jpg") is None

    async def test_delete_removes_file(self, store, make_file):
        stored = await store.ingest(make_file(), "photo.jpg")

        await store.delete(stored.path)

        assert not await store.exists(stored.path)

    async def test_delete_failure_raises_asset_io_error(self, store, tmp_path):
        with patch("pathlib.Path.unlink", side_effect=PermissionError("denied")):
            with pytest.raises(AssetIOError):
                await store.delete(tmp_path / "photo.jpg")

    def test_base_path(self, tmp_path):
        assert LocalAssetStore(tmp_path).base_path == tmp_path
