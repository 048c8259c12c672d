"""Filesystem-backed storage for asset files."""

from scenes.lib.storage.base import AssetStore, StoredFile
from scenes.lib.storage.local import LocalAssetStore

__all__ = ["AssetStore", "LocalAssetStore", "StoredFile"]
