from scenes.db.models.asset import Asset, AssetCollectionMembership
from scenes.db.models.asset_group import AssetGroup, AssetGroupMembership
from scenes.db.models.collection import (
    ASSETS_SLUG,
    RESERVED_SLUGS,
    ROOT_SLUG,
    Collection,
    CollectionRelationship,
)
from scenes.db.models.display_mode import (
    AssetGroupDisplayMode,
    AssetGroupDisplayModeConfiguration,
    CollectionDisplayMode,
    CollectionDisplayModeConfiguration,
    RelationshipDisplayMode,
    RelationshipDisplayModeConfiguration,
)

__all__ = [
    "ASSETS_SLUG",
    "Asset",
    "AssetCollectionMembership",
    "AssetGroup",
    "AssetGroupDisplayMode",
    "AssetGroupDisplayModeConfiguration",
    "AssetGroupMembership",
    "Collection",
    "CollectionDisplayMode",
    "CollectionDisplayModeConfiguration",
    "CollectionRelationship",
    "RESERVED_SLUGS",
    "ROOT_SLUG",
    "RelationshipDisplayMode",
    "RelationshipDisplayModeConfiguration",
]
