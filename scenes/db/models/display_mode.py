"""Display-mode vocabularies and the rows that assign them.

Each family has a lookup table of named modes and a configuration table that
binds at most one mode to an owner (collection, relationship or asset group).
New modes are added by inserting a lookup row.
"""

from sqlalchemy import Boolean, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from scenes.db.base import ConfigBase


class CollectionDisplayMode(ConfigBase):
    __tablename__ = "collection_display_modes"

    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)


class CollectionDisplayModeConfiguration(ConfigBase):
    __tablename__ = "collection_display_mode_configuration"

    collection_id: Mapped[int] = mapped_column(
        ForeignKey("collections.id", ondelete="CASCADE"), nullable=False, index=True
    )
    display_mode_id: Mapped[int] = mapped_column(
        ForeignKey("collection_display_modes.id"), nullable=False
    )


class RelationshipDisplayMode(ConfigBase):
    __tablename__ = "relationship_display_modes"

    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)


class RelationshipDisplayModeConfiguration(ConfigBase):
    __tablename__ = "relationship_display_mode_configuration"

    relationship_id: Mapped[int] = mapped_column(
        ForeignKey("collection_relationships.id", ondelete="CASCADE"), nullable=False, index=True
    )
    display_mode_id: Mapped[int] = mapped_column(
        ForeignKey("relationship_display_modes.id"), nullable=False
    )


class AssetGroupDisplayMode(ConfigBase):
    __tablename__ = "asset_group_display_modes"

    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)


class AssetGroupDisplayModeConfiguration(ConfigBase):
    __tablename__ = "asset_group_display_mode_configuration"

    group_id: Mapped[int] = mapped_column(
        ForeignKey("asset_groups.id", ondelete="CASCADE"), nullable=False, index=True
    )
    display_mode_id: Mapped[int] = mapped_column(
        ForeignKey("asset_group_display_modes.id"), nullable=False
    )

    # Render the group as one flattened image with a clickable region map
    composite: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
