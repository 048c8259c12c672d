"""Asset groups: sub-partitions of a single collection's assets."""

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from scenes.db.base import Base


class AssetGroup(Base):
    """A named group of placements inside one collection."""

    __tablename__ = "asset_groups"

    # Groups never span collections
    collection_id: Mapped[int] = mapped_column(
        ForeignKey("collections.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class AssetGroupMembership(Base):
    """Links a collection placement (not the asset itself) to a group."""

    __tablename__ = "asset_group_membership"

    group_id: Mapped[int] = mapped_column(
        ForeignKey("asset_groups.id", ondelete="CASCADE"), nullable=False, index=True
    )
    membership_id: Mapped[int] = mapped_column(
        ForeignKey("asset_collection_membership.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
