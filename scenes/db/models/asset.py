"""Asset model and its placements in collections."""

from sqlalchemy import BigInteger, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from scenes.db.base import Base


class Asset(Base):
    """A managed file. Its identity is independent of where it is placed."""

    __tablename__ = "assets"

    filename: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    filepath: Mapped[str] = mapped_column(String(1024), nullable=False)
    filetype: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    filesize: Mapped[int] = mapped_column(BigInteger, nullable=False)
    checksum: Mapped[str] = mapped_column(String(64), nullable=False, index=True)


class AssetCollectionMembership(Base):
    """Placement of an asset in one collection, with per-placement metadata."""

    __tablename__ = "asset_collection_membership"
    __table_args__ = (
        Index("ix_asset_collection_membership_collection_sort", "collection_id", "sort_order"),
    )

    asset_id: Mapped[int] = mapped_column(
        ForeignKey("assets.id", ondelete="CASCADE"), nullable=False, index=True
    )
    collection_id: Mapped[int] = mapped_column(
        ForeignKey("collections.id", ondelete="CASCADE"), nullable=False, index=True
    )
    display_name: Mapped[str | None] = mapped_column(String(500), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
