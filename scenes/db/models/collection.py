"""Collections and the parent/child edges between them."""

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from scenes.db.base import Base

ROOT_SLUG = "root"
ASSETS_SLUG = "assets"
RESERVED_SLUGS = frozenset({ROOT_SLUG, ASSETS_SLUG})


class Collection(Base):
    """A named node in the album hierarchy."""

    __tablename__ = "collections"

    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[str | None] = mapped_column(String(500), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Gates visibility behind authentication
    protected: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    @property
    def is_reserved(self) -> bool:
        return self.slug in RESERVED_SLUGS


class CollectionRelationship(Base):
    """Directed parent -> child edge. A child may sit under many parents."""

    __tablename__ = "collection_relationships"
    __table_args__ = (
        Index("ix_collection_relationships_parent_sort", "parent_id", "sort_order"),
    )

    parent_id: Mapped[int] = mapped_column(
        ForeignKey("collections.id", ondelete="CASCADE"), nullable=False, index=True
    )
    child_id: Mapped[int] = mapped_column(
        ForeignKey("collections.id", ondelete="CASCADE"), nullable=False, index=True
    )
    show_metadata: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
