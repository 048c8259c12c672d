"""Typed writable-field sets for each entity.

Services accept either one of these models or a plain mapping. Mappings are
validated into the model, which drops any key that is not a writable column,
so unknown input never reaches the database.
"""

import re
from collections.abc import Mapping
from typing import Any, ClassVar, Self

from pydantic import BaseModel, ConfigDict

SLUG_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


def is_valid_slug(slug: str) -> bool:
    """Return True for URL-safe slugs (letters, digits, dashes, underscores)."""
    return bool(slug) and SLUG_PATTERN.match(slug) is not None


class WritableFields(BaseModel):
    model_config = ConfigDict(extra="ignore")

    # Columns that are NOT NULL; a None value for these is treated as "not supplied"
    non_nullable: ClassVar[frozenset[str]] = frozenset()

    @classmethod
    def coerce(cls, data: Self | Mapping[str, Any] | None) -> Self:
        if data is None:
            return cls()
        if isinstance(data, cls):
            return data
        return cls.model_validate(dict(data))

    def changes(self) -> dict[str, Any]:
        """Return only the fields the caller actually supplied."""
        supplied = self.model_dump(exclude_unset=True)
        return {
            key: value
            for key, value in supplied.items()
            if not (value is None and key in self.non_nullable)
        }


class CollectionFields(WritableFields):
    non_nullable: ClassVar[frozenset[str]] = frozenset({"slug", "name", "protected"})

    slug: str | None = None
    name: str | None = None
    title: str | None = None
    description: str | None = None
    protected: bool | None = None


class MembershipMetadata(WritableFields):
    non_nullable: ClassVar[frozenset[str]] = frozenset({"sort_order"})

    display_name: str | None = None
    description: str | None = None
    sort_order: int | None = None


class RelationshipFields(WritableFields):
    non_nullable: ClassVar[frozenset[str]] = frozenset({"show_metadata", "sort_order", "display_mode"})

    show_metadata: bool | None = None
    sort_order: int | None = None
    display_mode: str | None = None


class AssetGroupFields(WritableFields):
    name: str | None = None
    description: str | None = None
