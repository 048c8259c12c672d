"""Asset store protocol and common types."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable


@dataclass
class StoredFile:
    """A file copied into managed storage."""

    path: Path
    filename: str
    content_type: str
    size: int
    checksum: str


@runtime_checkable
class AssetStore(Protocol):
    """Interface for the place asset files are kept."""

    async def ingest(self, source: Path, filename: str) -> StoredFile:
        """Copy a source file into storage under a generated name."""
        ...

    async def checksum(self, path: Path) -> str | None:
        """Return the MD5 hex digest of a stored file, or None if it is missing."""
        ...

    async def delete(self, path: Path) -> None:
        """Remove a stored file."""
        ...

    async def exists(self, path: Path) -> bool:
        """Check whether a stored file exists."""
        ...
