"""Local filesystem asset store."""

from __future__ import annotations

import asyncio
import hashlib
import mimetypes
import shutil
import time
from pathlib import Path

from scenes.lib.errors import AssetIOError
from scenes.lib.storage.base import StoredFile

DEFAULT_CONTENT_TYPE = "application/octet-stream"
_CHUNK_SIZE = 64 * 1024


def file_checksum(path: Path) -> str:
    """MD5 hex digest of a file's bytes."""
    digest = hashlib.md5()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def guess_filetype(filename: str) -> str:
    """MIME type of a filename, falling back to its bare extension."""
    content_type, _ = mimetypes.guess_type(filename)
    if content_type:
        return content_type
    suffix = Path(filename).suffix.lstrip(".").lower()
    return suffix or DEFAULT_CONTENT_TYPE


def stored_name(filename: str, timestamp: int, attempt: int = 0) -> str:
    """Build ``<time>_<md5(filename)>[_n].<ext>`` for a logical filename."""
    name = f"{timestamp}_{hashlib.md5(filename.encode()).hexdigest()}"
    if attempt:
        name = f"{name}_{attempt}"
    return name + Path(filename).suffix


class LocalAssetStore:
    """Keep asset files flat in one directory under collision-resistant names."""

    def __init__(self, base_path: Path) -> None:
        self._base_path = Path(base_path)

    @property
    def base_path(self) -> Path:
        return self._base_path

    async def ingest(self, source: Path, filename: str) -> StoredFile:
        try:
            return await asyncio.to_thread(self._ingest, Path(source), filename)
        except OSError as exc:
            raise AssetIOError(f"Failed to store {filename!r}: {exc}") from exc

    async def checksum(self, path: Path) -> str | None:
        path = Path(path)
        if not await asyncio.to_thread(path.is_file):
            return None
        return await asyncio.to_thread(file_checksum, path)

    async def delete(self, path: Path) -> None:
        try:
            await asyncio.to_thread(Path(path).unlink, missing_ok=True)
        except OSError as exc:
            raise AssetIOError(f"Failed to delete {path}: {exc}") from exc

    async def exists(self, path: Path) -> bool:
        return await asyncio.to_thread(Path(path).is_file)

    # -- internal helpers --

    def _ingest(self, source: Path, filename: str) -> StoredFile:
        size = source.stat().st_size
        checksum = file_checksum(source)
        content_type = guess_filetype(filename)

        self._base_path.mkdir(parents=True, exist_ok=True)
        destination = self._claim(filename)
        try:
            shutil.copyfile(source, destination)
        except OSError:
            destination.unlink(missing_ok=True)
            raise

        return StoredFile(
            path=destination,
            filename=filename,
            content_type=content_type,
            size=size,
            checksum=checksum,
        )

    def _claim(self, filename: str) -> Path:
        """Reserve a destination path that does not exist yet."""
        timestamp = int(time.time())
        attempt = 0
        while True:
            destination = self._base_path / stored_name(filename, timestamp, attempt)
            try:
                # Exclusive create so two concurrent ingests never share a name
                with open(destination, "xb"):
                    return destination
            except FileExistsError:
                attempt += 1
