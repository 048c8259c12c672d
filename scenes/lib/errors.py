"""Domain errors raised by the Scenes services.

Finders report a missing row by returning ``None``; these exceptions cover
mutations that need an existing row, storage failures and file I/O failures.
"""


class ScenesError(Exception):
    """Base class for every error raised by Scenes services."""


class NotFoundError(ScenesError):
    """A row required by a mutation does not exist."""

    def __init__(self, entity: str, identifier: object) -> None:
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} not found: {identifier!r}")


class StorageError(ScenesError):
    """The database rejected an operation. Always wraps the low-level cause."""


class AssetIOError(ScenesError, OSError):
    """Copying, creating or removing an asset file failed."""


class ValidationError(ScenesError):
    """A precondition on the caller's input was violated."""


class ReservedCollectionError(ValidationError):
    """An operation tried to remove a system collection."""

    def __init__(self, slug: str) -> None:
        self.slug = slug
        super().__init__(f"Collection '{slug}' is reserved and cannot be deleted")


class UnknownDisplayModeError(ValidationError):
    """A display mode name has no row in its lookup table."""

    def __init__(self, family: str, name: str) -> None:
        self.family = family
        self.name = name
        super().__init__(f"Unknown {family} display mode: {name!r}")


class UploadError(ValidationError):
    """The transport layer reported a failed upload."""

    def __init__(self, code: int, message: str) -> None:
        self.code = code
        super().__init__(f"File upload error: {message}")
