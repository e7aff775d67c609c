"""Entrepot error types.

Every error raised by the library derives from EntrepotError. The families are:

- Validation: InvalidLocatorError, raised while building a Locator.
- Resolution: InvalidStorageError / DuplicateStorageError, raised by the
  storage registry before any I/O happens.
- Backend I/O: StorageError and subclasses, raised by storage backends.
- Upload: UploadError, raised when an upload source cannot produce bytes.
- Usage: UsageError and subclasses, raised for programmer mistakes such as
  copying a file onto the storage it already lives in.
- Configuration: StorageConfigError, raised for invalid settings.
"""

from __future__ import annotations


class EntrepotError(Exception):
    """Base exception for all Entrepot errors."""


class InvalidLocatorError(EntrepotError, ValueError):
    """Raised when locator attributes fail validation."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidStorageError(EntrepotError, LookupError):
    """Raised when a storage reference does not name a registered backend.

    Attributes:
        storage: The storage reference as given by the caller.
        qualified_name: Canonical name that was looked up (if any).
    """

    def __init__(self, storage: object, qualified_name: str | None = None) -> None:
        self.storage = storage
        self.qualified_name = qualified_name
        if qualified_name is not None:
            message = f"Unknown storage: {storage!r} (looked up as {qualified_name!r})"
        else:
            message = f"Invalid storage reference: {storage!r}"
        super().__init__(message)


class DuplicateStorageError(EntrepotError):
    """Raised when registering a storage under a name that is already taken."""

    def __init__(self, qualified_name: str) -> None:
        self.qualified_name = qualified_name
        super().__init__(f"Storage already registered: {qualified_name}")


class StorageConfigError(EntrepotError):
    """Raised when storage configuration is missing or invalid."""


class StorageError(EntrepotError):
    """Base exception for storage backend operations.

    Attributes:
        message: Human-readable error message.
        storage: Short name of the backend that failed (if known).
        key: Object id associated with the operation (if applicable).
    """

    def __init__(
        self,
        message: str,
        *,
        storage: str | None = None,
        key: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.storage = storage
        self.key = key

    def __str__(self) -> str:
        parts = [self.message]
        if self.storage:
            parts.append(f"storage={self.storage}")
        if self.key:
            parts.append(f"key={self.key}")
        return " ".join(parts)


class ObjectNotFoundError(StorageError):
    """Raised when an object does not exist in the backend."""

    def __init__(
        self,
        message: str = "Object not found",
        *,
        storage: str | None = None,
        key: str | None = None,
    ) -> None:
        super().__init__(message, storage=storage, key=key)


class ObjectExistsError(StorageError):
    """Raised when a put would overwrite an existing object without force."""

    def __init__(
        self,
        message: str = "Object already exists",
        *,
        storage: str | None = None,
        key: str | None = None,
    ) -> None:
        super().__init__(message, storage=storage, key=key)


class PathTraversalError(StorageError):
    """Raised when an object key contains path traversal sequences.

    Keys like "../", absolute paths or backslashes would let a caller escape
    the storage root, so they are rejected before touching the filesystem.
    """

    def __init__(
        self,
        message: str = "Invalid key: path traversal detected",
        *,
        storage: str | None = None,
        key: str | None = None,
    ) -> None:
        super().__init__(message, storage=storage, key=key)


class StorageBackendError(StorageError):
    """Raised when the backend itself cannot complete an operation.

    Covers disk full, permission denied, network and API failures, as
    opposed to logical errors like a missing object.
    """

    def __init__(
        self,
        message: str = "Storage backend error",
        *,
        storage: str | None = None,
        key: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, storage=storage, key=key)
        self.cause = cause


class UploadError(EntrepotError):
    """Raised when an upload source cannot produce its contents."""

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause


class UsageError(EntrepotError):
    """Raised for API misuse that indicates a programming error."""


class SameStorageCopyError(UsageError):
    """Raised when copy() is asked to copy a file onto its own storage."""

    def __init__(self, qualified_name: str) -> None:
        self.qualified_name = qualified_name
        super().__init__(
            f"Cannot copy within {qualified_name}; use {qualified_name}.clone() "
            "to duplicate a file on the same storage"
        )


class UnknownStorageRoleError(UsageError, KeyError):
    """Raised when an uploader is asked for a role it does not define."""

    def __init__(self, role: str, available: list[str], uploader: str) -> None:
        self.role = role
        self.available = available
        self.uploader = uploader
        super().__init__(f"{role} not found in {uploader} storages. Available: {available}")

    def __str__(self) -> str:
        return str(self.args[0])
