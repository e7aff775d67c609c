"""Storage backend interface definition.

Provides the Storage abstract base class that every backend implements, and
the helpers that derive keys and canonical storage names.

Implementations:
- DiskStorage: local filesystem
- MemoryStorage: process-local dictionary (tests, caches)
- S3Storage: AWS S3 and compatible object stores
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from typing import TYPE_CHECKING, Any, Final

from entrepot.upload import DEFAULT_CHUNK_SIZE

if TYPE_CHECKING:
    from entrepot.upload import Upload

STORAGE_NAMESPACE: Final[str] = "entrepot.storages."


def qualify_storage_name(name: str) -> str:
    """Return the canonical qualified form of a storage name.

    Prepends the namespace unconditionally, then collapses a doubled
    namespace, so the result is the same whether or not the input was
    already qualified.
    """
    qualified = STORAGE_NAMESPACE + name
    doubled = STORAGE_NAMESPACE + STORAGE_NAMESPACE
    while qualified.startswith(doubled):
        qualified = STORAGE_NAMESPACE + qualified[len(doubled) :]
    return qualified


def build_key(name: str, prefix: str | None = None) -> str:
    """Join an optional prefix and a name into a storage key."""
    prefix = (prefix or "").strip("/")
    name = name.lstrip("/")
    return f"{prefix}/{name}" if prefix else name


class Storage(ABC):
    """Abstract base class for storage backends.

    All operations accept keyword options. Recognized everywhere:
    - prefix: key prefix used by put
    - name: overrides upload.name() when deriving the key in put
    - force: allow put/clone to overwrite an existing object

    Backends never invent collision-free ids: uniqueness of (prefix, name)
    is the caller's responsibility.
    """

    @property
    @abstractmethod
    def storage_name(self) -> str:
        """Short backend identifier (e.g., "disk", "s3")."""
        ...

    @property
    def qualified_name(self) -> str:
        """Canonical name used to persist and resolve this backend."""
        return qualify_storage_name(self.storage_name)

    @abstractmethod
    def put(
        self,
        upload: Upload,
        *,
        prefix: str | None = None,
        name: str | None = None,
        force: bool = False,
        **opts: Any,
    ) -> str:
        """Store an upload.

        Args:
            upload: Source of the bytes.
            prefix: Optional key prefix.
            name: Optional name overriding upload.name().
            force: Overwrite an existing object with the same key.
            **opts: Backend-specific options.

        Returns:
            The id of the stored object.

        Raises:
            ObjectExistsError: If the key exists and force is not set.
            StorageBackendError: If the backend cannot complete the write.
            UploadError: If the upload cannot produce its contents.
        """
        ...

    @abstractmethod
    def read(self, id: str, **opts: Any) -> bytes:
        """Return the full contents of a stored object.

        Raises:
            ObjectNotFoundError: If the object does not exist.
            StorageBackendError: If the backend cannot complete the read.
        """
        ...

    @abstractmethod
    def stream(
        self,
        id: str,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        **opts: Any,
    ) -> Iterator[bytes]:
        """Return a lazy, single-pass iterator over the object's bytes.

        Errors such as a missing object surface when the iterator is first
        consumed. Stopping iteration early releases the underlying handle.
        """
        ...

    @abstractmethod
    def delete(self, id: str, **opts: Any) -> None:
        """Delete a stored object.

        Raises:
            ObjectNotFoundError: If the object does not exist.
            StorageBackendError: If the backend cannot complete the deletion.
        """
        ...

    @abstractmethod
    def path(self, id: str, **opts: Any) -> str | None:
        """Return a local filesystem path for the object, or None."""
        ...

    @abstractmethod
    def url(self, id: str, **opts: Any) -> str | None:
        """Return a URL for the object, or None if none can be produced."""
        ...

    @abstractmethod
    def clone(self, source_id: str, dest_id: str, *, force: bool = False, **opts: Any) -> str:
        """Duplicate an object within this storage.

        Returns:
            The id of the new object.

        Raises:
            ObjectNotFoundError: If the source does not exist.
            ObjectExistsError: If the destination exists and force is not set.
        """
        ...

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.qualified_name}>"
