"""Role-based uploads.

An Uploader maps application roles ("cache", "store", "thumbnails") to
storages, so calling code names what a file is for rather than where it
goes:

    uploader = Uploader({"cache": "memory", "store": "s3"})
    result = uploader.store(FileUpload("/tmp/report.pdf"), "store", prefix="reports")

Subclasses customise per-role put options and locator metadata by
overriding build_options() and build_metadata().
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from entrepot.core import add_metadata
from entrepot.errors import StorageError, UnknownStorageRoleError, UploadError
from entrepot.locator import Locator
from entrepot.registry import StorageRegistry, resolve_storage
from entrepot.result import Result
from entrepot.storage import Storage
from entrepot.upload import Upload

logger = logging.getLogger(__name__)

StorageMap = Mapping[str, str | Storage]
StorageSource = StorageMap | Callable[[Upload], StorageMap]


class Uploader:
    """Stores uploads on the storage configured for a role.

    Args:
        storages: Mapping of role to storage (name or instance), or a
            callable returning such a mapping for a given upload.
        registry: Registry used to resolve storage names (default:
            process-wide).
    """

    def __init__(self, storages: StorageSource, *, registry: StorageRegistry | None = None):
        self._storages = storages
        self._registry = registry

    def storages(self, upload: Upload) -> StorageMap:
        """Return the role mapping that applies to this upload."""
        if callable(self._storages):
            return self._storages(upload)
        return self._storages

    def storage(self, role: str, upload: Upload) -> Storage:
        """Resolve the storage for a role.

        Raises:
            UnknownStorageRoleError: If the role is not configured.
            InvalidStorageError: If the configured storage is not registered.
        """
        storages = self.storages(upload)
        if role not in storages:
            raise UnknownStorageRoleError(role, sorted(storages), type(self).__name__)
        return resolve_storage(storages[role], self._registry)

    def build_options(self, upload: Upload, role: str, options: dict[str, Any]) -> dict[str, Any]:
        """Return the keyword arguments passed to Storage.put()."""
        return options

    def build_metadata(self, upload: Upload, role: str, options: dict[str, Any]) -> dict[str, Any]:
        """Return metadata to attach to the stored file's Locator."""
        return {}

    def store(self, upload: Upload, role: str, **options: Any) -> Result[Locator]:
        """Put an upload on the storage configured for role.

        Returns:
            Result holding the new Locator, or the StorageError/UploadError
            raised while storing.

        Raises:
            UnknownStorageRoleError: If the role is not configured.
            InvalidStorageError: If the configured storage is not registered.
        """
        storage = self.storage(role, upload)
        put_options = self.build_options(upload, role, dict(options))
        try:
            new_id = storage.put(upload, **put_options)
        except (StorageError, UploadError) as e:
            logger.warning(
                "Store failed: uploader=%s role=%s storage=%s error=%s",
                type(self).__name__,
                role,
                storage.qualified_name,
                e,
            )
            return Result.failure(e)

        logger.debug(
            "Stored upload: uploader=%s role=%s storage=%s",
            type(self).__name__,
            role,
            storage.qualified_name,
        )
        metadata = self.build_metadata(upload, role, put_options)
        return add_metadata(Locator(id=new_id, storage=storage), metadata)
