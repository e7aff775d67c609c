"""Entrepot: storage-agnostic file uploads.

Store uploads on interchangeable backends (local disk, S3, in-memory) and
keep a Locator recording where each file lives, so it can later be read,
streamed, or copied to another backend.

    from entrepot import DiskStorage, FileUpload, Locator, copy, register_storage

    disk = register_storage(DiskStorage("/var/lib/uploads"))
    key = disk.put(FileUpload("/tmp/avatar.png"), prefix="avatars")
    locator = Locator(id=key, storage="disk")
    result = copy(locator, "s3")
"""

from entrepot.core import add_metadata, copy
from entrepot.errors import (
    DuplicateStorageError,
    EntrepotError,
    InvalidLocatorError,
    InvalidStorageError,
    ObjectExistsError,
    ObjectNotFoundError,
    PathTraversalError,
    SameStorageCopyError,
    StorageBackendError,
    StorageConfigError,
    StorageError,
    UnknownStorageRoleError,
    UploadError,
    UsageError,
)
from entrepot.locator import Locator
from entrepot.registry import (
    StorageRegistry,
    register_storage,
    registered_storages,
    resolve_storage,
    storage_for,
    unregister_storage,
)
from entrepot.result import Result
from entrepot.storage import Storage, qualify_storage_name
from entrepot.storages import DiskStorage, MemoryStorage, S3Storage
from entrepot.upload import Upload
from entrepot.uploader import Uploader
from entrepot.uploads import FileUpload, MemoryUpload, StreamUpload, URIUpload

__all__ = [
    "DiskStorage",
    "DuplicateStorageError",
    "EntrepotError",
    "FileUpload",
    "InvalidLocatorError",
    "InvalidStorageError",
    "Locator",
    "MemoryStorage",
    "MemoryUpload",
    "ObjectExistsError",
    "ObjectNotFoundError",
    "PathTraversalError",
    "Result",
    "S3Storage",
    "SameStorageCopyError",
    "Storage",
    "StorageBackendError",
    "StorageConfigError",
    "StorageError",
    "StorageRegistry",
    "StreamUpload",
    "URIUpload",
    "UnknownStorageRoleError",
    "Upload",
    "Uploader",
    "UploadError",
    "UsageError",
    "add_metadata",
    "copy",
    "qualify_storage_name",
    "register_storage",
    "registered_storages",
    "resolve_storage",
    "storage_for",
    "unregister_storage",
]
