"""Built-in storage backends."""

from entrepot.storages.disk import DiskStorage
from entrepot.storages.memory import MemoryStorage
from entrepot.storages.s3 import S3Storage

__all__ = ["DiskStorage", "MemoryStorage", "S3Storage"]
