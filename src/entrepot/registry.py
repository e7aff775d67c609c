"""Storage registry and resolution.

Maps canonical qualified names (e.g. "entrepot.storages.disk") to backend
instances registered at startup. Resolution never imports code: a name either
maps to an already-registered instance or fails with InvalidStorageError.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from entrepot.errors import DuplicateStorageError, InvalidStorageError
from entrepot.storage import Storage, qualify_storage_name

if TYPE_CHECKING:
    from entrepot.locator import Locator

logger = logging.getLogger(__name__)


@dataclass
class StorageRegistry:
    """Registry of storage backends keyed by canonical qualified name.

    Fail-closed: unknown names raise InvalidStorageError rather than
    returning None.
    """

    _storages: dict[str, Storage] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def register(self, storage: Storage, *, replace: bool = False) -> Storage:
        """Register a backend under its qualified name.

        Args:
            storage: Backend instance to register.
            replace: Replace an existing registration with the same name.

        Returns:
            The registered storage, for use as a module-level constant.

        Raises:
            DuplicateStorageError: If the name is taken and replace is False.
        """
        qualified = storage.qualified_name
        with self._lock:
            existing = self._storages.get(qualified)
            if existing is not None and existing is not storage and not replace:
                raise DuplicateStorageError(qualified)
            self._storages[qualified] = storage
        logger.info("Registered storage: %s (%s)", qualified, type(storage).__name__)
        return storage

    def unregister(self, name: str) -> None:
        """Remove a backend by short or qualified name. Missing names are ignored."""
        with self._lock:
            self._storages.pop(qualify_storage_name(name), None)

    def get(self, name: str) -> Storage:
        """Look up a backend by short or qualified name.

        Raises:
            InvalidStorageError: If no backend is registered under that name.
        """
        qualified = qualify_storage_name(name)
        storage = self._storages.get(qualified)
        if storage is None:
            raise InvalidStorageError(name, qualified)
        return storage

    def resolve(self, ref: str | Storage) -> Storage:
        """Turn a storage reference into a live backend.

        Storage instances are returned unchanged; strings are looked up.

        Raises:
            InvalidStorageError: For unknown names or unsupported reference types.
        """
        if isinstance(ref, Storage):
            return ref
        if isinstance(ref, str):
            return self.get(ref)
        raise InvalidStorageError(ref)

    def list_storages(self) -> list[Storage]:
        """Return all registered backends."""
        return list(self._storages.values())

    @property
    def names(self) -> frozenset[str]:
        """Return the set of registered qualified names."""
        return frozenset(self._storages.keys())

    def clear(self) -> None:
        """Remove every registration."""
        with self._lock:
            self._storages.clear()


default_registry = StorageRegistry()


def register_storage(storage: Storage, *, replace: bool = False) -> Storage:
    """Register a backend in the process-wide registry."""
    return default_registry.register(storage, replace=replace)


def unregister_storage(name: str) -> None:
    """Remove a backend from the process-wide registry."""
    default_registry.unregister(name)


def registered_storages() -> list[Storage]:
    """Return all backends in the process-wide registry."""
    return default_registry.list_storages()


def resolve_storage(ref: str | Storage, registry: StorageRegistry | None = None) -> Storage:
    """Resolve a storage name or instance to a live backend."""
    return (registry or default_registry).resolve(ref)


def storage_for(locator: Locator, registry: StorageRegistry | None = None) -> Storage:
    """Resolve the backend that owns a locator's id."""
    return resolve_storage(locator.storage, registry)
