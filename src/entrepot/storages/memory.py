"""In-memory storage backend.

Keeps objects in a process-local dictionary. Useful for tests and for
short-lived scratch storage; contents are lost when the process exits.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from entrepot.errors import ObjectExistsError, ObjectNotFoundError
from entrepot.storage import Storage, build_key
from entrepot.tracing import traced_storage_operation
from entrepot.upload import DEFAULT_CHUNK_SIZE

if TYPE_CHECKING:
    from entrepot.upload import Upload

logger = logging.getLogger(__name__)

STORAGE_NAME = "memory"


class MemoryStorage(Storage):
    """Thread-safe dictionary-backed storage."""

    def __init__(self, name: str = STORAGE_NAME) -> None:
        self._name = name
        self._objects: dict[str, bytes] = {}
        self._lock = threading.Lock()

    @property
    def storage_name(self) -> str:
        return self._name

    def _get(self, key: str) -> bytes:
        with self._lock:
            data = self._objects.get(key)
        if data is None:
            raise ObjectNotFoundError(storage=self._name, key=key)
        return data

    def _set(self, key: str, data: bytes, force: bool) -> None:
        with self._lock:
            if key in self._objects and not force:
                raise ObjectExistsError(storage=self._name, key=key)
            self._objects[key] = data

    @traced_storage_operation("put")
    def put(
        self,
        upload: Upload,
        *,
        prefix: str | None = None,
        name: str | None = None,
        force: bool = False,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        **opts: Any,
    ) -> str:
        key = build_key(name or upload.name(), prefix)
        with self._lock:
            if key in self._objects and not force:
                raise ObjectExistsError(storage=self._name, key=key)

        buffer = bytearray()
        for chunk in upload.chunks(chunk_size):
            buffer.extend(chunk)

        self._set(key, bytes(buffer), force)
        logger.debug("Stored object: storage=%s key=%s size=%d", self._name, key, len(buffer))
        return key

    @traced_storage_operation("read")
    def read(self, id: str, **opts: Any) -> bytes:
        return self._get(id)

    @traced_storage_operation("stream")
    def stream(
        self,
        id: str,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        **opts: Any,
    ) -> Iterator[bytes]:
        data = self._get(id)
        for offset in range(0, len(data), chunk_size):
            yield data[offset : offset + chunk_size]

    @traced_storage_operation("delete")
    def delete(self, id: str, **opts: Any) -> None:
        with self._lock:
            if self._objects.pop(id, None) is None:
                raise ObjectNotFoundError(storage=self._name, key=id)
        logger.debug("Deleted object: storage=%s key=%s", self._name, id)

    def path(self, id: str, **opts: Any) -> str | None:
        return None

    def url(self, id: str, **opts: Any) -> str | None:
        with self._lock:
            if id not in self._objects:
                return None
        return f"memory://{self._name}/{quote(id)}"

    @traced_storage_operation("clone")
    def clone(self, source_id: str, dest_id: str, *, force: bool = False, **opts: Any) -> str:
        self._set(dest_id, self._get(source_id), force)
        logger.debug(
            "Cloned object: storage=%s source=%s dest=%s", self._name, source_id, dest_id
        )
        return dest_id

    def keys(self) -> list[str]:
        """Return the ids of all stored objects."""
        with self._lock:
            return sorted(self._objects)

    def clear(self) -> None:
        """Drop every stored object."""
        with self._lock:
            self._objects.clear()
