"""Local filesystem storage backend.

Objects live at {root_dir}/{key}; the id returned by put() is the key
relative to the root, so moving the root directory only requires changing
configuration. Writes go to a temporary file that is atomically renamed into
place.

Environment Variables:
    ENTREPOT_DISK_ROOT_DIR: Root directory (default: OS temp dir / entrepot)
    ENTREPOT_DISK_BASE_URL: Public base URL served for the root (optional)
"""

from __future__ import annotations

import logging
import shutil
import uuid
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from entrepot.config import DiskSettings, load_disk_settings
from entrepot.errors import (
    ObjectExistsError,
    ObjectNotFoundError,
    PathTraversalError,
    StorageBackendError,
    StorageError,
)
from entrepot.storage import Storage, build_key
from entrepot.tracing import traced_storage_operation
from entrepot.upload import DEFAULT_CHUNK_SIZE

if TYPE_CHECKING:
    from entrepot.upload import Upload

logger = logging.getLogger(__name__)

STORAGE_NAME = "disk"


def _is_path_traversal(key: str) -> bool:
    """Check if a key could escape the storage root.

    Detects empty keys, null bytes and control characters, backslashes,
    absolute paths, Windows drive letters and ".." segments.
    """
    if not key:
        return True
    if any(ord(ch) < 32 for ch in key):
        return True
    if "\\" in key:
        return True
    if key.startswith("/") or key.startswith("~"):
        return True
    if len(key) >= 2 and key[1] == ":":
        return True
    return any(segment == ".." for segment in key.split("/"))


class DiskStorage(Storage):
    """Filesystem-based storage implementation."""

    def __init__(
        self,
        root_dir: str | Path | None = None,
        *,
        base_url: str | None = None,
        name: str = STORAGE_NAME,
    ) -> None:
        """Initialize filesystem storage.

        Args:
            root_dir: Root directory. If None, ENTREPOT_DISK_ROOT_DIR or the OS
                temp directory is used, read on every operation.
            base_url: Public URL prefix for url(). If None,
                ENTREPOT_DISK_BASE_URL is used when set.
            name: Storage name; distinct names let several disk roots be
                registered side by side.
        """
        self._root_dir = root_dir
        self._base_url = base_url
        self._name = name

    @property
    def storage_name(self) -> str:
        return self._name

    @property
    def settings(self) -> DiskSettings:
        return load_disk_settings(self._root_dir, self._base_url)

    @property
    def root_dir(self) -> Path:
        """Return the resolved root directory."""
        return self.settings.root_dir.resolve()

    def _full_path(self, key: str) -> Path:
        """Map a key to a path under the root, rejecting traversal attempts."""
        if _is_path_traversal(key):
            raise PathTraversalError(
                message="Invalid key: path traversal or unsafe characters detected",
                storage=self.storage_name,
                key=key,
            )
        root = self.root_dir
        path = (root / key).resolve()
        try:
            path.relative_to(root)
        except ValueError as e:
            raise PathTraversalError(
                message="Path resolves outside storage root",
                storage=self.storage_name,
                key=key,
            ) from e
        return path

    def _existing_file(self, key: str) -> Path:
        path = self._full_path(key)
        if not path.is_file():
            raise ObjectNotFoundError(storage=self.storage_name, key=key)
        return path

    def _check_overwrite(self, path: Path, key: str, force: bool) -> None:
        if path.exists() and not force:
            raise ObjectExistsError(storage=self.storage_name, key=key)

    def _write_atomic(self, target: Path, key: str, write: Callable[[Path], None]) -> None:
        """Run write(tmp_path) then rename the result onto target."""
        tmp_file = target.parent / f".{target.name}.{uuid.uuid4().hex}.tmp"
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            try:
                write(tmp_file)
                tmp_file.replace(target)
            finally:
                tmp_file.unlink(missing_ok=True)
        except OSError as e:
            raise StorageBackendError(
                message=f"Failed to write object: {e}",
                storage=self.storage_name,
                key=key,
                cause=e,
            ) from e

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
        """Store an upload under {prefix}/{name}.

        Uploads backed by a local file are copied file-to-file; everything
        else is written chunk by chunk.
        """
        key = build_key(name or upload.name(), prefix)
        target = self._full_path(key)
        self._check_overwrite(target, key, force)

        source_path = upload.path()

        def write(tmp_file: Path) -> None:
            if source_path is not None:
                shutil.copyfile(source_path, tmp_file)
                return
            with tmp_file.open("wb") as fh:
                for chunk in upload.chunks(chunk_size):
                    fh.write(chunk)

        self._write_atomic(target, key, write)
        logger.debug("Stored object: storage=%s key=%s", self.storage_name, key)
        return key

    @traced_storage_operation("read")
    def read(self, id: str, **opts: Any) -> bytes:
        path = self._existing_file(id)
        try:
            return path.read_bytes()
        except OSError as e:
            raise StorageBackendError(
                message=f"Failed to read object: {e}",
                storage=self.storage_name,
                key=id,
                cause=e,
            ) from e

    @traced_storage_operation("stream")
    def stream(
        self,
        id: str,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        **opts: Any,
    ) -> Iterator[bytes]:
        path = self._existing_file(id)
        try:
            with path.open("rb") as fh:
                while chunk := fh.read(chunk_size):
                    yield chunk
        except OSError as e:
            raise StorageBackendError(
                message=f"Failed to stream object: {e}",
                storage=self.storage_name,
                key=id,
                cause=e,
            ) from e

    @traced_storage_operation("delete")
    def delete(self, id: str, **opts: Any) -> None:
        path = self._existing_file(id)
        try:
            path.unlink()
        except FileNotFoundError as e:
            raise ObjectNotFoundError(storage=self.storage_name, key=id) from e
        except OSError as e:
            raise StorageBackendError(
                message=f"Failed to delete object: {e}",
                storage=self.storage_name,
                key=id,
                cause=e,
            ) from e
        logger.debug("Deleted object: storage=%s key=%s", self.storage_name, id)

    def path(self, id: str, **opts: Any) -> str | None:
        try:
            full_path = self._full_path(id)
        except StorageError:
            return None
        return str(full_path) if full_path.is_file() else None

    def url(self, id: str, **opts: Any) -> str | None:
        base_url = opts.get("base_url") or self.settings.base_url
        if not base_url:
            return None
        return f"{base_url.rstrip('/')}/{quote(id.lstrip('/'))}"

    @traced_storage_operation("clone")
    def clone(self, source_id: str, dest_id: str, *, force: bool = False, **opts: Any) -> str:
        source = self._existing_file(source_id)
        target = self._full_path(dest_id)
        self._check_overwrite(target, dest_id, force)

        def write(tmp_file: Path) -> None:
            shutil.copyfile(source, tmp_file)

        self._write_atomic(target, dest_id, write)
        logger.debug(
            "Cloned object: storage=%s source=%s dest=%s", self.storage_name, source_id, dest_id
        )
        return dest_id
