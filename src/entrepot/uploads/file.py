"""Upload source for a file already on local disk.

Typical use is a multipart form upload that the web framework has saved to a
temporary file: pass its path and the client-supplied filename.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from pathlib import Path

from entrepot.errors import UploadError
from entrepot.upload import DEFAULT_CHUNK_SIZE, Upload


class FileUpload(Upload):
    """A local file plus the name it should be stored under.

    Attributes:
        filename: Name reported by name(); defaults to the file's basename.
    """

    def __init__(self, path: str | os.PathLike[str], filename: str | None = None) -> None:
        self._path = Path(path)
        self.filename = filename or self._path.name

    def contents(self) -> bytes:
        try:
            return self._path.read_bytes()
        except OSError as e:
            raise UploadError(f"Could not read path: {e.strerror or e}", cause=e) from e

    def name(self) -> str:
        return self.filename

    def path(self) -> str | None:
        return str(self._path) if self._path.is_file() else None

    def chunks(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
        try:
            fh = self._path.open("rb")
        except OSError as e:
            raise UploadError(f"Could not read path: {e.strerror or e}", cause=e) from e
        with fh:
            while chunk := fh.read(chunk_size):
                yield chunk

    def __repr__(self) -> str:
        return f"FileUpload(path={str(self._path)!r}, filename={self.filename!r})"
