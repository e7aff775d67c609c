"""Upload capability definition.

An Upload is anything a storage backend can ingest: it can produce its
contents, report a name, and optionally point at a local file.

Built-in implementations:
- MemoryUpload: raw bytes held in memory
- FileUpload: a file already on local disk (e.g. a saved multipart upload)
- StreamUpload: a lazy iterator of byte chunks
- URIUpload: an HTTP(S) URL fetched on demand
- Locator: a file already stored on some backend
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from typing import Final

DEFAULT_CHUNK_SIZE: Final[int] = 64 * 1024


class Upload(ABC):
    """Abstract base class for uploadable values."""

    @abstractmethod
    def contents(self) -> bytes:
        """Return the full contents of the upload.

        Raises:
            UploadError: If the bytes cannot be produced.
            StorageError: If the upload is backed by a storage that fails.
        """
        ...

    @abstractmethod
    def name(self) -> str:
        """Return the upload's name. Never raises.

        Backends derive the storage key from this name when the caller does
        not pass one explicitly.
        """
        ...

    @abstractmethod
    def path(self) -> str | None:
        """Return a local filesystem path backing this upload, or None."""
        ...

    def chunks(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
        """Yield the upload's contents as byte chunks.

        The default yields contents() in one piece. Streaming sources
        override this so backends can write without holding the whole
        object in memory.
        """
        yield self.contents()
