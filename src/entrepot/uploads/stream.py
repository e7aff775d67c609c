"""Upload source over a lazy iterator of byte chunks.

Used by copy() to feed one storage's stream into another storage's put
without holding the whole object in memory.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from entrepot.upload import DEFAULT_CHUNK_SIZE, Upload


class StreamUpload(Upload):
    """Single-pass upload over an iterable of byte chunks.

    The iterable is consumed once: after chunks() or contents() has run,
    the upload is exhausted.
    """

    def __init__(self, chunks: Iterable[bytes], name: str = "upload") -> None:
        self._chunks = iter(chunks)
        self._name = name

    def contents(self) -> bytes:
        return b"".join(self._chunks)

    def name(self) -> str:
        return self._name

    def path(self) -> str | None:
        return None

    def chunks(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
        # Chunks are passed through at the size the producer chose.
        yield from self._chunks
