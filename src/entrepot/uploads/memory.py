"""In-memory upload source."""

from __future__ import annotations

from entrepot.upload import Upload


class MemoryUpload(Upload):
    """Raw bytes with a name and an optional backing path.

    Strings are encoded as UTF-8.
    """

    def __init__(
        self,
        content: bytes | str,
        name: str = "upload",
        path: str | None = None,
    ) -> None:
        self._content = content.encode("utf-8") if isinstance(content, str) else bytes(content)
        self._name = name
        self._path = path

    def contents(self) -> bytes:
        return self._content

    def name(self) -> str:
        return self._name

    def path(self) -> str | None:
        return self._path

    def __repr__(self) -> str:
        return f"MemoryUpload(name={self._name!r}, size={len(self._content)})"
