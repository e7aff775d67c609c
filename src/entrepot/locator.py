"""Locator: a value naming a stored file.

A Locator records which backend owns a file (storage), the backend's id for
it, and free-form metadata. It is also an Upload, so a file that already
lives on one storage can be handed to another storage's put().

Persisted shape (see to_dict):
    {"id": str, "storage": "<qualified storage name>", "metadata": {...}}
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Final

from entrepot.errors import InvalidLocatorError
from entrepot.registry import StorageRegistry, resolve_storage
from entrepot.result import Result
from entrepot.storage import Storage, qualify_storage_name
from entrepot.upload import DEFAULT_CHUNK_SIZE, Upload

MISSING_KEYS_MESSAGE: Final[str] = "data must contain id and storage keys"
INVALID_ID_MESSAGE: Final[str] = "id must be a string"
INVALID_STORAGE_MESSAGE: Final[str] = "storage must be a string or Storage instance"
INVALID_METADATA_MESSAGE: Final[str] = "metadata must be a mapping"

LocatorAttrs = Mapping[str, Any] | Sequence[tuple[str, Any]]


def _normalize_attrs(attrs: Any) -> dict[str, Any] | None:
    """Turn a mapping or a sequence of pairs into a plain dict."""
    if isinstance(attrs, Mapping):
        return dict(attrs)
    if isinstance(attrs, Sequence) and not isinstance(attrs, (str, bytes)):
        try:
            return dict(attrs)
        except (TypeError, ValueError):
            return None
    return None


def _validation_error(id: Any, storage: Any, metadata: Any) -> str | None:
    if not isinstance(id, str):
        return INVALID_ID_MESSAGE
    if storage is None or not isinstance(storage, (str, Storage)):
        return INVALID_STORAGE_MESSAGE
    if metadata is not None and not isinstance(metadata, Mapping):
        return INVALID_METADATA_MESSAGE
    return None


@dataclass(frozen=True)
class Locator(Upload):
    """A stored file's location and metadata.

    Attributes:
        id: Backend-defined handle (path, key) unique within the backend.
        storage: Qualified storage name or a live Storage instance.
        metadata: Arbitrary user metadata.
    """

    id: str
    storage: str | Storage
    metadata: dict[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        error = _validation_error(self.id, self.storage, self.metadata)
        if error is not None:
            raise InvalidLocatorError(error)
        object.__setattr__(self, "metadata", dict(self.metadata or {}))

    @classmethod
    def parse(cls, attrs: LocatorAttrs) -> Result[Locator]:
        """Build a Locator from a mapping or a sequence of (key, value) pairs.

        Returns:
            Result holding the Locator, or the validation message on failure.
        """
        data = _normalize_attrs(attrs)
        if data is None or "id" not in data or "storage" not in data:
            return Result.failure(MISSING_KEYS_MESSAGE)

        metadata = data.get("metadata")
        error = _validation_error(data["id"], data["storage"], metadata)
        if error is not None:
            return Result.failure(error)

        return Result.success(cls(id=data["id"], storage=data["storage"], metadata=metadata or {}))

    @classmethod
    def from_attrs(cls, attrs: LocatorAttrs) -> Locator:
        """Build a Locator, raising on invalid input.

        Raises:
            InvalidLocatorError: If the attributes fail validation.
        """
        result = cls.parse(attrs)
        if not result.ok:
            raise InvalidLocatorError(result.error)
        return result.value  # type: ignore[return-value]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Locator:
        """Rebuild a Locator from its persisted dictionary form."""
        return cls.from_attrs(data)

    @property
    def storage_name(self) -> str:
        """Qualified name of the owning storage, whatever form it is held in."""
        if isinstance(self.storage, Storage):
            return self.storage.qualified_name
        return qualify_storage_name(self.storage)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for persistence (storage as qualified name)."""
        return {
            "id": self.id,
            "storage": self.storage_name,
            "metadata": dict(self.metadata),
        }

    def resolve_storage(self, registry: StorageRegistry | None = None) -> Storage:
        """Return the live backend that owns this locator.

        Raises:
            InvalidStorageError: If the storage name is not registered.
        """
        return resolve_storage(self.storage, registry)

    def contents(self) -> bytes:
        return self.resolve_storage().read(self.id)

    def name(self) -> str:
        name = self.metadata.get("name")
        return name if isinstance(name, str) else self.id

    def path(self) -> str | None:
        return self.resolve_storage().path(self.id)

    def chunks(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
        return self.resolve_storage().stream(self.id, chunk_size=chunk_size)
