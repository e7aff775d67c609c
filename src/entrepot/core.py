"""Cross-storage operations on locators.

copy() moves a file's bytes from the storage that owns it to another
registered storage; add_metadata() merges metadata into a locator. Both
return a Result so they chain:

    result = add_metadata(copy(locator, "s3"), "owner", "alice")
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping
from typing import Any

from entrepot.errors import SameStorageCopyError, StorageError, UploadError
from entrepot.locator import Locator, LocatorAttrs
from entrepot.registry import StorageRegistry, resolve_storage
from entrepot.result import Result
from entrepot.storage import Storage
from entrepot.uploads.stream import StreamUpload

logger = logging.getLogger(__name__)

_MISSING: Any = object()


def copy(
    locator: Locator,
    destination: str | Storage,
    *,
    registry: StorageRegistry | None = None,
    source_options: Mapping[str, Any] | None = None,
    **options: Any,
) -> Result[Locator]:
    """Copy a stored file to another storage.

    The source object is streamed into destination.put(); it is never
    deleted. The returned locator records the source storage under the
    "copied_from" metadata key.

    Args:
        locator: Locator of the file to copy.
        destination: Target storage, by name or instance.
        registry: Registry used to resolve names (default: process-wide).
        source_options: Passed to source.stream(), e.g. chunk_size or bucket.
        **options: Passed to destination.put(); "name" overrides the
            suggested name (the source id).

    Returns:
        Result holding the new Locator, or the StorageError/UploadError
        raised by either side.

    Raises:
        InvalidStorageError: If either storage cannot be resolved.
        SameStorageCopyError: If source and destination are the same storage
            instance or share a qualified name.
    """
    source = resolve_storage(locator.storage, registry)
    dest = resolve_storage(destination, registry)
    if source is dest or source.qualified_name == dest.qualified_name:
        raise SameStorageCopyError(source.qualified_name)

    put_options = {"name": locator.id, **options}
    logger.debug(
        "Copying object: source=%s dest=%s id=%s",
        source.qualified_name,
        dest.qualified_name,
        locator.id,
    )
    try:
        chunks = source.stream(locator.id, **(source_options or {}))
        upload = StreamUpload(chunks, name=locator.id)
        new_id = dest.put(upload, **put_options)
    except (StorageError, UploadError) as e:
        logger.warning(
            "Copy failed: source=%s dest=%s error=%s",
            source.qualified_name,
            dest.qualified_name,
            e,
        )
        return Result.failure(e)

    return add_metadata(
        Locator(id=new_id, storage=dest),
        {"copied_from": source.qualified_name},
    )


def add_metadata(
    target: Locator | Result[Locator],
    key_or_data: str | LocatorAttrs,
    value: Any = _MISSING,
) -> Result[Locator]:
    """Merge metadata into a locator; new keys win.

    add_metadata(loc, "k", v) is equivalent to add_metadata(loc, {"k": v}).
    A failed Result is returned unchanged, so calls can be chained after
    copy() or Locator.parse().

    Raises:
        TypeError: If key_or_data is a key without a value, or neither a
            mapping nor a sequence of pairs.
    """
    if isinstance(target, Result):
        if not target.ok:
            return target
        locator: Locator = target.unwrap()
    else:
        locator = target

    if value is not _MISSING:
        data: dict[Any, Any] = {key_or_data: value}
    elif isinstance(key_or_data, str):
        raise TypeError(f"add_metadata() got key {key_or_data!r} without a value")
    else:
        try:
            data = dict(key_or_data)
        except (TypeError, ValueError) as e:
            raise TypeError(
                "metadata must be a mapping, a sequence of (key, value) pairs, "
                "or a key and a value"
            ) from e

    return Result.success(dataclasses.replace(locator, metadata={**locator.metadata, **data}))
