"""Tests for cross-storage copy and metadata merge.

Verifies:
- copy streams the source object into the destination and never deletes it
- The new locator records copied_from with the source's qualified name
- Same-storage copies raise before any I/O, whether named, passed as instances,
  or a distinct instance sharing the qualified name
- source_options reach the source stream; other options reach the destination put
- Backend failures come back as Result failures carrying the original exception
- add_metadata merges shallowly, passes failures through, and chains
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest

from entrepot.core import add_metadata, copy
from entrepot.errors import (
    InvalidStorageError,
    ObjectExistsError,
    ObjectNotFoundError,
    SameStorageCopyError,
    UsageError,
)
from entrepot.locator import Locator
from entrepot.result import Result
from entrepot.storages.disk import DiskStorage
from entrepot.storages.memory import MemoryStorage
from entrepot.uploads.memory import MemoryUpload


class _CountingMemoryStorage(MemoryStorage):
    """MemoryStorage that records every stream() and put() call."""

    def __init__(self, name: str = "counting") -> None:
        super().__init__(name)
        self.calls: list[str] = []

    def stream(self, id: str, **opts: Any) -> Iterator[bytes]:
        self.calls.append("stream")
        return super().stream(id, **opts)

    def put(self, upload: Any, **opts: Any) -> str:
        self.calls.append("put")
        return super().put(upload, **opts)


@pytest.fixture
def stored(memory: MemoryStorage) -> Locator:
    """A file stored on the memory storage."""
    key = memory.put(MemoryUpload(b"Hi, I'm a file", name="hi"))
    return Locator(id=key, storage="memory")


class TestCopy:
    """End-to-end copy between storages."""

    def test_copy_memory_to_disk(
        self, stored: Locator, memory: MemoryStorage, disk: DiskStorage
    ) -> None:
        result = copy(stored, "disk")

        assert result.ok
        new_locator = result.value
        assert new_locator.id == "hi"
        assert new_locator.storage is disk
        assert disk.read(new_locator.id) == b"Hi, I'm a file"
        assert Path(disk.path(new_locator.id) or "").read_bytes() == b"Hi, I'm a file"

    def test_copied_from_metadata(self, stored: Locator, disk: DiskStorage) -> None:
        result = copy(stored, disk)

        assert result.value.metadata == {"copied_from": "entrepot.storages.memory"}

    def test_source_is_intact(
        self, stored: Locator, memory: MemoryStorage, disk: DiskStorage
    ) -> None:
        copy(stored, "disk")

        assert memory.read(stored.id) == b"Hi, I'm a file"
        assert memory.keys() == ["hi"]

    def test_destination_by_name_or_instance(
        self, stored: Locator, disk: DiskStorage, temp_storage_dir: Path
    ) -> None:
        other = DiskStorage(temp_storage_dir / "other", name="other_disk")

        by_name = copy(stored, "disk")
        by_instance = copy(stored, other)

        assert by_name.value.storage is disk
        assert by_instance.value.storage is other
        assert other.read("hi") == b"Hi, I'm a file"

    def test_options_are_forwarded_to_put(self, stored: Locator, disk: DiskStorage) -> None:
        result = copy(stored, "disk", prefix="copies")

        assert result.value.id == "copies/hi"
        assert disk.read("copies/hi") == b"Hi, I'm a file"

    def test_source_options_are_forwarded_to_stream(self) -> None:
        class _RecordingSource(MemoryStorage):
            def __init__(self) -> None:
                super().__init__("recording")
                self.stream_opts: dict[str, Any] = {}

            def stream(self, id: str, **opts: Any) -> Iterator[bytes]:
                self.stream_opts = opts
                return super().stream(id, **opts)

        source = _RecordingSource()
        source.put(MemoryUpload(b"abcdef", name="a"))
        target = MemoryStorage("target")

        result = copy(
            Locator(id="a", storage=source),
            target,
            source_options={"chunk_size": 2},
            prefix="copies",
        )

        assert result.value.id == "copies/a"
        assert source.stream_opts == {"chunk_size": 2}
        assert target.read("copies/a") == b"abcdef"

    def test_name_option_overrides_source_id(self, stored: Locator, disk: DiskStorage) -> None:
        result = copy(stored, "disk", name="renamed.txt")

        assert result.value.id == "renamed.txt"

    def test_copy_between_two_memory_storages(self, stored: Locator) -> None:
        target = _CountingMemoryStorage()

        result = copy(stored, target)

        assert result.ok
        assert target.read("hi") == b"Hi, I'm a file"
        assert target.calls == ["put"]

    def test_copy_chained_with_add_metadata(self, stored: Locator, disk: DiskStorage) -> None:
        result = add_metadata(copy(stored, "disk"), "owner", "alice")

        assert result.value.metadata == {
            "copied_from": "entrepot.storages.memory",
            "owner": "alice",
        }


class TestCopySameStorage:
    """Copying onto the storage a file already lives in is a usage error."""

    def test_same_name_raises(self, stored: Locator) -> None:
        with pytest.raises(SameStorageCopyError) as exc_info:
            copy(stored, "memory")

        assert "clone" in str(exc_info.value)
        assert isinstance(exc_info.value, UsageError)

    def test_qualified_name_and_instance_are_compared_after_resolution(
        self, stored: Locator, memory: MemoryStorage
    ) -> None:
        with pytest.raises(SameStorageCopyError):
            copy(stored, memory)
        with pytest.raises(SameStorageCopyError):
            copy(stored, "entrepot.storages.memory")

    def test_no_io_before_raising(self) -> None:
        storage = _CountingMemoryStorage()
        locator = Locator(id="anything", storage=storage)

        with pytest.raises(SameStorageCopyError):
            copy(locator, storage)

        assert storage.calls == []

    def test_distinct_instance_with_same_name_raises(self, stored: Locator) -> None:
        lookalike = _CountingMemoryStorage(name="memory")

        with pytest.raises(SameStorageCopyError):
            copy(stored, lookalike)

        assert lookalike.calls == []

    def test_unknown_destination_raises(self, stored: Locator) -> None:
        with pytest.raises(InvalidStorageError):
            copy(stored, "nowhere")


class TestCopyFailures:
    """Backend errors are returned, not raised."""

    def test_missing_source_object(self, memory: MemoryStorage, disk: DiskStorage) -> None:
        locator = Locator(id="missing", storage="memory")

        result = copy(locator, "disk")

        assert not result.ok
        assert isinstance(result.error, ObjectNotFoundError)
        assert result.error.key == "missing"
        assert disk.path("missing") is None

    def test_existing_destination_object(self, stored: Locator, disk: DiskStorage) -> None:
        disk.put(MemoryUpload(b"already here", name="hi"))

        result = copy(stored, "disk")

        assert isinstance(result.error, ObjectExistsError)
        assert disk.read("hi") == b"already here"

    def test_force_overwrites_destination(self, stored: Locator, disk: DiskStorage) -> None:
        disk.put(MemoryUpload(b"already here", name="hi"))

        result = copy(stored, "disk", force=True)

        assert result.ok
        assert disk.read("hi") == b"Hi, I'm a file"

    def test_failure_error_is_original_exception(self, stored: Locator) -> None:
        class _Failing(MemoryStorage):
            error = ObjectExistsError(storage="failing", key="hi")

            def put(self, upload: Any, **opts: Any) -> str:
                raise self.error

        target = _Failing("failing")

        result = copy(stored, target)

        assert result.error is _Failing.error


class TestAddMetadata:
    """Metadata merge semantics."""

    def test_key_value_equals_mapping(self) -> None:
        locator = Locator(id="x", storage="memory")

        assert add_metadata(locator, "k", "v") == add_metadata(locator, {"k": "v"})

    def test_pairs_accepted(self) -> None:
        locator = Locator(id="x", storage="memory")

        result = add_metadata(locator, [("a", 1), ("b", 2)])

        assert result.value.metadata == {"a": 1, "b": 2}

    def test_new_keys_win(self) -> None:
        locator = Locator(id="x", storage="memory", metadata={"a": 1, "b": 1})

        result = add_metadata(locator, {"b": 2, "c": 3})

        assert result.value.metadata == {"a": 1, "b": 2, "c": 3}

    def test_original_locator_unchanged(self) -> None:
        locator = Locator(id="x", storage="memory", metadata={"a": 1})

        add_metadata(locator, "a", 2)

        assert locator.metadata == {"a": 1}

    def test_id_and_storage_preserved(self, memory: MemoryStorage) -> None:
        locator = Locator(id="x", storage=memory)

        result = add_metadata(locator, "a", 1)

        assert result.value.id == "x"
        assert result.value.storage is memory

    def test_successful_result_is_unwrapped(self) -> None:
        result = add_metadata(Result.success(Locator(id="x", storage="memory")), "a", 1)

        assert result.value.metadata == {"a": 1}

    def test_failed_result_passes_through_unchanged(self) -> None:
        failed: Result[Locator] = Result.failure("boom")

        assert add_metadata(failed, "a", 1) is failed

    def test_sequential_merges_equal_combined_merge(self) -> None:
        locator = Locator(id="x", storage="memory", metadata={"a": 0})
        first = {"a": 1, "b": 1}
        second = {"b": 2, "c": 2}

        sequential = add_metadata(add_metadata(locator, first), second)
        combined = add_metadata(locator, {**first, **second})

        assert sequential.value.metadata == combined.value.metadata

    def test_key_without_value_raises_type_error(self) -> None:
        locator = Locator(id="x", storage="memory")

        with pytest.raises(TypeError, match="without a value"):
            add_metadata(locator, "k")

    def test_non_mapping_raises_type_error(self) -> None:
        locator = Locator(id="x", storage="memory")

        with pytest.raises(TypeError, match="must be a mapping"):
            add_metadata(locator, [1, 2])  # type: ignore[arg-type]
