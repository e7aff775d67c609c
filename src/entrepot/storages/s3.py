"""AWS S3 (and S3-compatible) storage backend.

Object ids are S3 keys within the configured bucket. Uploads that are backed
by a local file go through boto3's managed file upload; every other upload is
streamed chunk by chunk through upload_fileobj, so memory use stays bounded.

Environment Variables:
    ENTREPOT_S3_BUCKET, ENTREPOT_S3_REGION, ENTREPOT_S3_ENDPOINT_URL,
    ENTREPOT_S3_URL_EXPIRES_IN, ENTREPOT_S3_UNSIGNED_URLS,
    ENTREPOT_S3_VIRTUAL_HOST, ENTREPOT_S3_BUCKET_AS_HOST
    (see entrepot.config)
"""

from __future__ import annotations

import io
import logging
import threading
from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING, Any
from urllib.parse import quote, urlsplit

import boto3
from boto3.exceptions import Boto3Error
from botocore.exceptions import BotoCoreError, ClientError

from entrepot.config import S3Settings, load_s3_settings
from entrepot.errors import ObjectExistsError, ObjectNotFoundError, StorageBackendError
from entrepot.storage import Storage, build_key
from entrepot.tracing import traced_storage_operation
from entrepot.upload import DEFAULT_CHUNK_SIZE

if TYPE_CHECKING:
    from entrepot.upload import Upload

logger = logging.getLogger(__name__)

STORAGE_NAME = "s3"

_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})
_EXCLUDED_PORTS = frozenset({80, 443})

S3_ERRORS = (BotoCoreError, ClientError, Boto3Error)


def _is_not_found(exc: BaseException) -> bool:
    if not isinstance(exc, ClientError):
        return False
    return exc.response.get("Error", {}).get("Code") in _NOT_FOUND_CODES


class _ChunkReader(io.RawIOBase):
    """Read-only file object over an iterator of byte chunks."""

    def __init__(self, chunks: Iterable[bytes]) -> None:
        self._chunks = iter(chunks)
        self._pending = b""

    def readable(self) -> bool:
        return True

    def readinto(self, buffer: Any) -> int:
        while not self._pending:
            try:
                self._pending = next(self._chunks)
            except StopIteration:
                return 0
        size = min(len(buffer), len(self._pending))
        buffer[:size] = self._pending[:size]
        self._pending = self._pending[size:]
        return size


class S3Storage(Storage):
    """S3-backed storage implementation."""

    def __init__(
        self,
        bucket: str | None = None,
        *,
        region: str | None = None,
        endpoint_url: str | None = None,
        client: Any = None,
        name: str = STORAGE_NAME,
        **settings: Any,
    ) -> None:
        """Initialize S3 storage.

        Args:
            bucket: Bucket name; overrides ENTREPOT_S3_BUCKET.
            region: AWS region; overrides ENTREPOT_S3_REGION.
            endpoint_url: Endpoint for S3-compatible services.
            client: Optional boto3 S3 client for dependency injection (testing).
            name: Storage name.
            **settings: Other S3Settings fields (url_expires_in, unsigned_urls,
                virtual_host, bucket_as_host).
        """
        self._overrides: dict[str, Any] = {
            "bucket": bucket,
            "region": region,
            "endpoint_url": endpoint_url,
            **settings,
        }
        self._client = client
        self._name = name
        self._clients: dict[tuple[str | None, str | None], Any] = {}
        self._clients_lock = threading.Lock()

    @property
    def storage_name(self) -> str:
        return self._name

    @property
    def settings(self) -> S3Settings:
        return load_s3_settings(**self._overrides)

    def client(self, settings: S3Settings | None = None) -> Any:
        """Return the S3 client for the current settings."""
        if self._client is not None:
            return self._client
        settings = settings or self.settings
        cache_key = (settings.region, settings.endpoint_url)
        with self._clients_lock:
            client = self._clients.get(cache_key)
            if client is None:
                session = (
                    boto3.session.Session(region_name=settings.region)
                    if settings.region
                    else boto3.session.Session()
                )
                client = session.client("s3", endpoint_url=settings.endpoint_url)
                self._clients[cache_key] = client
        return client

    def _api_error(self, exc: BaseException, key: str) -> StorageBackendError:
        return StorageBackendError(
            message=f"S3 storage API error: {exc!r}",
            storage=self._name,
            key=key,
            cause=exc,
        )

    def _exists(self, client: Any, bucket: str, key: str) -> bool:
        try:
            client.head_object(Bucket=bucket, Key=key)
        except ClientError as e:
            if _is_not_found(e):
                return False
            raise self._api_error(e, key) from e
        except BotoCoreError as e:
            raise self._api_error(e, key) from e
        return True

    def _get_body(self, id: str, bucket: str | None) -> Any:
        settings = self.settings
        try:
            response = self.client(settings).get_object(Bucket=bucket or settings.bucket, Key=id)
        except S3_ERRORS as e:
            if _is_not_found(e):
                raise ObjectNotFoundError(storage=self._name, key=id) from e
            raise self._api_error(e, id) from e
        return response["Body"]

    @traced_storage_operation("put")
    def put(
        self,
        upload: Upload,
        *,
        prefix: str | None = None,
        name: str | None = None,
        force: bool = False,
        bucket: str | None = None,
        extra_args: dict[str, Any] | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        **opts: Any,
    ) -> str:
        """Upload to {prefix}/{name} in the bucket.

        Args:
            bucket: Overrides the configured bucket for this call.
            extra_args: Passed to boto3 as ExtraArgs (ContentType, ACL, ...).
        """
        settings = self.settings
        bucket = bucket or settings.bucket
        client = self.client(settings)
        key = build_key(name or upload.name(), prefix)

        if not force and self._exists(client, bucket, key):
            raise ObjectExistsError(storage=self._name, key=key)

        source_path = upload.path()
        try:
            if source_path is not None:
                client.upload_file(source_path, bucket, key, ExtraArgs=extra_args)
            else:
                reader = _ChunkReader(upload.chunks(chunk_size))
                client.upload_fileobj(reader, bucket, key, ExtraArgs=extra_args)
        except S3_ERRORS as e:
            raise self._api_error(e, key) from e

        logger.debug("Stored object: storage=%s bucket=%s key=%s", self._name, bucket, key)
        return key

    @traced_storage_operation("read")
    def read(self, id: str, *, bucket: str | None = None, **opts: Any) -> bytes:
        body = self._get_body(id, bucket)
        try:
            return body.read()
        except S3_ERRORS as e:
            raise self._api_error(e, id) from e
        finally:
            body.close()

    @traced_storage_operation("stream")
    def stream(
        self,
        id: str,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        bucket: str | None = None,
        **opts: Any,
    ) -> Iterator[bytes]:
        body = self._get_body(id, bucket)
        try:
            yield from body.iter_chunks(chunk_size)
        except S3_ERRORS as e:
            raise self._api_error(e, id) from e
        finally:
            body.close()

    @traced_storage_operation("delete")
    def delete(self, id: str, *, bucket: str | None = None, **opts: Any) -> None:
        # S3 deletes are idempotent; check first so a missing id is reported.
        settings = self.settings
        bucket = bucket or settings.bucket
        client = self.client(settings)
        if not self._exists(client, bucket, id):
            raise ObjectNotFoundError(storage=self._name, key=id)
        try:
            client.delete_object(Bucket=bucket, Key=id)
        except S3_ERRORS as e:
            raise self._api_error(e, id) from e
        logger.debug("Deleted object: storage=%s bucket=%s key=%s", self._name, bucket, id)

    def path(self, id: str, **opts: Any) -> str | None:
        return None

    def url(
        self,
        id: str,
        *,
        bucket: str | None = None,
        unsigned: bool | None = None,
        expires_in: int | None = None,
        **opts: Any,
    ) -> str | None:
        """Return a presigned GET URL, or a plain URL when unsigned.

        Never raises: configuration or signing failures are logged and
        reported as None.
        """
        try:
            settings = self.settings
            bucket = bucket or settings.bucket
            if unsigned if unsigned is not None else settings.unsigned_urls:
                return self._unsigned_url(id, bucket, settings)
            return self.client(settings).generate_presigned_url(
                ClientMethod="get_object",
                Params={"Bucket": bucket, "Key": id},
                ExpiresIn=expires_in or settings.url_expires_in,
            )
        except Exception as e:
            logger.warning("Could not build URL: storage=%s error=%s", self._name, e)
            return None

    def _unsigned_url(self, id: str, bucket: str, settings: S3Settings) -> str:
        if settings.endpoint_url:
            endpoint = urlsplit(settings.endpoint_url)
            scheme = endpoint.scheme or "https"
            host = endpoint.hostname or ""
            port = endpoint.port
        else:
            scheme = "https"
            host = f"s3.{settings.region}.amazonaws.com" if settings.region else "s3.amazonaws.com"
            port = None

        port_part = f":{port}" if port and port not in _EXCLUDED_PORTS else ""
        object_path = "/" + quote(id.lstrip("/"))

        if settings.bucket_as_host:
            return f"{scheme}://{bucket}{port_part}{object_path}"
        if settings.virtual_host:
            return f"{scheme}://{bucket}.{host}{port_part}{object_path}"
        return f"{scheme}://{host}{port_part}/{bucket}{object_path}"

    @traced_storage_operation("clone")
    def clone(
        self,
        source_id: str,
        dest_id: str,
        *,
        force: bool = False,
        source_bucket: str | None = None,
        dest_bucket: str | None = None,
        **opts: Any,
    ) -> str:
        """Server-side copy within S3, optionally across buckets."""
        settings = self.settings
        client = self.client(settings)
        source_bucket = source_bucket or settings.bucket
        dest_bucket = dest_bucket or settings.bucket

        if not self._exists(client, source_bucket, source_id):
            raise ObjectNotFoundError(storage=self._name, key=source_id)
        if not force and self._exists(client, dest_bucket, dest_id):
            raise ObjectExistsError(storage=self._name, key=dest_id)

        try:
            client.copy_object(
                Bucket=dest_bucket,
                Key=dest_id,
                CopySource={"Bucket": source_bucket, "Key": source_id},
            )
        except S3_ERRORS as e:
            raise self._api_error(e, dest_id) from e

        logger.debug(
            "Cloned object: storage=%s source=%s dest=%s", self._name, source_id, dest_id
        )
        return dest_id
