"""Backend configuration for Entrepot.

Settings are read from environment variables at call time (never cached by
the library) and validated into frozen pydantic models. Explicit values
passed to a backend's constructor take precedence over the environment.

Environment Variables:
    ENTREPOT_DISK_ROOT_DIR: Root directory for DiskStorage
        (default: OS temp dir / entrepot)
    ENTREPOT_DISK_BASE_URL: Public base URL for DiskStorage.url (optional)
    ENTREPOT_S3_BUCKET: Bucket for S3Storage (required unless passed explicitly)
    ENTREPOT_S3_REGION: AWS region (optional)
    ENTREPOT_S3_ENDPOINT_URL: Custom endpoint for S3-compatible stores (optional)
    ENTREPOT_S3_URL_EXPIRES_IN: Presigned URL lifetime in seconds (default: 7200)
    ENTREPOT_S3_UNSIGNED_URLS: "1" to build plain URLs instead of presigned ones
    ENTREPOT_S3_VIRTUAL_HOST: "1" for bucket.host style URLs
    ENTREPOT_S3_BUCKET_AS_HOST: "1" when the bucket name is itself the host (CDN)
    ENTREPOT_FETCH_TIMEOUT_SECONDS: Timeout for URIUpload fetches (default: 30)

Tracing variables (ENTREPOT_OTEL_*) are documented in
entrepot.observability.tracing.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Any, Final, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from entrepot.errors import StorageConfigError

ENV_DISK_ROOT_DIR: Final[str] = "ENTREPOT_DISK_ROOT_DIR"
ENV_DISK_BASE_URL: Final[str] = "ENTREPOT_DISK_BASE_URL"
ENV_S3_BUCKET: Final[str] = "ENTREPOT_S3_BUCKET"
ENV_S3_REGION: Final[str] = "ENTREPOT_S3_REGION"
ENV_S3_ENDPOINT_URL: Final[str] = "ENTREPOT_S3_ENDPOINT_URL"
ENV_S3_URL_EXPIRES_IN: Final[str] = "ENTREPOT_S3_URL_EXPIRES_IN"
ENV_S3_UNSIGNED_URLS: Final[str] = "ENTREPOT_S3_UNSIGNED_URLS"
ENV_S3_VIRTUAL_HOST: Final[str] = "ENTREPOT_S3_VIRTUAL_HOST"
ENV_S3_BUCKET_AS_HOST: Final[str] = "ENTREPOT_S3_BUCKET_AS_HOST"
ENV_FETCH_TIMEOUT_SECONDS: Final[str] = "ENTREPOT_FETCH_TIMEOUT_SECONDS"
ENV_OTEL_ENABLED: Final[str] = "ENTREPOT_OTEL_ENABLED"
ENV_REQUIRE_OTEL: Final[str] = "ENTREPOT_REQUIRE_OTEL"
ENV_OTEL_TEST_CAPTURE: Final[str] = "ENTREPOT_OTEL_TEST_CAPTURE"
ENV_OTEL_SERVICE_NAME: Final[str] = "ENTREPOT_OTEL_SERVICE_NAME"
ENV_OTEL_EXPORTER: Final[str] = "ENTREPOT_OTEL_EXPORTER"
ENV_OTEL_OTLP_ENDPOINT: Final[str] = "ENTREPOT_OTEL_EXPORTER_OTLP_ENDPOINT"
ENV_OTEL_OTLP_PROTOCOL: Final[str] = "ENTREPOT_OTEL_EXPORTER_OTLP_PROTOCOL"

DEFAULT_DISK_DIRNAME: Final[str] = "entrepot"
DEFAULT_S3_URL_EXPIRES_IN: Final[int] = 7200
DEFAULT_FETCH_TIMEOUT_SECONDS: Final[float] = 30.0


class DiskSettings(BaseModel):
    """Settings for DiskStorage."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    root_dir: Path
    base_url: str | None = None


class S3Settings(BaseModel):
    """Settings for S3Storage."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    bucket: str = Field(..., min_length=1)
    region: str | None = None
    endpoint_url: str | None = None
    url_expires_in: int = Field(default=DEFAULT_S3_URL_EXPIRES_IN, ge=1, le=604800)
    unsigned_urls: bool = False
    virtual_host: bool = False
    bucket_as_host: bool = False

    @field_validator("bucket")
    @classmethod
    def no_blank_bucket(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("bucket cannot be empty or whitespace-only")
        return v.strip()


def _get_env_str(key: str) -> str | None:
    """Get a stripped environment value, treating blank as unset."""
    raw = os.environ.get(key)
    if raw is None:
        return None
    raw = raw.strip()
    return raw or None


def _get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean from environment variable."""
    val = (_get_env_str(key) or "").lower()
    if val in ("1", "true", "yes"):
        return True
    if val in ("0", "false", "no"):
        return False
    return default


def _get_env_number(key: str, default: float) -> float:
    raw = _get_env_str(key)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise StorageConfigError(f"{key} must be a number, got '{raw}'") from e
    if value <= 0:
        raise StorageConfigError(f"{key} must be positive, got {value}")
    return value


def _build(model: type[BaseModel], values: dict[str, Any]) -> Any:
    try:
        return model(**values)
    except ValidationError as e:
        raise StorageConfigError(f"Invalid {model.__name__}: {e}") from e


def load_disk_settings(
    root_dir: str | Path | None = None,
    base_url: str | None = None,
) -> DiskSettings:
    """Load DiskStorage settings, falling back to environment variables.

    Args:
        root_dir: Explicit root directory; overrides ENTREPOT_DISK_ROOT_DIR.
        base_url: Explicit public base URL; overrides ENTREPOT_DISK_BASE_URL.
    """
    if root_dir is None:
        root_dir = _get_env_str(ENV_DISK_ROOT_DIR)
    if root_dir is None:
        root_dir = Path(tempfile.gettempdir()) / DEFAULT_DISK_DIRNAME

    return _build(
        DiskSettings,
        {
            "root_dir": Path(root_dir),
            "base_url": base_url if base_url is not None else _get_env_str(ENV_DISK_BASE_URL),
        },
    )


def load_s3_settings(**overrides: Any) -> S3Settings:
    """Load S3Storage settings from the environment.

    Args:
        **overrides: Explicit values for any S3Settings field; None values
            fall back to the environment.

    Raises:
        StorageConfigError: If the bucket is missing or a value is invalid.
    """
    values: dict[str, Any] = {
        "bucket": _get_env_str(ENV_S3_BUCKET),
        "region": _get_env_str(ENV_S3_REGION),
        "endpoint_url": _get_env_str(ENV_S3_ENDPOINT_URL),
        "url_expires_in": int(_get_env_number(ENV_S3_URL_EXPIRES_IN, DEFAULT_S3_URL_EXPIRES_IN)),
        "unsigned_urls": _get_env_bool(ENV_S3_UNSIGNED_URLS),
        "virtual_host": _get_env_bool(ENV_S3_VIRTUAL_HOST),
        "bucket_as_host": _get_env_bool(ENV_S3_BUCKET_AS_HOST),
    }
    values.update({k: v for k, v in overrides.items() if v is not None})

    if not values.get("bucket"):
        raise StorageConfigError(f"S3 bucket is not configured (set {ENV_S3_BUCKET})")

    return _build(S3Settings, values)


def load_fetch_timeout() -> float:
    """Return the URIUpload fetch timeout in seconds."""
    return _get_env_number(ENV_FETCH_TIMEOUT_SECONDS, DEFAULT_FETCH_TIMEOUT_SECONDS)


class TracingSettings(BaseModel):
    """Settings for optional OpenTelemetry tracing."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    enabled: bool = False
    test_capture: bool = False
    service_name: str = "entrepot"
    exporter: Literal["otlp", "console"] = "otlp"
    otlp_endpoint: str | None = None
    otlp_protocol: Literal["grpc", "http"] = "grpc"


def is_tracing_enabled() -> bool:
    """Return True when ENTREPOT_OTEL_ENABLED is set."""
    return _get_env_bool(ENV_OTEL_ENABLED)


def is_tracing_required() -> bool:
    """Return True when tracing setup failures must raise (ENTREPOT_REQUIRE_OTEL)."""
    return _get_env_bool(ENV_REQUIRE_OTEL)


def load_tracing_settings() -> TracingSettings:
    """Load tracing settings from the environment.

    Raises:
        StorageConfigError: If the exporter or protocol is not recognized.
    """
    values: dict[str, Any] = {
        "enabled": is_tracing_enabled(),
        "test_capture": _get_env_bool(ENV_OTEL_TEST_CAPTURE),
        "service_name": _get_env_str(ENV_OTEL_SERVICE_NAME),
        "exporter": (_get_env_str(ENV_OTEL_EXPORTER) or "").lower() or None,
        "otlp_endpoint": _get_env_str(ENV_OTEL_OTLP_ENDPOINT),
        "otlp_protocol": (_get_env_str(ENV_OTEL_OTLP_PROTOCOL) or "").lower() or None,
    }
    return _build(TracingSettings, {k: v for k, v in values.items() if v is not None})
