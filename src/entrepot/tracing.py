"""OpenTelemetry spans for storage operations.

Security:
    - Never export absolute filesystem paths in span attributes
    - Object keys are exported only as SHA256 hashes
    - No secrets or credentials in any span attribute
"""

from __future__ import annotations

import functools
import hashlib
import inspect
import logging
from collections.abc import Callable, Iterator
from typing import Any, TypeVar, cast

from entrepot.observability.tracing import is_tracing_enabled

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def _key_sha256(key: str) -> str:
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


def _target_key(target: Any) -> str | None:
    """Return the object key an operation targets, if it can be told cheaply."""
    if isinstance(target, str):
        return target
    name = getattr(target, "name", None)
    if callable(name):
        try:
            return str(name())
        except Exception as e:
            logger.debug("Could not read upload name for span: %s", e)
    return None


def _annotate(span: Any, storage: Any, target: Any) -> None:
    span.set_attribute("storage.backend", getattr(storage, "storage_name", "unknown"))
    key = _target_key(target)
    if key is not None:
        span.set_attribute("entrepot.object_key_sha256", _key_sha256(key))


def _mark_error(span: Any, exc: Exception) -> None:
    span.set_attribute("error", True)
    span.set_attribute("error.type", type(exc).__name__)


def traced_storage_operation(operation: str) -> Callable[[F], F]:
    """Decorator to trace storage operations with OpenTelemetry.

    The decorated method's first argument after self is the object id, or
    the upload for put. Spans are only emitted when tracing is enabled.
    For generator methods (stream) the span stays open until the caller
    has consumed or closed the iterator.

    Args:
        operation: Operation name (e.g., "put", "read", "delete").
    """
    span_name = f"entrepot.storage.{operation}"

    def decorator(func: F) -> F:
        if inspect.isgeneratorfunction(func):

            @functools.wraps(func)
            def gen_wrapper(self: Any, target: Any, *args: Any, **kwargs: Any) -> Iterator[Any]:
                if not is_tracing_enabled():
                    yield from func(self, target, *args, **kwargs)
                    return

                from opentelemetry import trace

                # The span is current only while the wrapped generator runs,
                # never across a yield back to the caller.
                tracer = trace.get_tracer("entrepot.storage")
                span = tracer.start_span(span_name)
                _annotate(span, self, target)
                iterator = func(self, target, *args, **kwargs)
                try:
                    while True:
                        with trace.use_span(span):
                            try:
                                chunk = next(iterator)
                            except StopIteration:
                                return
                        yield chunk
                except Exception as e:
                    _mark_error(span, e)
                    raise
                finally:
                    iterator.close()
                    span.end()

            return cast(F, gen_wrapper)

        @functools.wraps(func)
        def wrapper(self: Any, target: Any, *args: Any, **kwargs: Any) -> Any:
            if not is_tracing_enabled():
                return func(self, target, *args, **kwargs)

            from opentelemetry import trace

            tracer = trace.get_tracer("entrepot.storage")
            with tracer.start_as_current_span(span_name) as span:
                _annotate(span, self, target)
                try:
                    result = func(self, target, *args, **kwargs)
                except Exception as e:
                    _mark_error(span, e)
                    raise

                if operation in ("put", "clone") and isinstance(result, str):
                    span.set_attribute("entrepot.result_key_sha256", _key_sha256(result))
                return result

        return cast(F, wrapper)

    return decorator
