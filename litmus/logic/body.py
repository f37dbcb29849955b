"""Request and expected-response body sources.

A body source is one of a closed set of kinds, checked in this order:
bytes, str, None, OperationRef, dynamic generator, anything else. The last
kind is JSON encoded with pydantic's serializer so models, dataclasses,
datetimes and UUIDs need no custom encoder.
"""

from __future__ import annotations

import functools
import inspect
import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, List, Optional

from pydantic_core import PydanticSerializationError, to_json

from litmus.errors import BodyGeneratorError, EncodeError
from litmus.models.operation import Operation, OperationRef

if TYPE_CHECKING:  # pragma: no cover
    from litmus.logic.mock_backend import Mock
    from litmus.models.test_case import TestCase

logger = logging.getLogger(__name__)

JSON_MEDIA_TYPE = "application/json"


@dataclass(frozen=True)
class RequestHandler:
    """Wraps a callable `(backend, test_case) -> bytes | str | file-like`."""

    func: Callable[["Mock", "TestCase"], Any]

    def __call__(self, backend: "Mock", test: "TestCase") -> Any:
        return self.func(backend, test)


@dataclass(frozen=True)
class ExpectedBody:
    """A resolved expected-response body and how to compare it."""

    text: str
    is_json: bool


def _reject_constant(token: str) -> Any:
    raise ValueError(f"unsupported value: {token}")


def encode_json(value: Any, what: str = "value") -> bytes:
    """JSON-encode `value`; NaN and infinities are rejected, not emitted."""
    try:
        data = to_json(value)
        json.loads(data, parse_constant=_reject_constant)
    except (PydanticSerializationError, TypeError, ValueError) as exc:
        raise EncodeError(f"failed to marshal {what}: {exc}") from exc
    return data


def _is_generator(source: Any) -> bool:
    if isinstance(source, RequestHandler):
        return True
    if isinstance(source, functools.partial):
        return True
    return inspect.isfunction(source) or inspect.ismethod(source)


def _read_generated(produced: Any) -> bytes:
    if produced is None:
        return b""
    if isinstance(produced, (bytes, bytearray)):
        return bytes(produced)
    if isinstance(produced, str):
        return produced.encode("utf-8")
    read = getattr(produced, "read", None)
    if callable(read):
        data = read()
        return data.encode("utf-8") if isinstance(data, str) else bytes(data)
    raise TypeError(f"body generator returned {type(produced).__name__}, expected bytes, str or a reader")


def resolve_request_body(
    source: Any,
    operations: List[Operation],
    backend: "Mock",
    test: "TestCase",
) -> Optional[bytes]:
    """Return the wire body for a request source, or None for no body."""
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    if isinstance(source, str):
        return source.encode("utf-8")
    if source is None:
        return None
    if isinstance(source, OperationRef):
        return encode_json(source.resolve_arg(operations), "request")
    if _is_generator(source):
        try:
            return _read_generated(source(backend, test))
        except Exception as exc:
            logger.error("body.generator_failed", exc_info=True)
            raise BodyGeneratorError(f"failed to build request body: {exc}") from exc
    return encode_json(source, "request")


def resolve_expected_body(source: Any, operations: List[Operation]) -> Optional[ExpectedBody]:
    """Return the expected body, or None when the body check is skipped."""
    if isinstance(source, (bytes, bytearray)):
        return ExpectedBody(bytes(source).decode("utf-8", errors="replace"), is_json=False)
    if isinstance(source, str):
        return ExpectedBody(source, is_json=False)
    if source is None:
        return None
    if isinstance(source, OperationRef):
        data = encode_json(source.resolve_return(operations), "response")
    else:
        data = encode_json(source, "response")
    return ExpectedBody(data.decode("utf-8"), is_json=True)


def parse_json(text: str) -> tuple[bool, Any]:
    try:
        return True, json.loads(text)
    except ValueError:
        return False, None


def json_equal(a: Any, b: Any) -> bool:
    """Structural JSON equality that keeps `true` apart from `1`."""
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if isinstance(a, dict) and isinstance(b, dict):
        return a.keys() == b.keys() and all(json_equal(a[k], b[k]) for k in a)
    if isinstance(a, list) and isinstance(b, list):
        return len(a) == len(b) and all(json_equal(x, y) for x, y in zip(a, b))
    if isinstance(a, (int, float)) and isinstance(b, (int, float)):
        return a == b
    return type(a) is type(b) and a == b


__all__ = [
    "JSON_MEDIA_TYPE",
    "RequestHandler",
    "ExpectedBody",
    "encode_json",
    "resolve_request_body",
    "resolve_expected_body",
    "parse_json",
    "json_equal",
]
