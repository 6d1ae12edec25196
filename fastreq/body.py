"""
Request body variants.

The caller picks the encoding explicitly by wrapping the payload:

    Json({"name": "fastreq"})      -> application/json
    Form({"user": "alice"})        -> application/x-www-form-urlencoded
    Text("hello")                  -> UTF-8 bytes, no Content-Type
    Raw(b"\\x00\\x01")               -> bytes as-is, no Content-Type
"""
import json as _json_module
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple, Union
from urllib.parse import urlencode

JSON_CONTENT_TYPE = "application/json"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class Body:
    """Base class for body variants."""

    content_type: Optional[str] = None

    def encode(self) -> bytes:
        raise NotImplementedError


@dataclass(frozen=True)
class Json(Body):
    value: Any

    content_type = JSON_CONTENT_TYPE

    def encode(self) -> bytes:
        return _json_module.dumps(self.value, ensure_ascii=False).encode("utf-8")


@dataclass(frozen=True)
class Form(Body):
    fields: Mapping[str, Any]

    content_type = FORM_CONTENT_TYPE

    def encode(self) -> bytes:
        return encode_pairs(self.fields).encode("ascii")


@dataclass(frozen=True)
class Text(Body):
    value: str

    def encode(self) -> bytes:
        return self.value.encode("utf-8")


@dataclass(frozen=True)
class Raw(Body):
    value: Union[bytes, bytearray, memoryview]

    def encode(self) -> bytes:
        return bytes(self.value)


BodyInput = Union[Body, Mapping[str, Any], str, bytes, bytearray, memoryview, None]


def encode_pairs(values: Mapping[str, Any]) -> str:
    """URL-encode a mapping with keys sorted; None values are skipped."""
    items = sorted((str(k), str(v)) for k, v in values.items() if v is not None)
    return urlencode(items)


def coerce_body(
    body: BodyInput = None,
    *,
    json: Any = None,
    data: Optional[Mapping[str, Any]] = None,
    content: Union[str, bytes, bytearray, memoryview, None] = None,
) -> Optional[Body]:
    """
    Resolve the body arguments of a request into a single variant.

    ``json=``, ``data=`` and ``content=`` are shortcuts for ``Json``,
    ``Form`` and ``Text``/``Raw``. At most one body source may be given.
    A bare mapping passed as ``body`` is sent as JSON, even when all of its
    values are strings; a form body needs ``Form(...)`` or ``data=``.
    """
    given = [item for item in (body, json, data, content) if item is not None]
    if len(given) > 1:
        raise ValueError("Specify only one of 'body', 'json', 'data' or 'content'")
    if json is not None:
        return Json(json)
    if data is not None:
        return Form(data)
    if content is not None:
        body = content
    if body is None or isinstance(body, Body):
        return body
    if isinstance(body, str):
        return Text(body)
    if isinstance(body, (bytes, bytearray, memoryview)):
        return Raw(body)
    if isinstance(body, Mapping):
        return Json(dict(body))
    raise TypeError(f"Unsupported body type: {type(body).__name__}")


def encode_body(body: Optional[Body]) -> Tuple[Optional[bytes], Optional[str]]:
    """Return (payload, content_type) for a resolved body."""
    if body is None:
        return None, None
    return body.encode(), body.content_type
