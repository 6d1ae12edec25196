"""
Tolerant JSON access.

:class:`JSONResult` wraps a parsed document (or nothing, when the body was
not valid JSON). Lookups never raise: a missing key, an out-of-range index
or a lookup on an unparsable body all give an empty result.

    >>> doc = JSONResult.parse(b'{"user": {"tags": ["a", "b"]}}')
    >>> doc.get("user.tags.1").as_str()
    'b'
    >>> doc.get("user.missing").exists
    False
"""
import json
from typing import Any, Iterator, List, Optional, Union

_MISSING = object()


def split_path(path: str) -> List[str]:
    """Split a dotted path; ``\\.`` escapes a literal dot inside a key."""
    segments: List[str] = []
    current: List[str] = []
    chars = iter(path)
    for char in chars:
        if char == "\\":
            escaped = next(chars, "")
            current.append(escaped)
        elif char == ".":
            segments.append("".join(current))
            current = []
        else:
            current.append(char)
    segments.append("".join(current))
    return segments


class JSONResult:
    __slots__ = ("_value",)

    def __init__(self, value: Any = _MISSING) -> None:
        self._value = value

    @classmethod
    def parse(cls, data: Union[bytes, str]) -> "JSONResult":
        try:
            return cls(json.loads(data))
        except (ValueError, TypeError):
            return cls()

    @property
    def exists(self) -> bool:
        return self._value is not _MISSING

    @property
    def value(self) -> Any:
        """The underlying Python object, or None when the result is empty."""
        return None if self._value is _MISSING else self._value

    def _child(self, key: str) -> "JSONResult":
        node = self._value
        if isinstance(node, dict):
            return JSONResult(node.get(key, _MISSING))
        if isinstance(node, list):
            try:
                index = int(key)
            except ValueError:
                return JSONResult()
            if -len(node) <= index < len(node):
                return JSONResult(node[index])
        return JSONResult()

    def get(self, path: str) -> "JSONResult":
        """Follow a dotted path such as ``"data.items.0.id"``."""
        result = self
        for segment in split_path(path):
            if not result.exists:
                break
            result = result._child(segment)
        return result

    def __getitem__(self, key: Union[str, int]) -> "JSONResult":
        return self._child(str(key))

    def __contains__(self, key: object) -> bool:
        return isinstance(self._value, dict) and key in self._value

    def __iter__(self) -> Iterator["JSONResult"]:
        if isinstance(self._value, list):
            return iter([JSONResult(item) for item in self._value])
        return iter(())

    def __bool__(self) -> bool:
        return self.exists

    def __eq__(self, other: object) -> bool:
        if isinstance(other, JSONResult):
            return self._value == other._value
        return self.exists and self._value == other

    __hash__ = None  # type: ignore[assignment]

    def as_str(self, default: str = "") -> str:
        if not self.exists or self._value is None:
            return default
        if isinstance(self._value, str):
            return self._value
        return json.dumps(self._value, ensure_ascii=False)

    def as_int(self, default: int = 0) -> int:
        try:
            return int(self._coerce_number())
        except (TypeError, ValueError, OverflowError):
            return default

    def as_float(self, default: float = 0.0) -> float:
        try:
            return float(self._coerce_number())
        except (TypeError, ValueError):
            return default

    def as_bool(self, default: bool = False) -> bool:
        value = self._value
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        if isinstance(value, (int, float)):
            return value != 0
        return default

    def as_list(self) -> List["JSONResult"]:
        return list(self)

    def _coerce_number(self) -> Optional[Any]:
        value = self._value
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, (int, float)):
            return value
        if isinstance(value, str):
            value = value.strip()
            return float(value) if any(c in value for c in ".eE") else int(value)
        return None

    def __repr__(self) -> str:
        if not self.exists:
            return "<JSONResult (empty)>"
        return f"<JSONResult {self._value!r}>"
