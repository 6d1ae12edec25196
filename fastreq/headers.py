"""
Case-insensitive helpers for header maps kept as plain dicts.

Header names keep the spelling of whoever set them last; lookups and
overrides ignore case.
"""
from typing import Dict, Iterable, Mapping, Optional, Tuple


def find_header(headers: Mapping[str, str], name: str) -> Optional[str]:
    """Return the stored key matching ``name`` case-insensitively."""
    lowered = name.lower()
    for key in headers:
        if key.lower() == lowered:
            return key
    return None


def has_header(headers: Mapping[str, str], name: str) -> bool:
    return find_header(headers, name) is not None


def get_header(headers: Mapping[str, str], name: str, default: Optional[str] = None) -> Optional[str]:
    key = find_header(headers, name)
    if key is None:
        return default
    return headers[key]


def set_header(headers: Dict[str, str], name: str, value: str) -> None:
    """Set ``name`` replacing any entry that differs only by case."""
    existing = find_header(headers, name)
    if existing is not None:
        del headers[existing]
    headers[name] = value


def remove_header(headers: Dict[str, str], name: str) -> None:
    existing = find_header(headers, name)
    if existing is not None:
        del headers[existing]


def merge_headers(base: Mapping[str, str], overrides: Optional[Mapping[str, str]]) -> Dict[str, str]:
    """Copy ``base`` and apply ``overrides`` on top of it."""
    merged = dict(base)
    if overrides:
        for name, value in overrides.items():
            set_header(merged, name, str(value))
    return merged


def fold_headers(pairs: Iterable[Tuple[str, str]]) -> Dict[str, str]:
    """
    Collapse a raw header list into a dict.

    Repeated fields are joined with ", " except Set-Cookie, where the last
    value wins; the full list stays available on ``Response.raw_headers``.
    """
    folded: Dict[str, str] = {}
    for name, value in pairs:
        key = find_header(folded, name)
        if key is None:
            folded[name] = value
        elif name.lower() == "set-cookie":
            folded[key] = value
        else:
            folded[key] = f"{folded[key]}, {value}"
    return folded
